"""Pronunciation rule and shortcut loading.

Responsibilities:
- Parse substitution rules and typing shortcuts from a YAML rule file.
- Skip malformed records with a diagnostic instead of failing the whole load.

Key types:
- `RuleBook`: ordered rules, shortcuts, and skipped-record diagnostics.
- `RuleLoader`: static construction helpers for `RuleBook`.

Rule file layout::

    pronunciations:
      - written_text: Sequim
        pronounced_text: Skwim
        type: spelling
        case_sensitive: false
        whole_word: true
      - written_text: llama
        pronounced_text: J AA M AX
        type: phoneme
        alphabet: x-microsoft-ups
        case_sensitive: false
        whole_word: true
    shortcuts:
      - shortcut_text: brb
        replacement_text: be right back

A `type` other than `spelling` or `phoneme` names the phoneme alphabet directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml
from loguru import logger

from .errors import MalformedRuleError
from .models.datatypes import RuleKind, Shortcut, SubstitutionRule
from .parsing import normalize_optional_string, parse_flag_token

_RULE_SECTION = "pronunciations"
_SHORTCUT_SECTION = "shortcuts"
_SUPPORTED_SECTIONS = frozenset({_RULE_SECTION, _SHORTCUT_SECTION})


@dataclass(frozen=True, slots=True)
class RuleBook:
    """Rules and shortcuts loaded once per session.

    Attributes:
        rules: Substitution rules in priority order.
        shortcuts: Typing shortcuts in file order.
        skipped: One diagnostic line per malformed record that was ignored.
    """

    rules: tuple[SubstitutionRule, ...] = field(default_factory=tuple)
    shortcuts: tuple[Shortcut, ...] = field(default_factory=tuple)
    skipped: tuple[str, ...] = field(default_factory=tuple)


def _required_text(record: Mapping[str, Any], key: str) -> str:
    """Return a required non-blank string attribute without trimming it."""

    value = record.get(key)
    if value is None or normalize_optional_string(value) is None:
        raise MalformedRuleError(f"missing `{key}`")
    return str(value)


def _required_flag(record: Mapping[str, Any], key: str) -> bool:
    """Return a required boolean attribute."""

    if key not in record:
        raise MalformedRuleError(f"missing `{key}`")
    parsed = parse_flag_token(record[key])
    if parsed is None:
        raise MalformedRuleError(f"`{key}` must be a boolean value")
    return parsed


def parse_rule(record: object) -> SubstitutionRule:
    """Build a `SubstitutionRule` from one `pronunciations` record.

    Raises:
        MalformedRuleError: If an attribute is missing or invalid.
    """

    if not isinstance(record, Mapping):
        raise MalformedRuleError("record must be a mapping")

    written_text = _required_text(record, "written_text")
    pronounced_text = _required_text(record, "pronounced_text")
    type_token = normalize_optional_string(record.get("type"))
    if type_token is None:
        raise MalformedRuleError("missing `type`")
    case_sensitive = _required_flag(record, "case_sensitive")
    whole_word = _required_flag(record, "whole_word")

    if type_token.lower() == RuleKind.SPELLING.value:
        return SubstitutionRule(
            written_text=written_text,
            pronounced_text=pronounced_text,
            kind=RuleKind.SPELLING,
            case_sensitive=case_sensitive,
            whole_word=whole_word,
        )

    if type_token.lower() == RuleKind.PHONEME.value:
        alphabet = normalize_optional_string(record.get("alphabet"))
        if alphabet is None:
            raise MalformedRuleError("phoneme rules require `alphabet`")
    else:
        alphabet = type_token
    return SubstitutionRule(
        written_text=written_text,
        pronounced_text=pronounced_text,
        kind=RuleKind.PHONEME,
        phoneme_alphabet=alphabet,
        case_sensitive=case_sensitive,
        whole_word=whole_word,
    )


def parse_shortcut(record: object) -> Shortcut:
    """Build a `Shortcut` from one `shortcuts` record.

    Raises:
        MalformedRuleError: If an attribute is missing or invalid.
    """

    if not isinstance(record, Mapping):
        raise MalformedRuleError("record must be a mapping")
    shortcut_text = normalize_optional_string(record.get("shortcut_text"))
    if shortcut_text is None:
        raise MalformedRuleError("missing `shortcut_text`")
    return Shortcut(
        shortcut_text=shortcut_text,
        replacement_text=_required_text(record, "replacement_text"),
    )


class RuleLoader:
    """Static construction helpers for `RuleBook`."""

    @staticmethod
    def from_yaml(path: Path) -> RuleBook:
        """Load a rule book from a YAML file.

        Raises:
            FileNotFoundError: If `path` does not exist.
            ValueError: If the file is not valid YAML or not a top-level mapping.
        """

        raw_text = path.read_text(encoding="utf-8")
        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"Rule file `{path}` is not valid YAML: {exc}") from exc
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"Rule file `{path}` must contain a top-level mapping/object.")
        return RuleLoader.from_mapping(payload, source_label=f"Rule file `{path}`")

    @staticmethod
    def from_mapping(payload: Mapping[str, Any], source_label: str = "Rules") -> RuleBook:
        """Build a rule book from an already-parsed mapping."""

        unknown = sorted(str(key) for key in payload.keys() if key not in _SUPPORTED_SECTIONS)
        if unknown:
            raise ValueError(f"{source_label} includes unsupported key(s): {', '.join(unknown)}.")

        skipped: list[str] = []
        rules = RuleLoader._parse_section(
            payload, _RULE_SECTION, parse_rule, source_label, skipped
        )
        shortcuts = RuleLoader._parse_section(
            payload, _SHORTCUT_SECTION, parse_shortcut, source_label, skipped
        )
        return RuleBook(rules=tuple(rules), shortcuts=tuple(shortcuts), skipped=tuple(skipped))

    @staticmethod
    def _parse_section(payload, section, parse_record, source_label, skipped):
        """Parse every record of one section, collecting diagnostics for bad records."""

        records = payload.get(section)
        if records is None:
            return []
        if not isinstance(records, list):
            raise ValueError(f"{source_label} field `{section}` must be a list.")

        parsed = []
        for position, record in enumerate(records, start=1):
            try:
                parsed.append(parse_record(record))
            except MalformedRuleError as exc:
                diagnostic = f"{section}[{position}]: {exc}"
                logger.warning("Skipping malformed record {}.", diagnostic)
                skipped.append(diagnostic)
        return parsed
