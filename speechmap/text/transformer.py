"""Pronunciation transform from written text to synthesizer-ready spoken text.

Responsibilities:
- Apply spelling and phoneme substitution rules in priority order.
- Keep the written/spoken `PositionMap` in step with every edit.
- Sanitize the spoken text as the final step without moving any offset.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from xml.sax.saxutils import quoteattr

from loguru import logger

from ..models.datatypes import (
    MappingEntry,
    MappingKind,
    RuleKind,
    SubstitutionRule,
    TransformResult,
)
from .position_map import PositionMapBuilder
from .sanitizer import MarkupSanitizer

PHONEME_CLOSE_TAG = "</phoneme>"


def phoneme_open_tag(alphabet: str, pronounced_text: str) -> str:
    """Return the opening SSML phoneme tag for an alphabet and pronunciation."""

    return f"<phoneme alphabet={quoteattr(alphabet)} ph={quoteattr(pronounced_text)}>"


def compile_rule_pattern(rule: SubstitutionRule) -> re.Pattern[str]:
    """Compile the literal, optionally whole-word, pattern for a rule."""

    pattern = re.escape(rule.written_text)
    if rule.whole_word:
        pattern = rf"\b{pattern}\b"
    flags = 0 if rule.case_sensitive else re.IGNORECASE
    return re.compile(pattern, flags)


def _is_well_formed(rule: SubstitutionRule) -> bool:
    """Return whether a rule carries every attribute its kind needs."""

    if not rule.written_text:
        return False
    if rule.kind is RuleKind.PHONEME:
        return bool(rule.phoneme_alphabet) and bool(rule.pronounced_text)
    return True


class TextTransformer:
    """Convert written text into spoken text plus its position map."""

    def __init__(self, sanitizer: MarkupSanitizer | None = None) -> None:
        """Initialize the transformer with the final-pass markup sanitizer."""

        self._sanitizer = sanitizer or MarkupSanitizer()

    def transform(self, written: str, rules: Iterable[SubstitutionRule]) -> TransformResult:
        """Apply `rules` in order to `written` and return spoken text with its map."""

        spoken = written
        builder = PositionMapBuilder(len(written))
        for rule in rules:
            if not _is_well_formed(rule):
                logger.warning("Skipping malformed rule {!r}.", rule)
                continue
            spoken = self._apply_rule(written, spoken, builder, rule)

        spoken = self._sanitizer.sanitize(spoken)
        return TransformResult(
            written=written,
            spoken=spoken,
            position_map=builder.build(len(spoken)),
        )

    def _apply_rule(
        self,
        written: str,
        spoken: str,
        builder: PositionMapBuilder,
        rule: SubstitutionRule,
    ) -> str:
        """Apply every match of one rule, stopping at the first overlap conflict."""

        for match in compile_rule_pattern(rule).finditer(written):
            written_start, written_end = match.span()
            if written_start == written_end:
                continue
            spoken_start, index = builder.locate(written_start)
            container = builder.entry(index)
            if container.kind is not MappingKind.PLAIN or written_end > container.written_end:
                logger.debug(
                    "Rule {!r} overlaps an earlier substitution at offset {}; "
                    "skipping its remaining matches.",
                    rule.written_text,
                    written_start,
                )
                break

            matched_text = written[written_start:written_end]
            if rule.kind is RuleKind.PHONEME:
                open_tag = phoneme_open_tag(rule.phoneme_alphabet or "", rule.pronounced_text)
                replacement = f"{open_tag}{matched_text}{PHONEME_CLOSE_TAG}"
                pieces = self._phoneme_entries(
                    container, spoken_start, written_start, written_end, open_tag
                )
            else:
                replacement = rule.pronounced_text
                pieces = self._spelling_entries(
                    container, spoken_start, written_start, written_end, replacement
                )

            match_length = written_end - written_start
            spoken = spoken[:spoken_start] + replacement + spoken[spoken_start + match_length :]
            builder.shift_after(index, len(replacement) - match_length)
            builder.replace(index, pieces)
            builder.sort()
        return spoken

    @staticmethod
    def _spelling_entries(
        container: MappingEntry,
        spoken_start: int,
        written_start: int,
        written_end: int,
        replacement: str,
    ) -> list[MappingEntry]:
        """Split a plain entry around a spelling substitution."""

        before_length = spoken_start - container.spoken_start
        after_start = spoken_start + len(replacement)
        return [
            MappingEntry(
                container.spoken_start,
                before_length,
                container.written_start,
                written_start - container.written_start,
                MappingKind.PLAIN,
            ),
            MappingEntry(
                spoken_start,
                len(replacement),
                written_start,
                written_end - written_start,
                MappingKind.SPELLING,
            ),
            MappingEntry(
                after_start,
                container.written_end - written_end,
                written_end,
                container.written_end - written_end,
                MappingKind.PLAIN,
            ),
        ]

    @staticmethod
    def _phoneme_entries(
        container: MappingEntry,
        spoken_start: int,
        written_start: int,
        written_end: int,
        open_tag: str,
    ) -> list[MappingEntry]:
        """Split a plain entry around a phoneme substitution and its tag overhead."""

        match_length = written_end - written_start
        content_start = spoken_start + len(open_tag)
        close_start = content_start + match_length
        after_start = close_start + len(PHONEME_CLOSE_TAG)
        return [
            MappingEntry(
                container.spoken_start,
                spoken_start - container.spoken_start,
                container.written_start,
                written_start - container.written_start,
                MappingKind.PLAIN,
            ),
            MappingEntry(spoken_start, len(open_tag), written_start, 0, MappingKind.PHONEME_OVERHEAD),
            MappingEntry(content_start, match_length, written_start, match_length, MappingKind.PHONEME),
            MappingEntry(
                close_start, len(PHONEME_CLOSE_TAG), written_end, 0, MappingKind.PHONEME_OVERHEAD
            ),
            MappingEntry(
                after_start,
                container.written_end - written_end,
                written_end,
                container.written_end - written_end,
                MappingKind.PLAIN,
            ),
        ]
