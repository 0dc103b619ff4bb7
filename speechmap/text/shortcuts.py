"""Typing shortcut expansion.

Responsibilities:
- Find the shortcut word typed just before the caret.
- Return the edit that replaces it with its expansion text.
"""

from __future__ import annotations

from collections.abc import Iterable

from loguru import logger

from ..models.datatypes import Shortcut, ShortcutExpansion
from .capture import word_before_caret


class ShortcutExpander:
    """Look up and expand shortcuts by exact, case-sensitive text."""

    def __init__(self, shortcuts: Iterable[Shortcut] = ()) -> None:
        """Index shortcuts by their shortcut text; later duplicates are ignored."""

        self._replacements: dict[str, str] = {}
        for shortcut in shortcuts:
            self._replacements.setdefault(shortcut.shortcut_text, shortcut.replacement_text)

    def __len__(self) -> int:
        return len(self._replacements)

    def expand(self, text: str, caret: int) -> ShortcutExpansion | None:
        """Return the expansion for the word behind `caret`, or `None` when there is none."""

        if not self._replacements:
            return None

        start, raw_word = word_before_caret(text, caret)
        candidate = raw_word.strip()
        if not candidate or '"' in candidate:
            return None

        replacement = self._replacements.get(candidate)
        if replacement is None:
            return None

        candidate_end = start + len(raw_word.rstrip())
        logger.debug("Expanding shortcut {!r}.", candidate)
        return ShortcutExpansion(
            start=candidate_end - len(candidate),
            length=len(candidate),
            replacement_text=replacement,
        )
