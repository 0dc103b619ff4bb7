"""Capture of just-typed text behind the editor caret.

Responsibilities:
- Return the word typed immediately before the caret for speak-on-word.
- Return the paragraph typed immediately before the caret for speak-on-paragraph.
"""

from __future__ import annotations

_WORD_DELIMITERS = frozenset(" \n")
_PARAGRAPH_DELIMITERS = frozenset("\n")


def _start_of_run(text: str, caret: int, delimiters: frozenset[str]) -> int:
    """Return the offset of the delimiter preceding the caret, or zero."""

    index = caret - 1
    while index > 0 and text[index] not in delimiters:
        index -= 1
    return max(index, 0)


def word_before_caret(text: str, caret: int) -> tuple[int, str]:
    """Return `(start, word)` for the text between the previous space or newline and the caret."""

    caret = max(0, min(caret, len(text)))
    start = _start_of_run(text, caret, _WORD_DELIMITERS)
    return start, text[start:caret]


def paragraph_before_caret(text: str, caret: int) -> tuple[int, str]:
    """Return `(start, paragraph)` for the text between the previous newline and the caret."""

    caret = max(0, min(caret, len(text)))
    start = _start_of_run(text, caret, _PARAGRAPH_DELIMITERS)
    return start, text[start:caret]
