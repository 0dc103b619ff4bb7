"""Word and sentence boundary scans over written text.

Responsibilities:
- Classify spoken characters (letters, digits, and `$'-_`).
- Provide the simple forward/backward scans used for navigation and restart.
"""

from __future__ import annotations

_SPOKEN_SYMBOLS = frozenset("$'-_")
SENTENCE_TERMINATORS = frozenset(".?!:")


def is_spoken_char(character: str) -> bool:
    """Return whether `character` counts as part of a spoken word."""

    return character.isalnum() or character in _SPOKEN_SYMBOLS


def search_back_to_before_word_start(text: str, index: int) -> int:
    """Walk back from `index` through spoken characters to the first non-spoken one.

    Stops at offset zero. `index` is clamped to the last character.
    """

    index = min(index, len(text) - 1)
    while index > 0 and is_spoken_char(text[index]):
        index -= 1
    return max(index, 0)


def search_back_to_word_end(text: str, index: int) -> int:
    """Walk back from `index` through non-spoken characters to the end of a word."""

    index = min(index, len(text) - 1)
    while index > 0 and not is_spoken_char(text[index]):
        index -= 1
    return max(index, 0)


def search_ahead_to_word_start(text: str, index: int) -> int:
    """Walk forward from `index` past non-spoken characters to the next word start."""

    while index < len(text) and not is_spoken_char(text[index]):
        index += 1
    return index


def search_ahead_beyond_word_end(text: str, index: int) -> int:
    """Walk forward from `index` to one character past the end of the current word."""

    while index < len(text) and is_spoken_char(text[index]):
        index += 1
    return index


def search_ahead_to_sentence_end(text: str, index: int) -> int:
    """Walk forward from `index` to the next sentence terminator (`. ? ! :`)."""

    while index < len(text) and text[index] not in SENTENCE_TERMINATORS:
        index += 1
    return index
