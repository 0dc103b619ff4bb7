"""Length-preserving cleanup of markup-breaking characters.

Responsibilities:
- Blank stray `<`, `>` and `&` characters that would break SSML parsing.
- Keep recognized phoneme tags intact.
- Never change string length, because mapping offsets are computed beforehand.
"""

from __future__ import annotations

_RECOGNIZED_TAGS = ("phoneme", "/phoneme")
_TAG_NAME_TERMINATORS = frozenset(" \t\r\n/>")
_BLANK = " "


class MarkupSanitizer:
    """Replace markup-breaking characters with spaces, one for one."""

    def __init__(self, recognized_tags: tuple[str, ...] = _RECOGNIZED_TAGS) -> None:
        """Initialize the sanitizer with the tag names that must survive."""

        self._recognized_tags = tuple(tag.lower() for tag in recognized_tags)

    def sanitize(self, text: str) -> str:
        """Return `text` with stray `<`, `>` and `&` replaced by spaces.

        The scan runs left to right. Text between recognized tag delimiters is
        left alone except for stray `<`; everything else loses its markup
        characters. The result always has the same length as the input.
        """

        chars = list(text)
        length = len(chars)
        scan_from = 0
        while scan_from < length:
            open_index = text.find("<", scan_from)
            if open_index == -1:
                self._blank_range(chars, ">&", scan_from, length)
                break

            self._blank_range(chars, ">&", scan_from, open_index)
            if not self._starts_recognized_tag(text, open_index + 1):
                chars[open_index] = _BLANK
                scan_from = open_index + 1
                continue

            close_index = text.find(">", open_index + 1)
            if close_index == -1:
                chars[open_index] = _BLANK
                self._blank_range(chars, "<&", open_index, length)
                break

            self._blank_range(chars, "<", open_index + 1, close_index)
            scan_from = close_index + 1

        return "".join(chars)

    def _starts_recognized_tag(self, text: str, name_start: int) -> bool:
        """Return whether a recognized tag name begins at `name_start`."""

        for tag in self._recognized_tags:
            name_end = name_start + len(tag)
            if text[name_start:name_end].lower() != tag:
                continue
            if name_end == len(text) or text[name_end] in _TAG_NAME_TERMINATORS:
                return True
        return False

    @staticmethod
    def _blank_range(chars: list[str], targets: str, start: int, end: int) -> None:
        """Replace every character from `targets` in `chars[start:end]` with a space."""

        for index in range(start, end):
            if chars[index] in targets:
                chars[index] = _BLANK


def sanitize_markup(text: str) -> str:
    """Sanitize `text` with the default phoneme tag set."""

    return MarkupSanitizer().sanitize(text)
