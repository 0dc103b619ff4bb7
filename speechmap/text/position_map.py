"""Written-to-spoken position correspondence for one utterance.

Responsibilities:
- Hold the ordered mapping entries that partition the spoken text.
- Translate written offsets to spoken offsets and back.
- Restrict mutation to the transformer through `PositionMapBuilder`.

Key types:
- `PositionMap`: immutable, sorted lookup table used during playback.
- `PositionMapBuilder`: mutable working copy used while rules are applied.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence

from ..models.datatypes import MappingEntry, MappingKind, NavigationCursor


def _locate_written(entries: Sequence[MappingEntry], written_offset: int) -> tuple[int, int] | None:
    """Return `(spoken_offset, entry_index)` for the entry containing `written_offset`."""

    if len(entries) <= 1:
        return written_offset, 0
    for index, entry in enumerate(entries):
        if entry.contains_written(written_offset):
            return written_offset - entry.written_start + entry.spoken_start, index
    return None


class PositionMap(Sequence[MappingEntry]):
    """Sorted interval table correlating written ranges with spoken ranges.

    The spoken intervals of the entries partition `[0, spoken_length)` with no
    gaps or overlaps. Instances are produced by `PositionMapBuilder.build` and
    are not modified afterwards.
    """

    __slots__ = ("_entries", "_written_length", "_spoken_length")

    def __init__(
        self,
        entries: Iterable[MappingEntry],
        *,
        written_length: int,
        spoken_length: int,
    ) -> None:
        """Store entries in spoken order and verify the partition invariant."""

        self._entries = tuple(sorted(entries, key=lambda entry: entry.spoken_start))
        self._written_length = written_length
        self._spoken_length = spoken_length
        self._check_partition()

    @classmethod
    def identity(cls, text_length: int) -> PositionMap:
        """Return the single-entry map for text without substitutions."""

        return cls(
            [MappingEntry(0, text_length, 0, text_length, MappingKind.PLAIN)],
            written_length=text_length,
            spoken_length=text_length,
        )

    @property
    def written_length(self) -> int:
        """Length of the written text this map was built for."""

        return self._written_length

    @property
    def spoken_length(self) -> int:
        """Length of the spoken text this map was built for."""

        return self._spoken_length

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index):  # type: ignore[override]
        return self._entries[index]

    def __iter__(self) -> Iterator[MappingEntry]:
        return iter(self._entries)

    def __repr__(self) -> str:
        return f"PositionMap({list(self._entries)!r})"

    def written_to_spoken(self, written_offset: int) -> tuple[int, int]:
        """Translate a written offset into `(spoken_offset, entry_index)`.

        Maps with at most one entry are the identity. The end-of-text offset maps
        to the end of the spoken text.

        Raises:
            ValueError: If `written_offset` lies outside `[0, written_length]`.
        """

        if written_offset < 0 or written_offset > self._written_length:
            raise ValueError(
                f"Written offset {written_offset} is outside [0, {self._written_length}]."
            )
        located = _locate_written(self._entries, written_offset)
        if located is None:
            return self._spoken_length, len(self._entries) - 1
        return located

    def spoken_to_written(self, spoken_offset: int, cursor: NavigationCursor) -> int:
        """Translate a spoken offset into a written offset relative to `cursor`.

        The cursor only moves forward: while `spoken_offset` lies past the end of
        the current entry, `cursor.map_index` is advanced. It is never rewound, so
        callers must reset the cursor before replaying earlier text.
        """

        entries = self._entries
        while (
            cursor.map_index + 1 < len(entries)
            and spoken_offset > entries[cursor.map_index].spoken_end - 1
        ):
            cursor.map_index += 1
        entry = entries[cursor.map_index]
        return entry.written_start + spoken_offset - entry.spoken_start

    def entry_at(self, cursor: NavigationCursor) -> MappingEntry:
        """Return the entry the cursor currently points at."""

        return self._entries[cursor.map_index]

    def _check_partition(self) -> None:
        """Raise when spoken intervals leave gaps or overlap."""

        expected_start = 0
        for entry in self._entries:
            if entry.spoken_start != expected_start or entry.spoken_length < 0:
                raise ValueError(
                    f"Mapping entry {entry!r} breaks the spoken partition at {expected_start}."
                )
            expected_start = entry.spoken_end
        if expected_start != self._spoken_length:
            raise ValueError(
                f"Mapping entries cover {expected_start} spoken characters, "
                f"expected {self._spoken_length}."
            )


class PositionMapBuilder:
    """Mutable entry list used by the transformer while applying rules."""

    def __init__(self, written_length: int) -> None:
        """Start from one plain entry spanning the whole written text."""

        self._written_length = written_length
        self._entries: list[MappingEntry] = [
            MappingEntry(0, written_length, 0, written_length, MappingKind.PLAIN)
        ]
        self.is_sorted = True

    def __len__(self) -> int:
        return len(self._entries)

    def entry(self, index: int) -> MappingEntry:
        """Return the entry stored at `index`."""

        return self._entries[index]

    def locate(self, written_offset: int) -> tuple[int, int]:
        """Return `(spoken_offset, entry_index)` for a written offset inside the text."""

        if not self.is_sorted:
            self.sort()
        located = _locate_written(self._entries, written_offset)
        if located is None:
            raise ValueError(f"No mapping entry covers written offset {written_offset}.")
        return located

    def shift_after(self, index: int, spoken_delta: int) -> None:
        """Move every entry positioned after `index` by `spoken_delta`."""

        if spoken_delta == 0:
            return
        for position in range(index + 1, len(self._entries)):
            self._entries[position] = self._entries[position].shifted(spoken_delta)

    def replace(self, index: int, replacements: Iterable[MappingEntry]) -> None:
        """Swap the entry at `index` for non-empty replacement entries."""

        del self._entries[index]
        for entry in replacements:
            if entry.spoken_length > 0 or entry.written_length > 0:
                self._entries.append(entry)
        self.is_sorted = False

    def sort(self) -> None:
        """Order entries by spoken start."""

        self._entries.sort(key=lambda entry: entry.spoken_start)
        self.is_sorted = True

    def build(self, spoken_length: int) -> PositionMap:
        """Freeze the entries into a `PositionMap` for a spoken text of `spoken_length`."""

        self.sort()
        return PositionMap(
            self._entries,
            written_length=self._written_length,
            spoken_length=spoken_length,
        )
