"""Core datatypes shared across speechmap modules.

Responsibilities:
- Represent substitution rules, mapping entries, and navigation state.
- Provide explicit typing for the written/spoken coordinate spaces.

Key types:
- `SubstitutionRule`, `Shortcut`, `MappingEntry`, `NavigationCursor`,
  `Highlight`, `ShortcutExpansion`, and `TransformResult`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..text.position_map import PositionMap


class RuleKind(str, Enum):
    """Kind of pronunciation change a rule applies."""

    SPELLING = "spelling"
    PHONEME = "phoneme"


class MappingKind(str, Enum):
    """Tag describing what a mapping entry covers in the spoken text."""

    PLAIN = "plain"
    SPELLING = "spelling"
    PHONEME = "phoneme"
    PHONEME_OVERHEAD = "phoneme_overhead"

    @property
    def is_substitution(self) -> bool:
        """Return whether the entry carries a pronounced replacement of written text."""

        return self in (MappingKind.SPELLING, MappingKind.PHONEME)


@dataclass(frozen=True, slots=True)
class SubstitutionRule:
    """One pronunciation rule supplied by the rule source.

    Attributes:
        written_text: Text to find in the written string.
        pronounced_text: Respelling (spelling rules) or phoneme string (phoneme rules).
        kind: Spelling or phoneme substitution.
        phoneme_alphabet: Phonetic alphabet name, required for phoneme rules.
        case_sensitive: Whether matching respects letter case.
        whole_word: Whether matches must sit on word boundaries.
    """

    written_text: str
    pronounced_text: str
    kind: RuleKind = RuleKind.SPELLING
    phoneme_alphabet: str | None = None
    case_sensitive: bool = False
    whole_word: bool = True


@dataclass(frozen=True, slots=True)
class Shortcut:
    """Typing shortcut that expands into longer replacement text."""

    shortcut_text: str
    replacement_text: str


@dataclass(frozen=True, slots=True)
class MappingEntry:
    """Correspondence between one written range and one spoken range.

    Attributes:
        spoken_start: Inclusive offset in the spoken text.
        spoken_length: Length of the range in the spoken text.
        written_start: Inclusive offset in the written text.
        written_length: Length of the range in the written text.
        kind: What the spoken range contains.
    """

    spoken_start: int
    spoken_length: int
    written_start: int
    written_length: int
    kind: MappingKind = MappingKind.PLAIN

    @property
    def spoken_end(self) -> int:
        """Exclusive end offset in the spoken text."""

        return self.spoken_start + self.spoken_length

    @property
    def written_end(self) -> int:
        """Exclusive end offset in the written text."""

        return self.written_start + self.written_length

    def contains_written(self, written_offset: int) -> bool:
        """Return whether `written_offset` falls inside this entry's written range."""

        return self.written_start <= written_offset < self.written_end

    def shifted(self, spoken_delta: int) -> MappingEntry:
        """Return a copy moved by `spoken_delta` in the spoken coordinate space."""

        return MappingEntry(
            spoken_start=self.spoken_start + spoken_delta,
            spoken_length=self.spoken_length,
            written_start=self.written_start,
            written_length=self.written_length,
            kind=self.kind,
        )


@dataclass(slots=True)
class NavigationCursor:
    """Mutable per-utterance playback position.

    Attributes:
        map_index: Index of the mapping entry currently being spoken.
        written_restart_offset: Written offset where the current speech slice began.
        spoken_restart_offset: Spoken offset where the current speech slice began.
        current_written_position: Written offset of the word currently being spoken.
    """

    map_index: int = 0
    written_restart_offset: int = 0
    spoken_restart_offset: int = 0
    current_written_position: int = 0

    def reset(self) -> None:
        """Return the cursor to the start of the utterance."""

        self.map_index = 0
        self.written_restart_offset = 0
        self.spoken_restart_offset = 0
        self.current_written_position = 0


@dataclass(frozen=True, slots=True)
class Highlight:
    """Editor selection request in written coordinates."""

    start: int
    length: int


@dataclass(frozen=True, slots=True)
class ShortcutExpansion:
    """Edit the editor should apply to expand a shortcut.

    Attributes:
        start: Offset of the shortcut text in the editor buffer.
        length: Length of the shortcut text being replaced.
        replacement_text: Text to insert in place of the shortcut.
    """

    start: int
    length: int
    replacement_text: str


@dataclass(frozen=True, slots=True)
class TransformResult:
    """Spoken text and position map produced for one utterance."""

    written: str
    spoken: str
    position_map: PositionMap
