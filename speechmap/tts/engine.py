"""Speech engine boundary used by playback navigation.

Responsibilities:
- Define the protocol every synthesis adapter implements.
- Define the fixed-length markup envelope wrapped around spoken text.

Key types:
- `EngineState`: ready/speaking/paused synthesizer state.
- `SpeechEnvelope`: constant prefix/suffix added before dispatch.
- `SpeechEngine`: adapter protocol consumed by `PlaybackNavigator`.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

ProgressHandler = Callable[[int, int], None]
CompletedHandler = Callable[[], None]

_SSML_PREFIX_TEMPLATE = (
    '<?xml version="1.0"?>'
    '<speak version="1.0" xmlns="http://www.w3.org/2001/10/synthesis" xml:lang="{language}">'
)
_SSML_SUFFIX = "</speak>"


class EngineState(str, Enum):
    """Synthesizer playback state."""

    READY = "ready"
    SPEAKING = "speaking"
    PAUSED = "paused"


@dataclass(frozen=True, slots=True)
class SpeechEnvelope:
    """Fixed markup wrapped around every spoken payload.

    Progress offsets reported by an engine are positions in the enveloped text,
    so consumers subtract `prefix_length` to get back to spoken coordinates.
    """

    prefix: str
    suffix: str

    @classmethod
    def ssml(cls, language: str = "en-US") -> SpeechEnvelope:
        """Return the SSML document envelope for `language`."""

        return cls(prefix=_SSML_PREFIX_TEMPLATE.format(language=language), suffix=_SSML_SUFFIX)

    @property
    def prefix_length(self) -> int:
        """Number of characters the envelope adds before the payload."""

        return len(self.prefix)

    def wrap(self, payload: str) -> str:
        """Return `payload` inside the envelope."""

        return f"{self.prefix}{payload}{self.suffix}"


class SpeechEngine(Protocol):
    """Protocol for speech synthesis adapters.

    Implementations deliver progress as `(offset_in_enveloped_text,
    character_count)` and deliver exactly one completion per utterance, including
    utterances ended by `cancel_all`. Callbacks may arrive on any thread.
    """

    envelope: SpeechEnvelope
    rate: int
    volume: int

    @property
    def state(self) -> EngineState:
        """Current synthesizer state."""

    def speak(self, payload: str) -> None:
        """Wrap `payload` in the envelope and queue it for asynchronous speech."""

    def pause(self) -> None:
        """Pause the active utterance."""

    def resume(self) -> None:
        """Resume a paused utterance."""

    def cancel_all(self) -> None:
        """Cancel all pending speech; returns once the engine is ready again."""

    def select_voice(self, voice: str) -> None:
        """Switch to the installed voice named `voice`."""

    def voices(self) -> list[str]:
        """Return the names of installed voices."""

    def set_progress_handler(self, handler: ProgressHandler | None) -> None:
        """Register the word-progress callback."""

    def set_completed_handler(self, handler: CompletedHandler | None) -> None:
        """Register the utterance-completed callback."""
