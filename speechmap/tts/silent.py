"""Silent speech engine that replays word progress without producing audio.

Responsibilities:
- Emit word-level progress offsets in enveloped coordinates, skipping markup.
- Model ready/speaking/paused transitions and cancellation deterministically.
- Back dry-run CLI playback and navigation tests.
"""

from __future__ import annotations

import re
from collections import deque

from ..errors import SpeechEngineError
from .engine import CompletedHandler, EngineState, ProgressHandler, SpeechEnvelope

_MARKUP_OR_WORD_PATTERN = re.compile(r"<[^>]*>|[^\s<]+")


def word_spans(enveloped_text: str) -> list[tuple[int, int]]:
    """Return `(offset, length)` for every word outside markup tags."""

    return [
        (match.start(), match.end() - match.start())
        for match in _MARKUP_OR_WORD_PATTERN.finditer(enveloped_text)
        if not match.group().startswith("<")
    ]


class SilentSpeechEngine:
    """Step-driven engine: each `step()` delivers one progress or completion event."""

    def __init__(
        self,
        envelope: SpeechEnvelope | None = None,
        installed_voices: tuple[str, ...] = ("Silent",),
    ) -> None:
        """Initialize the engine in the ready state."""

        self.envelope = envelope or SpeechEnvelope.ssml()
        self.rate = 0
        self.volume = 100
        self.voice = installed_voices[0] if installed_voices else None
        self.spoken_payloads: list[str] = []
        self._installed_voices = list(installed_voices)
        self._state = EngineState.READY
        self._current: deque[tuple[int, int]] | None = None
        self._queued: deque[deque[tuple[int, int]]] = deque()
        self._on_progress: ProgressHandler | None = None
        self._on_completed: CompletedHandler | None = None

    @property
    def state(self) -> EngineState:
        """Current synthesizer state."""

        return self._state

    def set_progress_handler(self, handler: ProgressHandler | None) -> None:
        """Register the word-progress callback."""

        self._on_progress = handler

    def set_completed_handler(self, handler: CompletedHandler | None) -> None:
        """Register the utterance-completed callback."""

        self._on_completed = handler

    def speak(self, payload: str) -> None:
        """Queue `payload`; it starts immediately when nothing else is playing."""

        self.spoken_payloads.append(payload)
        self._queued.append(deque(word_spans(self.envelope.wrap(payload))))
        if self._current is None:
            self._start_next()

    def pause(self) -> None:
        """Pause the active utterance."""

        if self._state is EngineState.SPEAKING:
            self._state = EngineState.PAUSED

    def resume(self) -> None:
        """Resume a paused utterance."""

        if self._state is EngineState.PAUSED:
            self._state = EngineState.SPEAKING

    def cancel_all(self) -> None:
        """Drop every utterance and report one completion per cancelled utterance."""

        cancelled = len(self._queued) + (1 if self._current is not None else 0)
        self._queued.clear()
        self._current = None
        self._state = EngineState.READY
        for _ in range(cancelled):
            self._notify_completed()

    def select_voice(self, voice: str) -> None:
        """Switch to the installed voice named `voice`."""

        if voice not in self._installed_voices:
            raise SpeechEngineError(f"Voice `{voice}` is not installed.")
        self.voice = voice

    def voices(self) -> list[str]:
        """Return the names of installed voices."""

        return list(self._installed_voices)

    def step(self) -> bool:
        """Deliver the next event; return `False` when paused or idle."""

        if self._state is not EngineState.SPEAKING or self._current is None:
            return False
        if self._current:
            offset, count = self._current.popleft()
            if self._on_progress is not None:
                self._on_progress(offset, count)
            return True

        self._current = None
        self._state = EngineState.READY
        self._notify_completed()
        if self._current is None and self._queued:
            self._start_next()
        return True

    def run_until_idle(self, max_steps: int = 100_000) -> int:
        """Step until the engine is ready, paused, or `max_steps` is reached."""

        steps = 0
        while steps < max_steps and self.step():
            steps += 1
        return steps

    def _start_next(self) -> None:
        """Promote the oldest queued utterance to the active one."""

        self._current = self._queued.popleft()
        self._state = EngineState.SPEAKING

    def _notify_completed(self) -> None:
        """Invoke the completion callback when one is registered."""

        if self._on_completed is not None:
            self._on_completed()
