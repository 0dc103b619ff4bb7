"""pyttsx3-backed speech engine adapter.

Responsibilities:
- Drive a system synthesizer through pyttsx3's external event loop.
- Translate pyttsx3 word and utterance events into engine callbacks.
- Provide pause/resume on top of pyttsx3, which can only stop utterances.

Notes:
- `poll()` must be called regularly by the owning thread; callbacks fire from it.
- Rate uses the -10..10 scale and maps onto pyttsx3 words per minute.
"""

from __future__ import annotations

from loguru import logger

from ..errors import SpeechEngineError
from .engine import CompletedHandler, EngineState, ProgressHandler, SpeechEnvelope

_BASE_WORDS_PER_MINUTE = 200
_PHONEME_OPEN_PREFIX = "<phoneme"
_PHONEME_CLOSE_TAG = "</phoneme>"


def words_per_minute(rate: int) -> int:
    """Map a -10..10 rate onto pyttsx3 words per minute (each 10 steps triples speed)."""

    return int(round(_BASE_WORDS_PER_MINUTE * 3 ** (rate / 10.0)))


def resume_offset(payload: str, offset: int) -> int:
    """Return a safe offset to resume `payload` from, outside any phoneme element."""

    open_index = payload.rfind(_PHONEME_OPEN_PREFIX, 0, offset + 1)
    close_index = payload.rfind(_PHONEME_CLOSE_TAG, 0, offset + 1)
    if open_index > close_index:
        return open_index
    return offset


class Pyttsx3SpeechEngine:
    """Speech engine adapter over a lazily created pyttsx3 engine."""

    def __init__(
        self,
        envelope: SpeechEnvelope | None = None,
        driver_name: str | None = None,
    ) -> None:
        """Initialize adapter settings; the pyttsx3 engine is created on first use."""

        self.envelope = envelope or SpeechEnvelope.ssml()
        self._driver_name = driver_name
        self._engine = None
        self._rate = 0
        self._volume = 100
        self._state = EngineState.READY
        self._on_progress: ProgressHandler | None = None
        self._on_completed: CompletedHandler | None = None
        self._utterance_counter = 0
        self._active_name: str | None = None
        self._payload = ""
        self._payload_base = 0
        self._payload_consumed = 0

    @property
    def state(self) -> EngineState:
        """Current synthesizer state."""

        return self._state

    @property
    def rate(self) -> int:
        """Speech rate on the -10..10 scale."""

        return self._rate

    @rate.setter
    def rate(self, value: int) -> None:
        self._rate = max(-10, min(10, int(value)))
        self._get_engine().setProperty("rate", words_per_minute(self._rate))

    @property
    def volume(self) -> int:
        """Speech volume on the 0..100 scale."""

        return self._volume

    @volume.setter
    def volume(self, value: int) -> None:
        self._volume = max(0, min(100, int(value)))
        self._get_engine().setProperty("volume", self._volume / 100.0)

    def set_progress_handler(self, handler: ProgressHandler | None) -> None:
        """Register the word-progress callback."""

        self._on_progress = handler

    def set_completed_handler(self, handler: CompletedHandler | None) -> None:
        """Register the utterance-completed callback."""

        self._on_completed = handler

    def speak(self, payload: str) -> None:
        """Queue `payload` wrapped in the envelope for speech."""

        self._payload = payload
        self._payload_base = 0
        self._payload_consumed = 0
        self._say(payload)

    def pause(self) -> None:
        """Stop the audio but keep the utterance so `resume()` can continue it."""

        if self._state is not EngineState.SPEAKING:
            return
        self._active_name = None
        self._get_engine().stop()
        self._state = EngineState.PAUSED

    def resume(self) -> None:
        """Continue a paused utterance from the last reported word."""

        if self._state is not EngineState.PAUSED:
            return
        start = resume_offset(self._payload, self._payload_consumed)
        self._payload_base = start
        self._say(self._payload[start:])

    def cancel_all(self) -> None:
        """Stop speech and report completion for the cancelled utterance."""

        if self._state is EngineState.READY:
            return
        self._active_name = None
        self._get_engine().stop()
        self._state = EngineState.READY
        if self._on_completed is not None:
            self._on_completed()

    def select_voice(self, voice: str) -> None:
        """Switch to the first installed voice whose id or name contains `voice`."""

        engine = self._get_engine()
        wanted = voice.lower()
        for installed in engine.getProperty("voices"):
            if wanted in installed.id.lower() or wanted in installed.name.lower():
                engine.setProperty("voice", installed.id)
                return
        raise SpeechEngineError(f"Voice `{voice}` is not installed.")

    def voices(self) -> list[str]:
        """Return the names of installed voices."""

        return [installed.name for installed in self._get_engine().getProperty("voices")]

    def poll(self) -> None:
        """Pump pyttsx3's external event loop once."""

        if self._engine is not None:
            self._engine.iterate()

    def _say(self, payload: str) -> None:
        """Dispatch one enveloped payload under a fresh utterance name."""

        self._utterance_counter += 1
        name = f"utterance-{self._utterance_counter}"
        self._active_name = name
        self._state = EngineState.SPEAKING
        try:
            self._get_engine().say(self.envelope.wrap(payload), name)
        except RuntimeError as exc:
            self._state = EngineState.READY
            self._active_name = None
            raise SpeechEngineError(f"pyttsx3 rejected the utterance: {exc}") from exc

    def _handle_word(self, name: str, location: int, length: int) -> None:
        """Forward a pyttsx3 `started-word` event in original enveloped coordinates."""

        if name != self._active_name:
            return
        payload_offset = location - self.envelope.prefix_length + self._payload_base
        self._payload_consumed = max(self._payload_consumed, payload_offset)
        if self._on_progress is not None:
            self._on_progress(payload_offset + self.envelope.prefix_length, length)

    def _handle_finished(self, name: str, completed: bool) -> None:
        """Report completion when the active utterance ends on its own."""

        if name != self._active_name:
            return
        self._active_name = None
        self._state = EngineState.READY
        logger.debug("Utterance {} finished (completed={}).", name, completed)
        if self._on_completed is not None:
            self._on_completed()

    def _get_engine(self):
        """Lazy load the pyttsx3 engine and start its external loop."""

        if self._engine is None:
            try:
                import pyttsx3
            except ImportError as exc:
                raise SpeechEngineError(
                    "pyttsx3 is not installed. Install with: pip install pyttsx3"
                ) from exc
            try:
                engine = pyttsx3.init(self._driver_name)
            except (ImportError, RuntimeError, OSError) as exc:
                raise SpeechEngineError(f"Could not start the system synthesizer: {exc}") from exc
            engine.connect("started-word", self._handle_word)
            engine.connect("finished-utterance", self._handle_finished)
            engine.setProperty("rate", words_per_minute(self._rate))
            engine.setProperty("volume", self._volume / 100.0)
            engine.startLoop(False)
            logger.debug("pyttsx3 engine started.")
            self._engine = engine
        return self._engine
