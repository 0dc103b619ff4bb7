"""Engine factory helpers for playback commands.

Responsibilities:
- Resolve engine identifiers to concrete speech engine adapters.
- Keep commands independent from concrete adapter construction.

Notes:
- `pyttsx3` drives the system synthesizer; `silent` replays progress without audio.
"""

from __future__ import annotations

from .tts.engine import SpeechEngine, SpeechEnvelope
from .tts.pyttsx3_engine import Pyttsx3SpeechEngine
from .tts.silent import SilentSpeechEngine


class EngineFactory:
    """Factory for speech engine adapters used by the CLI."""

    @staticmethod
    def create(engine_id: str, envelope: SpeechEnvelope | None = None) -> SpeechEngine:
        """Create a speech engine for a configured engine identifier."""

        if engine_id == "pyttsx3":
            return Pyttsx3SpeechEngine(envelope=envelope)
        if engine_id == "silent":
            return SilentSpeechEngine(envelope=envelope)
        raise ValueError(f"Unsupported speech engine `{engine_id}`.")
