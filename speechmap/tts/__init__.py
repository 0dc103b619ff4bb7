"""Speech engine boundary and adapters.

This package contains the engine protocol, the markup envelope, and the
pyttsx3-backed and silent engine implementations.
"""

from .engine import EngineState, SpeechEngine, SpeechEnvelope
from .pyttsx3_engine import Pyttsx3SpeechEngine
from .silent import SilentSpeechEngine

__all__ = [
    "EngineState",
    "Pyttsx3SpeechEngine",
    "SilentSpeechEngine",
    "SpeechEngine",
    "SpeechEnvelope",
]
