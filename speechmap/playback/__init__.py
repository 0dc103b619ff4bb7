"""Playback navigation and callback marshaling.

This package drives an engine from editor actions and maps engine progress back
to written-text highlights.
"""

from .dispatch import CallbackMarshal
from .navigator import (
    PlaybackNavigator,
    RestartMarker,
    estimated_chars_per_second,
    skip_budget,
)

__all__ = [
    "CallbackMarshal",
    "PlaybackNavigator",
    "RestartMarker",
    "estimated_chars_per_second",
    "skip_budget",
]
