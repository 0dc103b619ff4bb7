"""Telemetry and observability helpers.

This package emits deterministic event lines for transforms and playback.
"""

from .logger import SpeechLogger

__all__ = ["SpeechLogger"]
