"""Structured playback event logging.

Responsibilities:
- Emit concise, deterministic event lines for transforms and playback.
- Route every line through `loguru` with a plain message-only format.
"""

from __future__ import annotations

import sys
from typing import TextIO

from loguru import logger as _loguru_logger


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    return " " + " ".join(
        f"{key}={_sanitize_context_value(context[key])}" for key in sorted(context)
    )


class SpeechLogger:
    """Emit one deterministic line per transform or playback event."""

    def __init__(self, sink: TextIO | None = None, level: str = "INFO") -> None:
        """Point loguru at `sink` (stderr by default) with message-only formatting."""

        self._sink = sink or sys.stderr
        _loguru_logger.remove()
        _loguru_logger.add(self._sink, format="{message}", level=level, colorize=False)

    def event(self, stage: str, event: str, level: str = "INFO", **context: object) -> None:
        """Emit one structured event line."""

        _loguru_logger.log(
            level, f"[speech] level={level} stage={stage} event={event}{_format_context(context)}"
        )

    def log_transform(self, written_length: int, spoken_length: int, entries: int) -> None:
        """Emit a transform-complete event with the resulting sizes."""

        self.event(
            "transform",
            "complete",
            written_chars=written_length,
            spoken_chars=spoken_length,
            map_entries=entries,
        )

    def log_playback(self, event: str, **context: object) -> None:
        """Emit a playback event such as `start`, `restart`, `skip` or `stop`."""

        self.event("playback", event, **context)

    def log_failure(self, stage: str, error_type: str) -> None:
        """Emit a failure event without payload details."""

        self.event(stage, "failure", level="ERROR", error_type=error_type)
