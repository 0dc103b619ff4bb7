"""Domain exceptions for rule loading, playback, and CLI diagnostics."""

from __future__ import annotations


class SpeechStageError(RuntimeError):
    """Raised when a specific command stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class MalformedRuleError(ValueError):
    """Raised when a rule or shortcut record is missing or has an invalid attribute."""


class SpeechEngineError(RuntimeError):
    """Raised when the speech engine cannot be created or rejects an utterance."""
