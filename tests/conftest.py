"""Shared pytest fixtures for the full speechmap test suite."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from speechmap.models.datatypes import Highlight
from speechmap.playback.navigator import PlaybackNavigator
from speechmap.tts.engine import EngineState
from speechmap.tts.silent import SilentSpeechEngine


class EditorRecorder:
    """Editor stand-in that records every highlight and state notification."""

    def __init__(self) -> None:
        self.highlights: list[Highlight] = []
        self.states: list[EngineState] = []

    def on_highlight(self, highlight: Highlight) -> None:
        """Record one highlight request."""

        self.highlights.append(highlight)

    def on_state_change(self, state: EngineState) -> None:
        """Record one state notification."""

        self.states.append(state)


@pytest.fixture
def silent_engine() -> SilentSpeechEngine:
    """Provide a recording engine that replays word progress without audio."""

    return SilentSpeechEngine(installed_voices=("Silent", "Other"))


@pytest.fixture
def editor() -> EditorRecorder:
    """Provide an editor recorder for highlight and state assertions."""

    return EditorRecorder()


@pytest.fixture
def navigator(silent_engine: SilentSpeechEngine, editor: EditorRecorder) -> PlaybackNavigator:
    """Provide a navigator wired to the silent engine and the editor recorder."""

    return PlaybackNavigator(
        silent_engine,
        on_highlight=editor.on_highlight,
        on_state_change=editor.on_state_change,
    )


@pytest.fixture
def write_yaml(tmp_path: Path) -> Callable[[str, str], Path]:
    """Return a helper that writes YAML text into a temporary file."""

    def _write(name: str, text: str) -> Path:
        path = tmp_path / name
        path.write_text(text.strip() + "\n", encoding="utf-8")
        return path

    return _write
