"""Integration-test fixtures for deterministic CLI runs."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

import pytest

SEQUIM_RULES = """
pronunciations:
  - written_text: Sequim
    pronounced_text: Skwim
    type: spelling
    case_sensitive: false
    whole_word: true
shortcuts:
  - shortcut_text: brb
    replacement_text: be right back
"""


@pytest.fixture(autouse=True)
def _clear_speechmap_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer `SPEECHMAP_*` variables from leaking into CLI runs."""

    for key in list(os.environ):
        if key.startswith("SPEECHMAP_"):
            monkeypatch.delenv(key)


@pytest.fixture
def write_text(tmp_path: Path) -> Callable[[str, str], Path]:
    """Return a helper that writes an exact UTF-8 text file under `tmp_path`."""

    def _write(name: str, text: str) -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sequim_rules(tmp_path: Path) -> Path:
    """Write a rule file that respells `Sequim` as `Skwim`."""

    path = tmp_path / "rules.yml"
    path.write_text(SEQUIM_RULES.lstrip(), encoding="utf-8")
    return path
