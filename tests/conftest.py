from __future__ import annotations

from pathlib import Path

import pytest

from reshow.messages import Message
from reshow.state import SettingsStore


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "app" / "settings.yaml"
    monkeypatch.setenv("RESHOW_SETTINGS", str(path))
    return path


@pytest.fixture
def store(isolated_settings: Path) -> SettingsStore:
    return SettingsStore(isolated_settings)


@pytest.fixture
def messages() -> list[Message]:
    return []
