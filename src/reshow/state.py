from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml
from pydantic import Field, ValidationError, field_validator

from reshow.errors import FileNotFound, PersistenceFailed
from reshow.model import Model

logger = logging.getLogger(__name__)

SETTINGS_VERSION = 1


class WatchStatus(Enum):
    Idle = "idle"
    Watching = "watching"


class LaunchRecord(Model):
    file: Path
    launched_at: datetime

    @field_validator("launched_at")
    @classmethod
    def whole_seconds(cls, launched_at: datetime) -> datetime:
        return launched_at.replace(microsecond=0)


class LaunchState(Model):
    last_launched_file: Path | None = None
    last_launch_time: datetime | None = None

    def is_same_launch(self, record: LaunchRecord) -> bool:
        return self.last_launched_file == record.file and self.last_launch_time == record.launched_at

    def recoverable_file(self) -> Path | None:
        """
        The last launched file, if there is one to relaunch.

        Raises FileNotFound if it has been deleted or moved since it was launched.
        """
        if self.last_launched_file is None:
            return None

        if not self.last_launched_file.exists():
            raise FileNotFound(self.last_launched_file)

        return self.last_launched_file


class Settings(Model):
    directory: Annotated[
        Path | None,
        Field(
            description="The most recently selected directory to watch.",
        ),
    ] = None
    watch_on_start: Annotated[
        bool,
        Field(
            description="Start watching the selected directory as soon as the application starts.",
        ),
    ] = False
    relaunch_last_on_start: Annotated[
        bool,
        Field(
            description="Relaunch the last launched file as soon as the application starts.",
        ),
    ] = False
    last_launched_file: Path | None = None
    last_launch_time: datetime | None = None
    settings_version: int = SETTINGS_VERSION

    @property
    def launch_state(self) -> LaunchState:
        return LaunchState(
            last_launched_file=self.last_launched_file,
            last_launch_time=self.last_launch_time,
        )


def default_settings_path() -> Path:
    return Path(typer.get_app_dir("reshow")) / "settings.yaml"


class SettingsStore:
    """
    Reads and writes the persisted Settings.

    The in-memory copy only changes once a write has succeeded, so it always
    mirrors what is on disk.
    """

    def __init__(self, path: Path):
        self.path = path
        self._settings: Settings | None = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    @property
    def launch_state(self) -> LaunchState:
        return self.settings.launch_state

    def load(self) -> Settings:
        if not self.path.exists():
            return Settings()

        try:
            return Settings.model_validate_yaml(self.path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError, ValidationError) as e:
            logger.warning("Ignoring unreadable settings file %s: %s", self.path, e)
            return Settings()

    def save(self, settings: Settings) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(settings.model_dump_yaml(), encoding="utf-8")
        except OSError as e:
            raise PersistenceFailed(path=self.path, error=e) from e

        self._settings = settings
        logger.debug("Saved settings to %s", self.path)

    def update(self, **changes: Any) -> Settings:
        updated = Settings.model_validate(self.settings.model_dump() | changes)

        if updated != self.settings:
            self.save(updated)

        return self.settings

    def select_directory(self, directory: Path | None) -> Settings:
        return self.update(directory=directory)

    def record_launch(self, record: LaunchRecord) -> bool:
        """
        Persist a successful launch.

        Returns whether anything was written; recording the same launch twice is a no-op.
        """
        if self.launch_state.is_same_launch(record):
            return False

        self.update(last_launched_file=record.file, last_launch_time=record.launched_at)

        return True
