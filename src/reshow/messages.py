from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import Field

from reshow.changes import ChangeBatch, ChangeEvent
from reshow.model import Model
from reshow.state import LaunchRecord, WatchStatus


class Message(Model):
    timestamp: datetime = Field(default_factory=datetime.now)


class WatchStatusChanged(Message):
    status: WatchStatus
    directory: Path | None


class WatchRejected(Message):
    directory: Path | None
    reason: str


class ChangeSelected(Message):
    batch: ChangeBatch
    selected: ChangeEvent


class RelaunchSucceeded(Message):
    record: LaunchRecord
    pid: int
    killed: tuple[int, ...] = ()


class RelaunchFailed(Message):
    file: Path
    command: tuple[str, ...]
    reason: str


class TerminationFailed(Message):
    killed: tuple[int, ...]
    failures: int
    reason: str


class RecoveryFileMissing(Message):
    file: Path
    reason: str


class SettingsNotSaved(Message):
    path: Path
    reason: str


class StartWatching(Message):
    pass


class StopWatching(Message):
    pass


class Quit(Message):
    pass
