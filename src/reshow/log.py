from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from reshow.messages import (
    ChangeSelected,
    Message,
    RecoveryFileMissing,
    RelaunchFailed,
    RelaunchSucceeded,
    SettingsNotSaved,
    TerminationFailed,
    WatchRejected,
    WatchStatusChanged,
)

logger = logging.getLogger("reshow")

FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def setup_logging(level: str = "WARNING", file: Path | None = None, console: Console | None = None) -> None:
    logger.setLevel(logging.DEBUG)

    if logger.handlers:
        return

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    rich_handler.setLevel(level.upper())
    logger.addHandler(rich_handler)

    if file is not None:
        file.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(file, maxBytes=2_000_000, backupCount=3, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(fh)


def log_message(message: Message) -> None:
    match message:
        case WatchStatusChanged(status=status, directory=directory):
            logger.info("Watch status is now %s (%s)", status.value, directory)
        case ChangeSelected(selected=selected, batch=batch):
            logger.info(
                "Selected %s (%s) out of %d change(s)",
                selected.path,
                selected.action.value,
                len(batch),
            )
        case RelaunchSucceeded(record=record, pid=pid):
            logger.info("Launched %s (pid %d) at %s", record.file, pid, record.launched_at)
        case RelaunchFailed(file=file, reason=reason):
            logger.error("Failed to launch %s: %s", file, reason)
        case TerminationFailed(reason=reason):
            logger.warning("%s", reason)
        case WatchRejected(reason=reason) | SettingsNotSaved(reason=reason):
            logger.warning("%s", reason)
        case RecoveryFileMissing(reason=reason):
            logger.warning("%s", reason)
        case _:
            logger.debug("%r", message)
