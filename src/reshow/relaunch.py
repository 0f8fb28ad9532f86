from __future__ import annotations

from asyncio import Queue, to_thread
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from reshow.config import ViewerConfig
from reshow.errors import LaunchFailed, ProcessTerminationFailed
from reshow.messages import Message, RelaunchFailed, RelaunchSucceeded, TerminationFailed
from reshow.state import LaunchRecord
from reshow.viewer import kill_viewers, start_viewer


@dataclass(frozen=True)
class Relauncher:
    """
    Replaces whatever viewer is running with a fresh one showing a given file.

    This runs off the coordinator's message loop: it only touches OS processes,
    and reports what happened by posting messages to the coordinator's inbox.
    """

    viewer: ViewerConfig

    events: Queue[Message] = field(repr=False)

    clock: Callable[[], datetime] = field(default=datetime.now, repr=False)

    async def relaunch(self, file: Path) -> LaunchRecord:
        try:
            killed = await to_thread(kill_viewers, self.viewer)
        except ProcessTerminationFailed as e:
            killed = e.killed
            await self.events.put(
                TerminationFailed(
                    killed=e.killed,
                    failures=len(e.failures),
                    reason=str(e),
                )
            )

        try:
            pid = await to_thread(start_viewer, self.viewer, file)
        except LaunchFailed as e:
            await self.events.put(
                RelaunchFailed(
                    file=file,
                    command=e.command,
                    reason=str(e),
                )
            )
            raise

        record = LaunchRecord(file=file, launched_at=self.clock())

        await self.events.put(RelaunchSucceeded(record=record, pid=pid, killed=killed))

        return record
