from __future__ import annotations

import logging
import signal
from asyncio import Queue, Task, create_task, gather, get_running_loop
from collections.abc import Callable, Iterable
from pathlib import Path

from watchfiles import Change, awatch

from reshow.changes import batch_from_changes, select
from reshow.config import ViewerConfig, WatchConfig
from reshow.errors import FileNotFound, LaunchFailed, NoDirectorySelected, PersistenceFailed
from reshow.messages import (
    ChangeSelected,
    Message,
    Quit,
    RecoveryFileMissing,
    RelaunchFailed,
    RelaunchSucceeded,
    SettingsNotSaved,
    StartWatching,
    StopWatching,
    WatchRejected,
    WatchStatusChanged,
)
from reshow.log import log_message
from reshow.relaunch import Relauncher
from reshow.state import LaunchRecord, SettingsStore, WatchStatus

logger = logging.getLogger(__name__)

Observer = Callable[[Message], None]


class Coordinator:
    """
    Owns the watch state, the persisted settings, and the observers.

    Everything that happens in the background (the directory watcher and the
    relaunches it triggers) reports back by putting messages into the inbox;
    only handle_messages() consumes the inbox, so it is the only place where
    settings are written and observers are notified.
    """

    def __init__(
        self,
        watch: WatchConfig,
        viewer: ViewerConfig,
        store: SettingsStore,
        observers: Iterable[Observer] = (),
    ):
        self.watch_config = watch
        self.viewer = viewer
        self.store = store
        self.observers = list(observers)

        self.inbox: Queue[Message] = Queue()
        self.relauncher = Relauncher(viewer=viewer, events=self.inbox)

        self.status = WatchStatus.Idle
        self.watcher: Task[None] | None = None
        self.watchers: set[Task[None]] = set()
        self.relaunches: set[Task[LaunchRecord | None]] = set()
        self.failed = False

    async def run(self, watch: bool = False, recover: bool = False) -> int:
        loop = get_running_loop()

        # the handler runs outside the loop, so it has to wake the loop up
        previous_handler = signal.signal(
            signal.SIGINT,
            lambda sig, frame: loop.call_soon_threadsafe(self.inbox.put_nowait, Quit()),
        )

        try:
            if watch and not self.start_watching():
                self.failed = True
            if recover:
                self.recover()

            await self.handle_messages()
        finally:
            if previous_handler is not None:
                signal.signal(signal.SIGINT, previous_handler)

            self.stop_watching()

            await gather(*self.watchers, return_exceptions=True)

            # Relaunches that are already under way are allowed to finish.
            await gather(*self.relaunches, return_exceptions=True)
            self.drain()

        return 1 if self.failed else 0

    async def handle_messages(self) -> None:
        while not self.is_idle():
            message = await self.inbox.get()
            if not self.apply(message):
                return

    def drain(self) -> None:
        while not self.inbox.empty():
            message = self.inbox.get_nowait()
            # nothing new gets started once we are shutting down
            if isinstance(message, (ChangeSelected, StartWatching)):
                continue

            self.apply(message)

    def apply(self, message: Message) -> bool:
        match message:
            case ChangeSelected(selected=selected):
                self.spawn_relaunch(selected.path)

            case RelaunchSucceeded(record=record):
                self.persist_launch(record)

            case RelaunchFailed():
                self.failed = True

            case StartWatching():
                self.start_watching()

            case StopWatching():
                self.stop_watching()

            case Quit():
                self.notify(message)
                return False

        self.notify(message)

        return True

    def is_idle(self) -> bool:
        return (
            self.status is WatchStatus.Idle
            and all(t.done() for t in self.relaunches)
            and self.inbox.empty()
        )

    def notify(self, message: Message) -> None:
        log_message(message)

        for observer in self.observers:
            observer(message)

    def start_watching(self) -> bool:
        if self.status is WatchStatus.Watching:
            return True

        if not self.watch_config.has_valid_directory():
            error = NoDirectorySelected(self.watch_config.directory)
            self.notify(WatchRejected(directory=self.watch_config.directory, reason=str(error)))
            return False

        self.watcher = create_task(
            watch(config=self.watch_config, events=self.inbox),
            name=f"Watch {self.watch_config.directory}",
        )
        self.watchers.add(self.watcher)
        self.watcher.add_done_callback(self.watcher_done)
        self.set_status(WatchStatus.Watching)

        return True

    def watcher_done(self, task: Task[None]) -> None:
        self.watchers.discard(task)

        if task.cancelled() or task is not self.watcher:
            return

        if (error := task.exception()) is not None:
            logger.error("Stopped watching %s: %s", self.watch_config.directory, error)
        self.inbox.put_nowait(StopWatching())

    def stop_watching(self) -> None:
        if self.watcher is not None:
            self.watcher.cancel()
            self.watcher = None

        if self.status is WatchStatus.Watching:
            self.set_status(WatchStatus.Idle)

    def toggle(self) -> WatchStatus:
        if self.status is WatchStatus.Watching:
            self.stop_watching()
        else:
            self.start_watching()

        return self.status

    def set_status(self, status: WatchStatus) -> None:
        self.status = status
        self.notify(WatchStatusChanged(status=status, directory=self.watch_config.directory))

    def select_directory(self, directory: Path | str | None) -> None:
        watching = self.status is WatchStatus.Watching
        if watching:
            self.stop_watching()

        self.watch_config = WatchConfig.model_validate(
            self.watch_config.model_dump() | {"directory": directory}
        )

        if self.watch_config.has_valid_directory():
            try:
                self.store.select_directory(self.watch_config.directory)
            except PersistenceFailed as e:
                self.report_persistence_failure(e)

        if watching:
            self.start_watching()

    def recover(self) -> Task[LaunchRecord | None] | None:
        try:
            file = self.store.launch_state.recoverable_file()
        except FileNotFound as e:
            self.notify(RecoveryFileMissing(file=e.file, reason=str(e)))
            return None

        if file is None:
            return None

        return self.spawn_relaunch(file)

    def spawn_relaunch(self, file: Path) -> Task[LaunchRecord | None]:
        async def relaunch() -> LaunchRecord | None:
            try:
                return await self.relauncher.relaunch(file)
            except LaunchFailed:
                # already reported through the inbox
                return None

        task = create_task(relaunch(), name=f"Relaunch {file}")
        self.relaunches.add(task)
        task.add_done_callback(self.relaunches.discard)

        return task

    def persist_launch(self, record: LaunchRecord) -> None:
        try:
            self.store.record_launch(record)
        except PersistenceFailed as e:
            self.report_persistence_failure(e)

    def report_persistence_failure(self, error: PersistenceFailed) -> None:
        self.notify(SettingsNotSaved(path=error.path, reason=str(error)))


async def watch(config: WatchConfig, events: Queue[Message]) -> None:
    if config.directory is None:  # pragma: unreachable
        raise Exception("Cannot watch without a directory")

    def watch_filter(change: Change, path: str) -> bool:
        return config.matches(path)

    async for changes in awatch(
        config.directory,
        watch_filter=watch_filter,
        step=config.poll_interval_ms,
        poll_delay_ms=config.poll_interval_ms,
        recursive=False,
    ):
        batch = batch_from_changes(changes, config)
        if (selected := select(batch)) is not None:
            await events.put(ChangeSelected(batch=batch, selected=selected))
