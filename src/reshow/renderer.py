from __future__ import annotations

from types import TracebackType
from typing import Type

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.rule import Rule
from rich.style import Style
from rich.table import Table
from rich.text import Text

from reshow.changes import Action
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
from reshow.state import LaunchState, WatchStatus

prefix_format = "{timestamp:%H:%M:%S}  "
ACTION_TO_STYLE = {
    Action.Created: Style(color="green"),
    Action.Modified: Style(color="yellow"),
    Action.Deleted: Style(color="red"),
    Action.Renamed: Style(color="blue"),
}


class Renderer:
    def __init__(self, launch_state: LaunchState, console: Console):
        self.console = console

        self.status = WatchStatus.Idle
        self.directory: str | None = None
        self.launch_state = launch_state

        self.live = Live(console=console, auto_refresh=False, transient=True)

    def __enter__(self) -> None:
        self.live.start(refresh=True)

    def __exit__(
        self,
        exc_type: Type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.live.stop()

    def __call__(self, message: Message) -> None:
        self.handle_message(message)

    def handle_message(self, message: Message) -> None:
        parts: tuple[str | tuple[str, str] | tuple[str, Style] | Text, ...]

        match message:
            case WatchStatusChanged(status=status, directory=directory):
                self.status = status
                self.directory = str(directory) if directory is not None else None

                if status is WatchStatus.Watching:
                    parts = ("Started watching ", (str(directory), "bold"))
                else:
                    parts = ("Stopped watching ", (str(directory), "bold"))
            case ChangeSelected(batch=batch, selected=selected):
                changes = Text(" ").join(
                    Text(event.path.name, style=ACTION_TO_STYLE[event.action]) for event in batch
                )
                parts = (
                    "Relaunching ",
                    (selected.path.name, "bold"),
                    " due to detected changes: ",
                    changes,
                )
            case RelaunchSucceeded(record=record, pid=pid, killed=killed):
                self.launch_state = LaunchState(
                    last_launched_file=record.file,
                    last_launch_time=record.launched_at,
                )
                replaced = f", replacing pid {', '.join(map(str, killed))}" if killed else ""
                parts = (
                    "Launched ",
                    (str(record.file), "green"),
                    f" (pid {pid}{replaced})",
                )
            case RelaunchFailed(reason=reason):
                parts = ((reason, "red"),)
            case TerminationFailed(reason=reason):
                parts = ((reason, "yellow"),)
            case WatchRejected(reason=reason) | SettingsNotSaved(reason=reason):
                parts = ((reason, "red"),)
            case RecoveryFileMissing(reason=reason):
                parts = ((reason, "yellow"),)
            case _:
                self.update()
                return

        self.print_line(message, parts)
        self.update()

    def print_line(
        self,
        message: Message,
        parts: tuple[str | tuple[str, str] | tuple[str, Style] | Text, ...],
    ) -> None:
        prefix = Text(
            prefix_format.format_map({"timestamp": message.timestamp}),
            style=Style(dim=True),
        )

        g = Table.grid()
        g.add_row(prefix, Text.assemble(*parts))

        self.console.print(g)

    def info(self) -> RenderableType:
        table = Table.grid(padding=(0, 2, 0, 0), expand=False)

        if self.status is WatchStatus.Watching:
            status = Text.assemble(("Watching ", "green"), (self.directory or "", "bold"))
        else:
            status = Text("Idle", style=Style(color="yellow"))

        if self.launch_state.last_launched_file is not None:
            last = Text.assemble(
                "Last launched ",
                (str(self.launch_state.last_launched_file), "bold"),
                f" at {self.launch_state.last_launch_time:%Y-%m-%d %H:%M:%S}"
                if self.launch_state.last_launch_time is not None
                else "",
            )
        else:
            last = Text("Nothing launched yet", style=Style(dim=True))

        table.add_row(status, last)

        return Group(
            Rule(style=Style(color="green" if self.status is WatchStatus.Watching else "yellow")),
            table,
        )

    def update(self) -> None:
        self.live.update(self.info(), refresh=True)
