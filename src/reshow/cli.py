from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from time import monotonic
from typing import Any, Optional

import typer.rich_utils as ru
from pydantic import ValidationError
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.style import Style
from rich.syntax import Syntax
from rich.text import Text
from typer import Argument, Context, Exit, Option, Typer

from reshow.config import Config, WatchConfig
from reshow.coordinator import Coordinator
from reshow.errors import PersistenceFailed
from reshow.log import setup_logging
from reshow.renderer import Renderer
from reshow.state import SettingsStore, default_settings_path

ru.STYLE_HELPTEXT = ""

cli = Typer(pretty_exceptions_enable=False, no_args_is_help=True)


@dataclass(frozen=True)
class App:
    console: Console
    store: SettingsStore


def config_option() -> Any:
    return Option(
        default=None,
        exists=True,
        readable=True,
        dir_okay=False,
        show_default=True,
        envvar="RESHOWFILE",
        help="The path to the configuration file to use.",
    )


@cli.callback()
def main(
    ctx: Context,
    settings: Optional[Path] = Option(
        default=None,
        dir_okay=False,
        envvar="RESHOW_SETTINGS",
        help="The path to the file where settings and the last launched file are remembered.",
    ),
    log_level: str = Option(
        default="WARNING",
        help="The minimum level of log messages to show on the console.",
    ),
    log_file: Optional[Path] = Option(
        default=None,
        dir_okay=False,
        help="If given, also write detailed logs to this file.",
    ),
) -> None:
    console = Console()

    setup_logging(level=log_level, file=log_file)

    ctx.obj = App(console=console, store=SettingsStore(settings or default_settings_path()))


@cli.command()
def run(
    ctx: Context,
    config: Optional[Path] = config_option(),
) -> None:
    """
    Start up the way the settings say to: watch the last selected directory
    if watching on start is enabled, and relaunch the last launched file if
    relaunching on start is enabled.
    """
    app: App = ctx.obj
    parsed_config = load_config(app.console, config)

    settings = app.store.settings
    coordinator = make_coordinator(app, parsed_config)

    raise Exit(
        code=run_coordinator(
            app,
            coordinator,
            watch=settings.watch_on_start,
            recover=settings.relaunch_last_on_start,
        )
    )


@cli.command()
def watch(
    ctx: Context,
    directory: Optional[str] = Argument(
        default=None,
        help="The directory to watch. It is remembered for next time. If not given, the last selected directory is watched.",
    ),
    relaunch_last: Optional[bool] = Option(
        None,
        "--relaunch-last/--no-relaunch-last",
        help="Relaunch the last launched file before waiting for changes. Defaults to the relaunch-on-start setting.",
        show_default=False,
    ),
    config: Optional[Path] = config_option(),
) -> None:
    """
    Watch a directory and relaunch the viewer whenever a matching file is created or modified.
    """
    app: App = ctx.obj
    parsed_config = load_config(app.console, config)

    coordinator = make_coordinator(app, parsed_config)
    if directory is not None:
        coordinator.select_directory(directory)

    raise Exit(
        code=run_coordinator(
            app,
            coordinator,
            watch=True,
            recover=app.store.settings.relaunch_last_on_start
            if relaunch_last is None
            else relaunch_last,
        )
    )


@cli.command(name="launch-last")
def launch_last(
    ctx: Context,
    config: Optional[Path] = config_option(),
) -> None:
    """
    Relaunch the viewer on the last launched file.
    """
    app: App = ctx.obj
    parsed_config = load_config(app.console, config)

    file = app.store.launch_state.last_launched_file
    if file is None:
        app.console.print(Text("Nothing has been launched yet.", style=Style(color="red")))
        raise Exit(code=1)

    code = run_coordinator(app, make_coordinator(app, parsed_config), recover=True)

    raise Exit(code=code if file.exists() else 1)


@cli.command(name="settings")
def settings_(
    ctx: Context,
    directory: Optional[Path] = Option(
        None,
        exists=True,
        file_okay=False,
        dir_okay=True,
        help="Select the directory to watch.",
    ),
    watch_on_start: Optional[bool] = Option(
        None,
        "--watch-on-start/--no-watch-on-start",
        help="Whether `reshow run` starts watching immediately.",
        show_default=False,
    ),
    relaunch_last_on_start: Optional[bool] = Option(
        None,
        "--relaunch-last-on-start/--no-relaunch-last-on-start",
        help="Whether `reshow run` relaunches the last launched file immediately.",
        show_default=False,
    ),
) -> None:
    """
    Show or change the remembered settings.
    """
    app: App = ctx.obj

    changes = {
        k: v
        for k, v in (
            ("directory", directory.absolute() if directory is not None else None),
            ("watch_on_start", watch_on_start),
            ("relaunch_last_on_start", relaunch_last_on_start),
        )
        if v is not None
    }

    try:
        settings = app.store.update(**changes)
    except PersistenceFailed as e:
        app.console.print(f"[red]ERROR[/red] {e}")
        raise Exit(code=1)

    app.console.print(
        Panel(
            Syntax(settings.model_dump_yaml(), "yaml"),
            title=str(app.store.path),
            title_align="left",
        )
    )


@cli.command(name="config")
def config_(
    ctx: Context,
    config: Optional[Path] = config_option(),
) -> None:
    """
    Show the configuration that would be used, without running anything.
    """
    app: App = ctx.obj
    parsed_config = load_config(app.console, config)

    app.console.print(
        Panel(
            JSON(parsed_config.model_dump_json()),
            title="Configuration",
            title_align="left",
        )
    )


def load_config(console: Console, config: Path | None) -> Config:
    config = config or find_config_file()
    if config is None:
        return Config()

    try:
        return Config.from_file(config)
    except ValidationError as e:
        for err in e.errors():
            loc = ".".join(map(str, err["loc"]))
            msg = err["msg"]
            console.print(f"[red]ERROR[/red] {loc} -> {msg}")
        raise Exit(code=1)
    except NotImplementedError as e:
        console.print(f"[red]ERROR[/red] {config} -> {e}")
        raise Exit(code=1)


def find_config_file() -> Path | None:
    cwd = Path.cwd()
    for dir in (cwd, *cwd.parents):
        contents = set(dir.iterdir())
        for name in ("reshow.yaml", "reshow.yml"):
            if (path := dir / name) in contents:
                return path

        if dir / ".git" in contents:
            break

    return None


def resolve_watch_config(config: Config, store: SettingsStore) -> WatchConfig:
    if config.watch.directory is None and store.settings.directory is not None:
        return config.watch.model_copy(update={"directory": store.settings.directory})

    return config.watch


def make_coordinator(app: App, config: Config) -> Coordinator:
    return Coordinator(
        watch=resolve_watch_config(config, app.store),
        viewer=config.viewer,
        store=app.store,
    )


def run_coordinator(app: App, coordinator: Coordinator, watch: bool = False, recover: bool = False) -> int:
    start_time = monotonic()

    renderer = Renderer(launch_state=app.store.launch_state, console=app.console)
    coordinator.observers.append(renderer)

    try:
        with renderer:
            return asyncio.run(coordinator.run(watch=watch, recover=recover))
    except KeyboardInterrupt:
        return 0
    finally:
        end_time = monotonic()

        app.console.print(Text(f"Finished in {end_time - start_time:.3f} seconds.", style=Style(dim=True)))


if __name__ == "__main__":
    cli()
