from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

import yaml
from typer.testing import CliRunner

from reshow.cli import cli
from reshow.state import LaunchRecord, SettingsStore

runner = CliRunner()

EXAMPLES_DIR = Path(__file__).parent.parent / "docs" / "examples"
POWERPOINT = str(EXAMPLES_DIR / "powerpoint.yaml")


def assert_exit_code(result: Any, code: int) -> None:
    assert result.exit_code == code, result.output
    # an exception escaping the command also exits with 1
    assert result.exception is None or isinstance(result.exception, SystemExit), repr(
        result.exception
    )


def test_settings_are_changed_and_remembered(isolated_settings: Path, tmp_path: Path) -> None:
    result = runner.invoke(
        cli,
        (
            "settings",
            "--watch-on-start",
            "--relaunch-last-on-start",
            "--directory",
            str(tmp_path),
        ),
    )

    assert_exit_code(result, 0)

    saved = yaml.safe_load(isolated_settings.read_text())
    assert saved["watch_on_start"] is True
    assert saved["relaunch_last_on_start"] is True
    assert saved["directory"] == str(tmp_path)

    result = runner.invoke(cli, ("settings", "--no-watch-on-start"))

    assert_exit_code(result, 0)

    settings = SettingsStore(isolated_settings).settings
    assert not settings.watch_on_start
    assert settings.relaunch_last_on_start
    assert settings.directory == tmp_path


def test_settings_file_can_be_given_explicitly(tmp_path: Path) -> None:
    path = tmp_path / "elsewhere.yaml"

    result = runner.invoke(cli, ("--settings", str(path), "settings", "--watch-on-start"))

    assert_exit_code(result, 0)
    assert SettingsStore(path).settings.watch_on_start


def test_launch_last_with_nothing_launched(isolated_settings: Path) -> None:
    result = runner.invoke(cli, ("launch-last", "--config", POWERPOINT))

    assert_exit_code(result, 1)
    assert "Nothing has been launched yet" in result.output


def test_launch_last_with_missing_file(isolated_settings: Path, tmp_path: Path) -> None:
    missing = tmp_path / "missing.pptx"
    record = LaunchRecord(file=missing, launched_at=datetime(2024, 5, 1, 9, 30))
    SettingsStore(isolated_settings).record_launch(record)

    result = runner.invoke(cli, ("launch-last", "--config", POWERPOINT), env={"COLUMNS": "1000"})

    assert_exit_code(result, 1)
    assert "no longer exists" in result.output

    assert SettingsStore(isolated_settings).launch_state.last_launched_file == missing


def test_watch_without_a_directory_fails(isolated_settings: Path) -> None:
    result = runner.invoke(cli, ("watch", "", "--config", POWERPOINT), env={"COLUMNS": "1000"})

    assert_exit_code(result, 1)
    assert "select a directory" in result.output


def test_config_is_shown(isolated_settings: Path) -> None:
    result = runner.invoke(cli, ("config", "--config", str(EXAMPLES_DIR / "libreoffice.yaml")))

    assert_exit_code(result, 0)
    assert "soffice.bin" in result.output


def test_invalid_config_is_reported(isolated_settings: Path) -> None:
    result = runner.invoke(cli, ("config", "--config", str(EXAMPLES_DIR / "bad-pattern.yaml")))

    assert_exit_code(result, 1)
    assert "watch.pattern" in result.output


def test_run_with_nothing_to_do_exits_cleanly(isolated_settings: Path) -> None:
    result = runner.invoke(cli, ("run", "--config", POWERPOINT))

    assert_exit_code(result, 0)
    assert "Finished in" in result.output
