from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from reshow.config import DEFAULT_PATTERN, Config, PatternSyntax, ViewerConfig, WatchConfig

EXAMPLES_DIR = Path(__file__).parent.parent / "docs" / "examples"


def test_defaults_drive_powerpoint() -> None:
    config = Config()

    assert config.watch == WatchConfig()
    assert config.watch.directory is None
    assert config.watch.pattern == DEFAULT_PATTERN
    assert config.watch.poll_interval_ms == 1000
    assert config.viewer == ViewerConfig(process_name="POWERPNT", command="powerpnt", show_flag="/s")


def test_powerpoint_example_matches_defaults() -> None:
    assert Config.from_file(EXAMPLES_DIR / "powerpoint.yaml") == Config()


def test_libreoffice_example() -> None:
    config = Config.from_file(EXAMPLES_DIR / "libreoffice.yaml")

    assert config.watch.pattern_syntax is PatternSyntax.Glob
    assert config.watch.directory == Path("~/Presentations").expanduser()
    assert config.watch.matches("talk.odp")
    assert not config.watch.matches("talk.pptx")
    assert config.viewer.process_name == "soffice.bin"
    assert config.viewer.termination_timeout == 5


def test_bad_pattern_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc_info:
        Config.from_file(EXAMPLES_DIR / "bad-pattern.yaml")

    assert exc_info.value.errors()[0]["loc"] == ("watch", "pattern")


def test_only_yaml_is_supported(tmp_path: Path) -> None:
    path = tmp_path / "reshow.toml"
    path.write_text("")

    with pytest.raises(NotImplementedError):
        Config.from_file(path)


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "reshow.yaml"
    path.write_text("")

    assert Config.from_file(path) == Config()


@pytest.mark.parametrize(
    ("raw", "expected"),
    (
        ("", None),
        ("   ", None),
        (None, None),
        ("/talks", Path("/talks")),
    ),
)
def test_directory_normalization(raw: str | None, expected: Path | None) -> None:
    assert WatchConfig(directory=raw).directory == expected


def test_relative_directories_are_made_absolute(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    assert WatchConfig(directory="talks").directory == tmp_path / "talks"


@pytest.mark.parametrize(
    "bad",
    (
        {"poll_interval_ms": 0},
        {"bogus": True},
        {"pattern": "("},
    ),
)
def test_invalid_watch_config(bad: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        WatchConfig.model_validate(bad)


def test_has_valid_directory(tmp_path: Path) -> None:
    assert WatchConfig(directory=tmp_path).has_valid_directory()
    assert not WatchConfig(directory=tmp_path / "nope").has_valid_directory()
    assert not WatchConfig().has_valid_directory()
