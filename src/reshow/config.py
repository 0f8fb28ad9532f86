from __future__ import annotations

import re
from enum import Enum
from fnmatch import translate
from functools import cached_property
from pathlib import Path
from typing import Annotated

from identify.identify import tags_from_path
from pydantic import Field, ValidationInfo, field_validator

from reshow.model import Model

DEFAULT_PATTERN = r"^[^~].*\.pptx$"


class PatternSyntax(Enum):
    Regex = "regex"
    Glob = "glob"


def compile_pattern(pattern: str, syntax: PatternSyntax) -> re.Pattern[str]:
    if syntax is PatternSyntax.Glob:
        # translate() only anchors the end of the name
        return re.compile("^" + translate(pattern), re.IGNORECASE)

    return re.compile(pattern, re.IGNORECASE)


class WatchConfig(Model):
    directory: Annotated[
        Path | None,
        Field(
            description="The directory to watch for presentation files. It is not watched recursively.",
        ),
    ] = None
    pattern_syntax: Annotated[
        PatternSyntax,
        Field(
            description="Whether the pattern is a regular expression or a glob.",
        ),
    ] = PatternSyntax.Regex
    pattern: Annotated[
        str,
        Field(
            description="Only files whose names match this pattern trigger a relaunch.",
        ),
    ] = DEFAULT_PATTERN
    poll_interval_ms: Annotated[
        int,
        Field(
            description="How long to wait, in milliseconds, while collecting changes into a single batch.",
            ge=1,
        ),
    ] = 1000

    @field_validator("directory", mode="before")
    @classmethod
    def empty_directory_is_unset(cls, directory: object) -> object:
        if isinstance(directory, str) and not directory.strip():
            return None

        return directory

    @field_validator("directory")
    @classmethod
    def expand_directory(cls, directory: Path | None) -> Path | None:
        return directory.expanduser().absolute() if directory is not None else None

    @field_validator("pattern")
    @classmethod
    def pattern_must_compile(cls, pattern: str, info: ValidationInfo) -> str:
        syntax = info.data.get("pattern_syntax", PatternSyntax.Regex)
        try:
            compile_pattern(pattern, PatternSyntax(syntax))
        except re.error as e:
            raise ValueError(f"invalid pattern {pattern!r}: {e}")

        return pattern

    @cached_property
    def compiled_pattern(self) -> re.Pattern[str]:
        return compile_pattern(self.pattern, PatternSyntax(self.pattern_syntax))

    def matches(self, path: str | Path) -> bool:
        return self.compiled_pattern.search(Path(path).name) is not None

    def has_valid_directory(self) -> bool:
        return self.directory is not None and self.directory.is_dir()


class ViewerConfig(Model):
    process_name: Annotated[
        str,
        Field(
            description="The name of the viewer's process. Every running process with this name is killed before a relaunch.",
            min_length=1,
        ),
    ] = "POWERPNT"
    command: Annotated[
        str,
        Field(
            description="The command used to start the viewer. It is looked up on the PATH.",
            min_length=1,
        ),
    ] = "powerpnt"
    show_flag: Annotated[
        str,
        Field(
            description="The flag that makes the viewer open the file in show (full-screen) mode.",
        ),
    ] = "/s"
    termination_timeout: Annotated[
        float,
        Field(
            description="How long to wait, in seconds, for killed viewer processes to exit.",
            ge=0,
        ),
    ] = 3


class Config(Model):
    watch: Annotated[
        WatchConfig,
        Field(
            description="Which files to watch.",
        ),
    ] = WatchConfig()
    viewer: Annotated[
        ViewerConfig,
        Field(
            description="Which viewer to relaunch, and how.",
        ),
    ] = ViewerConfig()

    @classmethod
    def from_file(cls, file: Path) -> Config:
        tags = tags_from_path(str(file))

        if "yaml" in tags:
            return cls.model_validate_yaml(file.read_text())
        else:
            raise NotImplementedError("Currently, only YAML files are supported.")
