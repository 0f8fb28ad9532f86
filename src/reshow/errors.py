from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class ReshowError(Exception):
    pass


class NoDirectorySelected(ReshowError):
    def __init__(self, directory: Path | None):
        self.directory = directory

        if directory is None:
            msg = "Please select a directory to watch before attempting to watch it."
        else:
            msg = f"Cannot watch {str(directory)!r}: it is not an existing directory."

        super().__init__(msg)


class ProcessTerminationFailed(ReshowError):
    """
    One or more matching viewer processes could not be killed.

    Only the first error is reported, but every matching process was attempted.
    """

    def __init__(self, killed: Sequence[int], failures: Sequence[tuple[int, Exception]]):
        self.killed = tuple(killed)
        self.failures = tuple(failures)

        pid, error = self.failures[0]
        extra = len(self.failures) - 1
        more = f" (and {extra} more)" if extra else ""

        super().__init__(f"Failed to kill viewer process {pid}: {error}{more}")

    @property
    def first_error(self) -> Exception:
        return self.failures[0][1]


class LaunchFailed(ReshowError):
    def __init__(self, command: Sequence[str], error: OSError):
        self.command = tuple(command)
        self.error = error

        super().__init__(f"Failed to start viewer {self.command[0]!r}: {error}")


class FileNotFound(ReshowError):
    def __init__(self, file: Path):
        self.file = file

        super().__init__(f"Could not launch {str(file)!r} because it no longer exists.")


class PersistenceFailed(ReshowError):
    def __init__(self, path: Path, error: Exception):
        self.path = path
        self.error = error

        super().__init__(f"Failed to persist settings to {str(path)!r}: {error}")
