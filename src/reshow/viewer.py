from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from pathlib import Path

import psutil

from reshow.config import ViewerConfig
from reshow.errors import LaunchFailed, ProcessTerminationFailed

logger = logging.getLogger(__name__)


def normalize_process_name(name: str) -> str:
    name = name.strip().casefold()
    return name.removesuffix(".exe")


def find_viewer_processes(process_name: str) -> list[psutil.Process]:
    wanted = normalize_process_name(process_name)

    matches = []
    for p in psutil.process_iter(attrs=["name"]):
        # info is filled in by process_iter; inaccessible names come back as None
        name = p.info.get("name")
        if name and normalize_process_name(str(name)) == wanted:
            matches.append(p)

    return matches


def kill_viewers(viewer: ViewerConfig) -> tuple[int, ...]:
    """
    Forcefully kill every running process that looks like the viewer.

    Returns the pids that were killed. Every matching process is attempted even if
    an earlier one fails; if any of them could not be killed (or did not exit within
    the termination timeout), a ProcessTerminationFailed is raised afterwards.
    """
    processes = find_viewer_processes(viewer.process_name)

    signalled = []
    failures: list[tuple[int, Exception]] = []
    for p in processes:
        try:
            p.kill()
        except psutil.NoSuchProcess:
            # exited before we could kill it
            continue
        except (psutil.AccessDenied, OSError) as e:
            failures.append((p.pid, e))
            continue

        signalled.append(p)

    gone, alive = psutil.wait_procs(signalled, timeout=viewer.termination_timeout)
    for p in alive:
        failures.append(
            (
                p.pid,
                psutil.TimeoutExpired(viewer.termination_timeout, pid=p.pid),
            )
        )

    killed = tuple(sorted(p.pid for p in gone))

    if killed:
        logger.info("Killed viewer processes %s", ", ".join(map(str, killed)))

    if failures:
        raise ProcessTerminationFailed(killed=killed, failures=failures)

    return killed


def viewer_command(viewer: ViewerConfig, file: Path) -> list[str]:
    exe = shutil.which(viewer.command) or viewer.command

    args = [exe]
    if viewer.show_flag:
        args.append(viewer.show_flag)
    args.append(str(file))

    return args


def command_line(command: list[str]) -> str:
    if os.name == "nt":
        return subprocess.list2cmdline(command)

    return shlex.join(command)


def start_viewer(viewer: ViewerConfig, file: Path) -> int:
    """
    Start the viewer on the given file and return its pid.

    This does not wait for the viewer to exit; whatever the viewer does after it
    starts is not our concern.
    """
    command = viewer_command(viewer, file)

    logger.debug("Starting viewer: %s", command_line(command))

    try:
        process = subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        raise LaunchFailed(command=command, error=e) from e

    return process.pid
