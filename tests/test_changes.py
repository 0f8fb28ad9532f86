from __future__ import annotations

import os
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from watchfiles import Change

from reshow.changes import Action, ChangeEvent, batch_from_changes, select
from reshow.config import PatternSyntax, WatchConfig

T0 = datetime(2024, 5, 1, 9, 0, 0)


def event(name: str, action: Action, seconds: float) -> ChangeEvent:
    return ChangeEvent(
        path=Path("/talks") / name,
        modified_at=T0 + timedelta(seconds=seconds),
        action=action,
    )


def test_newest_created_or_modified_file_is_selected() -> None:
    batch = (
        event("a.pptx", Action.Modified, 10),
        event("b.pptx", Action.Created, 20),
        event("c.pptx", Action.Deleted, 30),
    )

    assert select(batch) is batch[1]


def test_selection_does_not_depend_on_batch_order() -> None:
    newest = event("b.pptx", Action.Modified, 20)
    batch = (
        newest,
        event("a.pptx", Action.Created, 10),
        event("c.pptx", Action.Modified, 5),
    )

    assert select(batch) is newest


@pytest.mark.parametrize(
    "batch",
    (
        (),
        (event("a.pptx", Action.Deleted, 10),),
        (event("a.pptx", Action.Renamed, 10),),
        (
            event("a.pptx", Action.Deleted, 10),
            event("b.pptx", Action.Renamed, 20),
        ),
    ),
)
def test_nothing_is_selected_without_creations_or_modifications(
    batch: tuple[ChangeEvent, ...]
) -> None:
    assert select(batch) is None


def test_ties_go_to_the_later_event() -> None:
    a = event("a.pptx", Action.Modified, 10)
    b = event("b.pptx", Action.Created, 10)

    assert select((a, b)) is b
    assert select((b, a)) is a


@pytest.mark.parametrize(
    ("config", "name", "expected"),
    (
        (WatchConfig(), "deck.pptx", True),
        (WatchConfig(), "Deck.PPTX", True),
        (WatchConfig(), "~$deck.pptx", False),
        (WatchConfig(), "deck.ppt", False),
        (WatchConfig(), "deck.pptx.bak", False),
        (WatchConfig(pattern="*.pptx", pattern_syntax=PatternSyntax.Glob), "deck.pptx", True),
        (WatchConfig(pattern="*.pptx", pattern_syntax=PatternSyntax.Glob), "deck.odp", False),
        (WatchConfig(pattern="deck*.pptx", pattern_syntax=PatternSyntax.Glob), "deck-v2.pptx", True),
        (WatchConfig(pattern="deck*.pptx", pattern_syntax=PatternSyntax.Glob), "olddeck.pptx", False),
        (WatchConfig(pattern="[!~]*.pptx", pattern_syntax=PatternSyntax.Glob), "deck.pptx", True),
        (WatchConfig(pattern="[!~]*.pptx", pattern_syntax=PatternSyntax.Glob), "~$deck.pptx", False),
        (WatchConfig(pattern=r"\.odp$"), "/somewhere/talk.odp", True),
    ),
)
def test_pattern_matches_file_names(config: WatchConfig, name: str, expected: bool) -> None:
    assert config.matches(name) is expected


def test_batch_from_changes(tmp_path: Path) -> None:
    older = tmp_path / "older.pptx"
    newer = tmp_path / "newer.pptx"
    lock = tmp_path / "~$newer.pptx"
    notes = tmp_path / "notes.txt"
    gone = tmp_path / "gone.pptx"

    for path in (older, newer, lock, notes):
        path.write_text("")

    os.utime(older, (T0.timestamp(), T0.timestamp()))
    os.utime(newer, (T0.timestamp() + 60, T0.timestamp() + 60))

    now = T0 + timedelta(hours=1)
    batch = batch_from_changes(
        {
            (Change.modified, str(older)),
            (Change.added, str(newer)),
            (Change.added, str(lock)),
            (Change.modified, str(notes)),
            (Change.deleted, str(gone)),
        },
        WatchConfig(directory=tmp_path),
        now=now,
    )

    assert batch == (
        ChangeEvent(path=gone, modified_at=now, action=Action.Deleted),
        ChangeEvent(path=newer, modified_at=T0 + timedelta(seconds=60), action=Action.Created),
        ChangeEvent(path=older, modified_at=T0, action=Action.Modified),
    )

    selected = select(batch)
    assert selected is not None
    assert selected.path == newer


def test_files_that_vanish_before_they_are_inspected_count_as_deleted(tmp_path: Path) -> None:
    vanished = tmp_path / "vanished.pptx"

    batch = batch_from_changes({(Change.added, str(vanished))}, WatchConfig(), now=T0)

    assert batch == (ChangeEvent(path=vanished, modified_at=T0, action=Action.Deleted),)
    assert select(batch) is None
