from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from enum import Enum
from pathlib import Path

from watchfiles import Change

from reshow.config import WatchConfig
from reshow.model import Model


class Action(Enum):
    Created = "created"
    Modified = "modified"
    Deleted = "deleted"
    Renamed = "renamed"


TRIGGERING_ACTIONS = frozenset({Action.Created, Action.Modified})

CHANGE_TO_ACTION = {
    Change.added: Action.Created,
    Change.modified: Action.Modified,
    Change.deleted: Action.Deleted,
}


class ChangeEvent(Model):
    path: Path
    modified_at: datetime
    action: Action

    @property
    def triggers_relaunch(self) -> bool:
        return self.action in TRIGGERING_ACTIONS


ChangeBatch = tuple[ChangeEvent, ...]


def select(batch: Iterable[ChangeEvent]) -> ChangeEvent | None:
    """
    Reduce a batch of changes to the single change that should be acted on.

    Only creations and modifications count. Among those, the most recently
    modified file wins; on equal timestamps, the one that appears later in the
    batch wins.
    """
    selected = None
    for event in batch:
        if not event.triggers_relaunch:
            continue

        if selected is None or event.modified_at >= selected.modified_at:
            selected = event

    return selected


def batch_from_changes(
    changes: Iterable[tuple[Change, str]],
    config: WatchConfig,
    now: datetime | None = None,
) -> ChangeBatch:
    now = now or datetime.now()

    events = []
    # watchfiles hands us an unordered set
    for change, raw_path in sorted(changes, key=lambda c: (c[1], c[0].value)):
        path = Path(raw_path).absolute()
        if not config.matches(path):
            continue

        action = CHANGE_TO_ACTION[change]
        modified_at = now

        if action is not Action.Deleted:
            try:
                modified_at = datetime.fromtimestamp(path.stat().st_mtime)
            except FileNotFoundError:
                # deleted again before we got to look at it
                action = Action.Deleted

        events.append(ChangeEvent(path=path, modified_at=modified_at, action=action))

    return tuple(events)
