"""
Startup reconciliation: diff the mirror against the assets Contentful knows.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List

from ..metadata.naming import parse_display_name
from ..models import ImageRecord, RecordRef


class ActionKind(Enum):
    CREATE = 'create'
    RENAME = 'rename'


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    record: ImageRecord
    display_name: str
    description: str


def reconcile(records: Iterable[ImageRecord], remote_records: Iterable[RecordRef]) -> List[Action]:
    """
    Returns the catch-up actions needed before live watching starts.

    - untagged image                     -> CREATE
    - tagged, asset missing (stale id)   -> CREATE
    - tagged, asset title differs        -> RENAME
    - tagged, asset title matches        -> nothing
    """
    remote: Dict[str, RecordRef] = {r.identifier: r for r in remote_records}
    actions: List[Action] = []

    for rec in records:
        name, description = parse_display_name(rec.file_name)

        if not rec.identity_token:
            actions.append(Action(ActionKind.CREATE, rec, name, description))
            continue

        ref = remote.get(rec.identity_token)
        if ref is None:
            logging.info(f"Asset {rec.identity_token} for {rec.relative_path} no longer exists remotely")
            actions.append(Action(ActionKind.CREATE, rec, name, description))
        elif ref.display_name != name:
            actions.append(Action(ActionKind.RENAME, rec, name, description))

    return actions
