from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Optional


@dataclass
class ImageRecord:
    """
    One qualifying image on disk, as mirrored in memory.
    """
    path: Path
    relative_path: str      # POSIX, relative to the watched root
    file_name: str
    identity_token: str     # '' until the asset exists in Contentful
    content_fingerprint: str

    def copy(self) -> 'ImageRecord':
        return replace(self)


class ChangeKind(Enum):
    MODIFIED = 'modified'
    REMOVED = 'removed'


@dataclass(frozen=True)
class Notification:
    """Raw filesystem notification, as delivered by the watcher."""
    kind: ChangeKind
    path: Path


class EventKind(Enum):
    CREATED = 'created'
    RENAMED = 'renamed'
    CONTENT_CHANGED = 'content_changed'
    DELETED = 'deleted'


@dataclass(frozen=True)
class SyncEvent:
    kind: EventKind
    record: ImageRecord     # snapshot; last-known record for DELETED


@dataclass(frozen=True)
class RecordRef:
    """A Contentful asset as seen by the sync engine."""
    identifier: str
    display_name: str
    version: Optional[int] = None


@dataclass(frozen=True)
class TransformResult:
    original_bytes: bytes
    transformed_bytes: bytes
    transformed_path: Path
    transformed_relative_path: str
    transformed_file_name: str
