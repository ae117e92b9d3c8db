"""
In-flight markers for running pipelines.

Creating an asset writes the new token back into the original file, and that
write raises a filesystem notification of its own; a copy into the tree also
fires several notifications before the token lands. Without these markers
they would start a second create, rename or upload for the same asset. The
guard only drops events a pipeline in flight already covers; it does not
queue or serialize real edits.
"""
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Set

from ..models import EventKind, SyncEvent


class OperationGuard:
    def __init__(self):
        self._creating: Set[Path] = set()
        self._updating: Set[str] = set()
        self._lock = threading.Lock()

    def mark_creating(self, path: Path) -> None:
        with self._lock:
            self._creating.add(Path(path))

    def release_creating(self, path: Path) -> None:
        with self._lock:
            self._creating.discard(Path(path))

    def mark_updating(self, token: str) -> None:
        with self._lock:
            self._updating.add(token)

    def release_updating(self, token: str) -> None:
        with self._lock:
            self._updating.discard(token)

    def is_creating(self, path: Path) -> bool:
        with self._lock:
            return Path(path) in self._creating

    def is_updating(self, token: str) -> bool:
        with self._lock:
            return token in self._updating

    @contextmanager
    def creating(self, path: Path) -> Iterator[None]:
        self.mark_creating(path)
        try:
            yield
        finally:
            self.release_creating(path)

    @contextmanager
    def updating(self, token: str) -> Iterator[None]:
        self.mark_updating(token)
        try:
            yield
        finally:
            self.release_updating(token)

    def should_suppress(self, event: SyncEvent) -> bool:
        """
        True for an event a running pipeline caused or already covers:

        - anything but a delete on a path whose creation is in flight (the
          repeated notifications of one copy, and the token write-back)
        - a content change on a token whose update is in flight
        """
        rec = event.record
        if event.kind is EventKind.DELETED:
            return False
        if self.is_creating(rec.path):
            logging.debug(f"Dropping {event.kind.value} for {rec.relative_path}: creation in flight")
            return True
        if event.kind is EventKind.CONTENT_CHANGED and rec.identity_token and self.is_updating(rec.identity_token):
            logging.debug(f"Dropping content change for {rec.relative_path}: update in flight "
                          f"for asset {rec.identity_token}")
            return True
        return False
