"""
In-memory mirror of the on-disk image inventory.

The watch loop and in-flight pipelines touch the mirror from different
threads, so every access goes through one lock. Lookups hand out copies;
callers never hold a reference to a live record.
"""
import threading
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from ..models import ImageRecord


class Mirror:
    def __init__(self,
                 records: Iterable[ImageRecord] = (),
                 exists: Callable[[Path], bool] = Path.exists):
        self._records: List[ImageRecord] = [r.copy() for r in records]
        self._exists = exists
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def records(self) -> List[ImageRecord]:
        with self._lock:
            return [r.copy() for r in self._records]

    def find_by_path(self, path: Path) -> Optional[ImageRecord]:
        with self._lock:
            rec = self._by_path(Path(path))
            return rec.copy() if rec else None

    def find_by_token(self, token: str) -> Optional[ImageRecord]:
        """
        Returns the record carrying the token. If several do, the one whose
        file is still on disk wins.
        """
        if not token:
            return None
        with self._lock:
            rec = self._by_token(token)
            return rec.copy() if rec else None

    def upsert(self, record: ImageRecord) -> None:
        """Inserts a record, replacing any record at the same path."""
        with self._lock:
            self._records = [r for r in self._records if r.path != record.path]
            self._records.append(record.copy())

    def add_untagged(self, record: ImageRecord) -> bool:
        """
        Upserts a record read without a token, unless the record at its path
        already has one (a create assigned it and the write-back is pending).
        """
        with self._lock:
            existing = self._by_path(record.path)
            if existing is not None and existing.identity_token:
                return False
            self._records = [r for r in self._records if r.path != record.path]
            self._records.append(record.copy())
            return True

    def remove_by_path(self, path: Path) -> Optional[ImageRecord]:
        with self._lock:
            rec = self._by_path(Path(path))
            if rec is None:
                return None
            self._records.remove(rec)
            return rec.copy()

    def relocate(self, token: str, current: ImageRecord) -> None:
        """
        Points the token's record at `current` (new path/name/fingerprint).

        Any other record for the same token whose file is gone, and any
        record already sitting at the new path, is dropped.
        """
        with self._lock:
            keep = []
            for r in self._records:
                if r.path == current.path:
                    continue
                if r.identity_token == token and not self._exists(r.path):
                    continue
                keep.append(r)
            keep.append(current.copy())
            self._records = keep

    def assign_token(self, path: Path, token: str) -> bool:
        """Records the token a pipeline assigned to the file at `path`."""
        with self._lock:
            rec = self._by_path(Path(path))
            if rec is None:
                return False
            rec.identity_token = token
            return True

    def _by_path(self, path: Path) -> Optional[ImageRecord]:
        for r in self._records:
            if r.path == path:
                return r
        return None

    def _by_token(self, token: str) -> Optional[ImageRecord]:
        matches = [r for r in self._records if r.identity_token == token]
        if len(matches) > 1:
            for r in matches:
                if self._exists(r.path):
                    return r
        return matches[0] if matches else None
