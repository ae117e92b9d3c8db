import logging
from pathlib import Path
from typing import Callable, Optional

from ..metadata.naming import is_qualifying
from ..models import ChangeKind, EventKind, ImageRecord, Notification, SyncEvent
from ..scanning.loader import ImageLoader
from .mirror import Mirror


class EventClassifier:
    """
    Turns raw filesystem notifications into sync events, keeping the mirror
    up to date as it goes.

    The OS delivers notifications at least once and one logical write can
    produce several (a move fires for the old path and the new one), so most
    branches below exist to recognise a notification that carries no news.
    """

    def __init__(self,
                 mirror: Mirror,
                 loader: ImageLoader,
                 exists: Callable[[Path], bool] = Path.exists):
        self.mirror = mirror
        self.loader = loader
        self._exists = exists

    def classify(self, notification: Notification) -> Optional[SyncEvent]:
        """
        Returns the event for a notification, or None.

        Raises FileReadError if the file exists but cannot be read; the
        caller logs it and moves on.
        """
        path = Path(notification.path)
        if not is_qualifying(path.name):
            return None

        # 1. Gone from disk: delete if we were tracking it
        if not self._exists(path):
            removed = self.mirror.remove_by_path(path)
            if removed is None:
                return None
            return SyncEvent(EventKind.DELETED, removed)

        # 2. Re-read
        current = self.loader.load(path)
        token = current.identity_token

        # 3. Never synced: new image
        if not token:
            if notification.kind is ChangeKind.MODIFIED:
                if not self.mirror.add_untagged(current):
                    logging.debug(f"{current.relative_path} already has a token pending write-back")
                    return None
                return SyncEvent(EventKind.CREATED, current.copy())
            return None

        # 4. Known token
        known = self.mirror.find_by_token(token)
        if known is None:
            # TODO: decide with product whether an unknown token should re-adopt the file
            logging.warning(f"No mirror record for asset {token} at {current.relative_path}; ignoring")
            return None

        if known.path != path and self._exists(known.path):
            # The file for this token is still at its old location
            logging.debug(f"Stale notification for {current.relative_path}, "
                          f"asset {token} lives at {known.relative_path}")
            return None

        return self._relocate(known, current)

    def _relocate(self, known: ImageRecord, current: ImageRecord) -> SyncEvent:
        token = known.identity_token
        if known.content_fingerprint == current.content_fingerprint:
            kind = EventKind.RENAMED
        else:
            kind = EventKind.CONTENT_CHANGED

        self.mirror.relocate(token, current)
        logging.debug(f"{kind.value}: asset {token} {known.relative_path} -> {current.relative_path}")
        return SyncEvent(kind, current.copy())
