import os
import logging
import queue
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..metadata.naming import has_image_ext, is_generated
from ..models import ChangeKind, Notification


class NotificationHandler(FileSystemEventHandler):
    """
    Translates watchdog events into Notifications on a queue.

    Created and modified both become MODIFIED; a move is reported as the
    destination being written, then the source disappearing. The
    destination must come first so the classifier sees the token at its new
    path while the old one is already gone (a rename, not a delete).
    """

    def __init__(self, notifications: queue.Queue):
        super().__init__()
        self.notifications = notifications

    def on_created(self, event: FileSystemEvent):
        self._push(ChangeKind.MODIFIED, event.src_path, event)

    def on_modified(self, event: FileSystemEvent):
        self._push(ChangeKind.MODIFIED, event.src_path, event)

    def on_deleted(self, event: FileSystemEvent):
        self._push(ChangeKind.REMOVED, event.src_path, event)

    def on_moved(self, event: FileSystemEvent):
        self._push(ChangeKind.MODIFIED, event.dest_path, event)
        self._push(ChangeKind.REMOVED, event.src_path, event)

    def _push(self, kind: ChangeKind, raw_path, event: FileSystemEvent):
        if event.is_directory:
            return
        path = Path(os.fsdecode(raw_path))
        if not has_image_ext(path.name) or is_generated(path.name):
            return
        self.notifications.put(Notification(kind, path))


class DirectoryWatcher:
    """Recursive watch on the asset directory, feeding a notification queue."""

    def __init__(self, root: Path, notifications: queue.Queue):
        self.root = Path(root)
        self.notifications = notifications
        self.observer = None

    @property
    def is_running(self) -> bool:
        return self.observer is not None and self.observer.is_alive()

    def start(self):
        handler = NotificationHandler(self.notifications)
        self.observer = Observer()
        self.observer.schedule(handler, str(self.root), recursive=True)
        self.observer.start()
        logging.info(f"Started watching {self.root}")

    def stop(self):
        if self.observer is None:
            return
        self.observer.stop()
        self.observer.join()
        self.observer = None
        logging.info("Stopped watching")
