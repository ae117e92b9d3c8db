import logging
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from . import config
from .exceptions import ContentfulSyncError, FileReadError
from .metadata import identity
from .metadata.naming import parse_display_name
from .models import EventKind, ImageRecord, Notification, SyncEvent
from .scanning.filesystem import InventoryScanner, generated_dir_excluder
from .scanning.loader import ImageLoader
from .sync.classifier import EventClassifier
from .sync.guard import OperationGuard
from .sync.mirror import Mirror
from .sync.reconcile import Action, ActionKind, reconcile
from .watching.watcher import DirectoryWatcher


class SyncApp:
    """
    Wires the engine to its collaborators.

    `client` is the remote catalog (ContentfulClient or anything with the same
    methods), `transform` produces the watermarked copy (Watermarker).
    """

    def __init__(self,
                 root: Path,
                 client,
                 transform,
                 max_workers: int = config.DEFAULT_MAX_WORKERS,
                 exclude=generated_dir_excluder):
        self.root = Path(root)
        self.client = client
        self.transform = transform

        self.loader = ImageLoader(self.root)
        self.scanner = InventoryScanner(self.loader, exclude=exclude, max_workers=max_workers)
        self.mirror = Mirror()
        self.guard = OperationGuard()
        self.classifier = EventClassifier(self.mirror, self.loader)

        self.notifications: queue.Queue = queue.Queue()
        self.watcher = DirectoryWatcher(self.root, self.notifications)
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='pipeline')
        self._stop = threading.Event()

    # --- Startup ---

    def start(self, dry_run: bool = False) -> List[Action]:
        """
        Scans the tree, reconciles it with Contentful and applies the result.
        Raises ScanError (fatal) or RemoteOperationError if assets can't be listed.
        """
        logging.info(f"Scanning {self.root}...")
        for record in self.scanner.scan(self.root):
            self.mirror.upsert(record)

        remote = self.client.list_records()
        actions = reconcile(self.mirror.records(), remote)
        logging.info(f"Reconciliation: {len(actions)} actions for {len(self.mirror)} images")

        if dry_run:
            for action in actions:
                logging.info(f"[DRY RUN] {action.kind.value} {action.record.relative_path} "
                             f"-> '{action.display_name}'")
            return actions

        self.apply(actions)
        return actions

    def apply(self, actions: List[Action]):
        for action in tqdm(actions, desc="Reconciling", disable=not actions):
            rec = action.record
            try:
                if action.kind is ActionKind.CREATE:
                    with self.guard.creating(rec.path):
                        self._create(rec, action.display_name, action.description)
                else:
                    logging.info(f"Renaming asset {rec.identity_token} to '{action.display_name}'")
                    self.client.update_name(rec.identity_token, action.display_name, action.description)
            except ContentfulSyncError as e:
                logging.error(f"{action.kind.value} failed for {rec.relative_path} "
                              f"(asset {rec.identity_token or '-'}): {e}")

    # --- Watch loop ---

    def run(self):
        """Watches the tree until stop() is called."""
        self.watcher.start()
        try:
            while not self._stop.is_set():
                if not self.watcher.is_running:
                    logging.error(f"Watcher for {self.root} stopped unexpectedly")
                    break
                try:
                    notification = self.notifications.get(timeout=config.QUEUE_POLL_INTERVAL)
                except queue.Empty:
                    continue
                self.handle_notification(notification)
        finally:
            self.watcher.stop()
            self.close()

    def stop(self):
        self._stop.set()

    def close(self):
        self.executor.shutdown(wait=True)

    def handle_notification(self, notification: Notification) -> Optional[Future]:
        try:
            event = self.classifier.classify(notification)
        except FileReadError as e:
            logging.warning(f"Skipping {notification.kind.value} notification: {e}")
            return None
        except Exception:
            logging.exception(f"Failed to classify {notification.kind.value} for {notification.path}")
            return None

        if event is None:
            return None
        logging.info(f"{event.kind.value}: {event.record.relative_path}")
        return self.dispatch(event)

    def dispatch(self, event: SyncEvent) -> Optional[Future]:
        """Submits the pipeline for an event, unless the guard drops it."""
        if self.guard.should_suppress(event):
            return None

        rec = event.record
        # Markers go up before the pipeline is queued, so its own write-back
        # can't slip through while it waits for a worker
        if event.kind is EventKind.CREATED:
            self.guard.mark_creating(rec.path)
        elif event.kind is EventKind.CONTENT_CHANGED:
            self.guard.mark_updating(rec.identity_token)

        try:
            return self.executor.submit(self._run_pipeline, event)
        except RuntimeError:
            self._release(event)
            raise

    def _run_pipeline(self, event: SyncEvent):
        rec = event.record
        try:
            if event.kind is EventKind.CREATED:
                name, description = parse_display_name(rec.file_name)
                self._create(rec, name, description)
            elif event.kind is EventKind.RENAMED:
                self._rename(rec)
            elif event.kind is EventKind.CONTENT_CHANGED:
                self._update_content(rec)
            elif event.kind is EventKind.DELETED:
                self._delete(rec)
        except ContentfulSyncError as e:
            logging.error(f"{event.kind.value} failed for {rec.relative_path} "
                          f"(asset {rec.identity_token or '-'}): {e}. Touch the file to retry.")
        except Exception:
            logging.exception(f"Unexpected error in {event.kind.value} pipeline for {rec.relative_path}")
        finally:
            self._release(event)

    def _release(self, event: SyncEvent):
        if event.kind is EventKind.CREATED:
            self.guard.release_creating(event.record.path)
        elif event.kind is EventKind.CONTENT_CHANGED:
            self.guard.release_updating(event.record.identity_token)

    # --- Pipelines ---

    def _create(self, rec: ImageRecord, name: str, description: str) -> str:
        """
        Watermark, create the asset, tag both copies with its id, upload.
        Returns the new token.
        """
        logging.info(f"Creating, watermarking and uploading new asset at {rec.relative_path}")
        result = self.transform.transform(rec.path, rec.file_name, rec.relative_path)
        # An asset for a file we can't tag would be orphaned on every retry
        identity.ensure_taggable(result.original_bytes)
        identity.ensure_taggable(result.transformed_bytes)

        ref = self.client.create_record(name, description, result.transformed_file_name)
        token = ref.identifier

        # Mirror first: the write below raises a notification that must find this token
        self.mirror.assign_token(rec.path, token)
        try:
            identity.write_file_token(rec.path, token)
        except ContentfulSyncError:
            self.mirror.assign_token(rec.path, '')
            logging.error(f"Asset {token} was created but could not be tagged into {rec.relative_path}")
            raise
        watermarked = identity.write_file_token(result.transformed_path, token)

        self.client.upload_asset(token, result.transformed_file_name, watermarked)
        logging.info(f"Done, created asset {token} for {rec.relative_path}")
        return token

    def _rename(self, rec: ImageRecord):
        name, description = parse_display_name(rec.file_name)
        logging.info(f"Updating name of asset {rec.identity_token} to '{name}'")
        self.client.update_name(rec.identity_token, name, description)

    def _update_content(self, rec: ImageRecord):
        logging.info(f"Updating image on asset {rec.identity_token} from {rec.relative_path}")
        result = self.transform.transform(rec.path, rec.file_name, rec.relative_path)
        watermarked = identity.write_file_token(result.transformed_path, rec.identity_token)
        self.client.upload_asset(rec.identity_token, result.transformed_file_name, watermarked)

    def _delete(self, rec: ImageRecord):
        if not rec.identity_token:
            logging.info(f"{rec.relative_path} was never synced; nothing to delete")
            return
        logging.info(f"Deleting asset {rec.identity_token} ({rec.relative_path})")
        self.client.delete_record(rec.identity_token)
