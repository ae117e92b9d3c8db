import os
import logging
from pathlib import Path
from typing import Callable, Iterator, List, Optional
from concurrent.futures import ThreadPoolExecutor

from .. import config
from ..exceptions import FileReadError, ScanError
from ..metadata.naming import is_qualifying
from ..models import ImageRecord
from .loader import ImageLoader

# Receives a directory path relative to the scan root; True means "do not descend"
ExcludePredicate = Callable[[Path], bool]


def generated_dir_excluder(rel_dir: Path) -> bool:
    """Skips the watermark output directory directly under the root."""
    return rel_dir == Path(config.GENERATED_DIR_NAME)


class InventoryScanner:
    def __init__(self,
                 loader: ImageLoader,
                 exclude: Optional[ExcludePredicate] = generated_dir_excluder,
                 max_workers: int = 1):
        self.loader = loader
        self.exclude = exclude
        self.max_workers = max_workers

        # Files that could not be read during the last scan
        self.skipped: List[Path] = []

    def scan(self, root: Path) -> List[ImageRecord]:
        """
        Builds the initial mirror: one record per qualifying image under root.

        Raises ScanError if root or any subdirectory cannot be listed.
        An unreadable file is skipped with a warning and added to `skipped`;
        the sync outcome for that file is deferred until its next notification.
        """
        root = Path(root)
        self.skipped = []
        paths = list(self._iter_files(root))

        if self.max_workers <= 1:
            results = [self._load(p) for p in paths]
        else:
            logging.info(f"Parallel scan: {len(paths)} images, {self.max_workers} workers")
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                # map() keeps walk order
                results = list(executor.map(self._load, paths))

        records = [r for r in results if r is not None]
        logging.info(f"Scanned {root}: {len(records)} images, {len(self.skipped)} skipped")
        return records

    def _load(self, path: Path) -> Optional[ImageRecord]:
        try:
            return self.loader.load(path)
        except FileReadError as e:
            logging.warning(f"Skipping unreadable file: {e}")
            self.skipped.append(path)
            return None

    def _iter_files(self, root: Path) -> Iterator[Path]:
        """Depth-first walker using os.scandir, yielding qualifying images."""
        stack = [root]
        while stack:
            current = stack.pop()

            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError as e:
                raise ScanError(f"Cannot list directory {current}: {e}") from e

            # Sort for stable traversal order
            entries.sort(key=lambda e: e.name.lower())

            dirs = []
            files = []
            for e in entries:
                if e.is_dir(follow_symlinks=False):
                    d = Path(e.path)
                    if self.exclude and self.exclude(d.relative_to(root)):
                        logging.debug(f"Excluded directory: {d}")
                        continue
                    dirs.append(d)
                elif e.is_file(follow_symlinks=False) and is_qualifying(e.name):
                    files.append(Path(e.path))

            # Push dirs to stack (reversed so we process A before Z)
            for d in reversed(dirs):
                stack.append(d)

            for f in files:
                yield f
