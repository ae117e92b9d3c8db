from pathlib import Path

from ..exceptions import FileReadError
from ..metadata import identity
from ..metadata.naming import relative_to_root
from ..models import ImageRecord
from .hasher import FileHasher


class ImageLoader:
    """Reads an image fully and builds its mirror record."""

    def __init__(self, root: Path, hasher: FileHasher = None):
        self.root = Path(root)
        self.hasher = hasher or FileHasher()

    def read_bytes(self, path: Path) -> bytes:
        try:
            return Path(path).read_bytes()
        except OSError as e:
            raise FileReadError(path, e) from e

    def load(self, path: Path) -> ImageRecord:
        path = Path(path)
        data = self.read_bytes(path)
        return ImageRecord(
            path=path,
            relative_path=relative_to_root(path, self.root),
            file_name=path.name,
            identity_token=identity.read(data),
            content_fingerprint=self.hasher.fingerprint(data),
        )
