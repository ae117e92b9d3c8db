import io
import threading

import pytest
from PIL import Image

from contentful_sync.exceptions import RemoteOperationError
from contentful_sync.models import RecordRef


def _jpeg_bytes(color=(200, 30, 30), size=(64, 48), exif=None) -> bytes:
    img = Image.new("RGB", size, color)
    out = io.BytesIO()
    if exif:
        img.save(out, format="JPEG", exif=exif)
    else:
        img.save(out, format="JPEG")
    return out.getvalue()


@pytest.fixture
def jpeg_bytes():
    """Factory for in-memory JPEGs: jpeg_bytes(color=..., size=..., exif=...)."""
    return _jpeg_bytes


@pytest.fixture
def make_jpeg():
    """Writes a JPEG to disk (creating parent dirs) and returns its path."""
    def _make(path, color=(200, 30, 30), size=(64, 48)):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(_jpeg_bytes(color, size))
        return path
    return _make


class FakeCatalog:
    """In-memory stand-in for ContentfulClient."""

    def __init__(self, records=()):
        self.assets = {r.identifier: r for r in records}
        self.calls = []
        self.uploads = {}
        self.fail_on = set()
        self._next_id = 0
        self._lock = threading.Lock()

    def _call(self, action, *args):
        with self._lock:
            self.calls.append((action,) + args)
        if action in self.fail_on:
            raise RemoteOperationError(action, "simulated failure", token=args[0] if args else None)

    def list_records(self):
        self._call('list')
        return list(self.assets.values())

    def create_record(self, display_name, description, file_name):
        self._call('create', display_name, description, file_name)
        with self._lock:
            self._next_id += 1
            ref = RecordRef(f"asset{self._next_id}", display_name, 1)
            self.assets[ref.identifier] = ref
        return ref

    def update_name(self, token, name, description):
        self._call('update', token, name, description)
        self.assets[token] = RecordRef(token, name)

    def delete_record(self, token):
        self._call('delete', token)
        self.assets.pop(token, None)

    def upload_asset(self, token, file_name, data):
        self._call('upload', token, file_name)
        self.uploads[token] = (file_name, data)

    def actions(self):
        return [c[0] for c in self.calls]


@pytest.fixture
def catalog():
    return FakeCatalog()
