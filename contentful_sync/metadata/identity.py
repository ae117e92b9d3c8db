"""
Identity token codec.

The Contentful asset id of an image is stored inside the image itself, in the
EXIF XPComment field of the 0th IFD, as UTF-16LE text prefixed with
config.TOKEN_PREFIX. The prefix keeps us from mistaking an ordinary Windows
comment for a token.
"""
import io
import logging
from pathlib import Path
from typing import Any, Dict

import piexif

from .. import config
from ..exceptions import FileReadError, MetadataError

JPEG_SOI = b'\xff\xd8'
APP0 = b'\xff\xe0'
APP1 = b'\xff\xe1'
MAX_SEGMENT_LEN = 0xFFFF


def load_exif(data: bytes) -> Dict[str, Any]:
    """Parses the EXIF block of a JPEG. Raises MetadataError."""
    if not data.startswith(JPEG_SOI):
        raise MetadataError("Not a JPEG image")
    try:
        return piexif.load(data)
    except Exception as e:
        raise MetadataError(f"Unreadable EXIF block: {e}") from e


def encode_token(token: str) -> bytes:
    return (config.TOKEN_PREFIX + token).encode(config.TOKEN_ENCODING)


def decode_token(raw) -> str:
    if isinstance(raw, (tuple, list)):
        raw = bytes(raw)
    if not isinstance(raw, bytes):
        return ''
    if len(raw) % 2:
        raw = raw[:-1]

    text = raw.decode(config.TOKEN_ENCODING, errors='ignore').replace('\x00', '')
    if not text.startswith(config.TOKEN_PREFIX):
        return ''
    return text[len(config.TOKEN_PREFIX):].strip()


def read(data: bytes) -> str:
    """
    Returns the identity token embedded in an image, or '' when the field is
    missing, foreign, padding-only or the EXIF block is malformed.
    """
    try:
        exif = load_exif(data)
    except MetadataError as e:
        logging.debug(f"Treating image as untagged: {e}")
        return ''

    raw = exif.get('0th', {}).get(config.TOKEN_EXIF_TAG)
    if raw is None:
        return ''
    return decode_token(raw)


def write(data: bytes, token: str) -> bytes:
    """
    Returns a copy of the image with the token embedded. Any existing EXIF
    segment is replaced by a rebuilt one; all other tags are carried over.
    """
    exif = load_exif(data)
    exif.setdefault('0th', {})[config.TOKEN_EXIF_TAG] = encode_token(token)

    try:
        exif_bytes = piexif.dump(exif)
    except Exception as e:
        raise MetadataError(f"Cannot rebuild EXIF block: {e}") from e

    segment_len = len(exif_bytes) + 2
    if segment_len > MAX_SEGMENT_LEN:
        raise MetadataError(f"EXIF block too large ({segment_len} bytes)")

    stripped = io.BytesIO()
    piexif.remove(data, stripped)
    body = stripped.getvalue()

    # piexif.insert() overwrites a JFIF APP0 segment; splice after it instead
    insert_at = 2
    if body[2:4] == APP0:
        insert_at = 4 + int.from_bytes(body[4:6], 'big')
    segment = APP1 + segment_len.to_bytes(2, 'big') + exif_bytes
    return body[:insert_at] + segment + body[insert_at:]


def ensure_taggable(data: bytes) -> None:
    """Raises MetadataError if a token could not be embedded into this image."""
    write(data, '')


def read_file_token(path: Path) -> str:
    return read(Path(path).read_bytes())


def write_file_token(path: Path, token: str) -> bytes:
    """
    Embeds the token into the file on disk and returns the new bytes.
    Raises FileReadError if the file is gone or unreadable, MetadataError if
    the token cannot be embedded or the file cannot be rewritten.
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise FileReadError(path, e) from e

    new_data = write(data, token)
    try:
        path.write_bytes(new_data)
    except OSError as e:
        raise MetadataError(f"Cannot write token into {path}: {e}") from e
    return new_data
