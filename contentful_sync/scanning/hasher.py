import hashlib
from typing import List

from ..metadata.identity import JPEG_SOI

SOS = 0xDA
COM = 0xFE
APP0, APP15 = 0xE0, 0xEF


class FileHasher:
    def fingerprint(self, data: bytes) -> str:
        """
        Computes a content fingerprint for an image.

        Metadata segments (APP0-APP15, COM) are left out, so rewriting EXIF
        (including our own token write-back) keeps the fingerprint while any
        change to the image payload changes it.
        Non-JPEG or truncated data is hashed as-is.
        """
        h = hashlib.sha256()
        for part in self._payload(data):
            h.update(part)
        return h.hexdigest()

    def _payload(self, data: bytes) -> List[bytes]:
        if not data.startswith(JPEG_SOI):
            return [data]

        parts = [JPEG_SOI]
        pos = 2
        while pos + 4 <= len(data):
            if data[pos] != 0xFF:
                return [data]
            marker = data[pos + 1]
            if marker == 0xFF:
                # Fill byte
                pos += 1
                continue
            if marker == SOS:
                # Entropy-coded data runs to EOI; no more headers to skip
                parts.append(data[pos:])
                return parts

            length = int.from_bytes(data[pos + 2:pos + 4], 'big')
            end = pos + 2 + length
            if length < 2 or end > len(data):
                return [data]
            if not (APP0 <= marker <= APP15 or marker == COM):
                parts.append(data[pos:end])
            pos = end

        return [data]
