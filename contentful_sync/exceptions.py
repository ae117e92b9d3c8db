"""
Custom exception hierarchy for contentful-sync.

Only ScanError is fatal (raised while building the initial mirror). Everything
else is logged by the watch loop or the pipeline that hit it, and the next
filesystem notification for the same file acts as the retry.
"""


class ContentfulSyncError(Exception):
    """Base exception for all contentful-sync errors."""
    pass


class ConfigError(ContentfulSyncError):
    """Raised when required settings are missing or invalid."""
    pass


class ScanError(ContentfulSyncError):
    """Raised when the root or a subdirectory cannot be listed."""
    pass


class FileReadError(ContentfulSyncError):
    """Raised when a single image file cannot be read."""

    def __init__(self, path, reason):
        self.path = path
        super().__init__(f"Cannot read {path}: {reason}")


class MetadataError(ContentfulSyncError):
    """Raised when an image's EXIF block cannot be parsed or rebuilt."""
    pass


class TransformError(ContentfulSyncError):
    """Raised when the watermark transform cannot decode or encode an image."""
    pass


class RemoteOperationError(ContentfulSyncError):
    """Raised when a Contentful create/update/delete/upload/list call fails."""

    def __init__(self, action, message, token=None, status=None):
        self.action = action
        self.token = token
        self.status = status
        detail = f"{action} failed"
        if token:
            detail += f" for asset {token}"
        if status is not None:
            detail += f" (HTTP {status})"
        super().__init__(f"{detail}: {message}")
