"""Exception types raised by the export and import pipeline."""
from enum import Enum


class TabbyGrabbyError(Exception):
    """Base class for all Tabby Grabby errors."""


class CollectionError(TabbyGrabbyError):
    """Reading native tabs or bookmarks failed."""


class TabCollectionError(CollectionError):
    pass


class BookmarkCollectionError(CollectionError):
    pass


class RestoreError(TabbyGrabbyError):
    """Creating native tabs or bookmarks failed."""


class TabRestoreError(RestoreError):
    pass


class BookmarkRestoreError(RestoreError):
    pass


class ExportError(TabbyGrabbyError):
    """An export could not be completed. No file was produced."""


class DownloadError(TabbyGrabbyError):
    """The document sink failed to persist an assembled export."""


class ImportFailure(str, Enum):
    INVALID_FORMAT = "invalid_format"
    INVALID_SCHEMA = "invalid_schema"
    UNREADABLE = "unreadable"


class ImportDataError(TabbyGrabbyError):
    """An import document was rejected before any native change was made."""

    def __init__(self, message: str, reason: ImportFailure):
        super().__init__(message)
        self.reason = reason
