"""Import of a previously exported document into the browser."""
import asyncio
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from tabby_grabby.bookmark_codec import BookmarkTreeCodec, count_bookmarks
from tabby_grabby.capabilities import BrowserCapabilities
from tabby_grabby.config import Config, get_config
from tabby_grabby.errors import ImportDataError, ImportFailure
from tabby_grabby.models import ExportDocument
from tabby_grabby.tab_snapshot import TabSnapshot
from tabby_grabby.validator import validate_import_data


@dataclass
class ImportResult:
    success: bool = True
    tabs_imported: int = 0
    bookmarks_imported: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "tabsImported": self.tabs_imported,
            "bookmarksImported": self.bookmarks_imported,
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class ImportPreview:
    valid: bool
    tab_count: int = 0
    bookmark_count: int = 0
    export_info: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.valid:
            return {"valid": False, "error": self.error}
        return {
            "valid": True,
            "tabCount": self.tab_count,
            "bookmarkCount": self.bookmark_count,
            "exportInfo": self.export_info,
        }


def parse_document(raw: Union[bytes, str]) -> Dict[str, Any]:
    """Decode and validate raw document content.

    Args:
        raw: File content as bytes or text

    Returns:
        The parsed JSON document

    Raises:
        ImportDataError: If the content is not JSON or fails validation
    """
    try:
        text = raw.decode("utf-8-sig") if isinstance(raw, bytes) else raw
        data = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ImportDataError("Invalid JSON format", ImportFailure.INVALID_FORMAT) from e

    if not validate_import_data(data):
        raise ImportDataError("Invalid import data format", ImportFailure.INVALID_SCHEMA)

    return data


class ImportService:
    """Validates export documents and restores their tabs and bookmarks."""

    def __init__(
        self,
        tab_snapshot: TabSnapshot,
        bookmark_codec: BookmarkTreeCodec,
    ):
        self.tab_snapshot = tab_snapshot
        self.bookmark_codec = bookmark_codec

    @classmethod
    def from_capabilities(
        cls,
        capabilities: BrowserCapabilities,
        config: Optional[Config] = None,
    ) -> "ImportService":
        config = config or get_config()
        return cls(TabSnapshot(capabilities, config), BookmarkTreeCodec(capabilities, config))

    async def read_file_as_text(self, path: Path) -> str:
        """Read an export file from disk.

        Raises:
            ImportDataError: If the file could not be read
        """
        try:
            return await asyncio.to_thread(Path(path).read_text, encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            raise ImportDataError("Failed to read file", ImportFailure.UNREADABLE) from e

    async def import_file(self, path: Path) -> ImportResult:
        return await self.import_from_file(await self.read_file_as_text(path))

    async def import_from_file(self, raw: Union[bytes, str]) -> ImportResult:
        """Import tabs and bookmarks from raw document content.

        Nothing in the browser is touched unless the document parses and
        passes validation.

        Args:
            raw: File content as bytes or text

        Returns:
            ImportResult with per-branch counts and errors

        Raises:
            ImportDataError: If the document is not valid JSON or fails validation
        """
        try:
            data = parse_document(raw)
        except ImportDataError as e:
            print(f"[ImportService] Import error: {e}", file=sys.stderr)
            raise ImportDataError(f"Failed to import data: {e}", e.reason) from e

        return await self.process_import(ExportDocument.from_dict(data))

    async def process_import(self, document: ExportDocument) -> ImportResult:
        """Restore tabs and bookmarks as two independent attempts.

        A failure in one branch is recorded in ``errors`` and does not stop
        the other. ``tabs_imported`` reports the number of tabs in the
        document, not the number that survived URL filtering.
        """
        result = ImportResult(success=True)

        try:
            if document.open_tabs:
                await self.tab_snapshot.restore(document.open_tabs)
                result.tabs_imported = len(document.open_tabs)
        except Exception as e:
            result.errors.append(f"Failed to import tabs: {e}")

        try:
            if document.bookmarks:
                await self.bookmark_codec.restore(document.bookmarks)
                result.bookmarks_imported = count_bookmarks(document.bookmarks)
        except Exception as e:
            result.errors.append(f"Failed to import bookmarks: {e}")

        for error in result.errors:
            print(f"[ImportService] {error}", file=sys.stderr)

        return result

    async def get_import_preview(self, raw: Union[bytes, str]) -> ImportPreview:
        """Parse and validate a document without importing anything."""
        try:
            data = parse_document(raw)
        except ImportDataError as e:
            return ImportPreview(valid=False, error=str(e))

        info = data.get("exportInfo")
        return ImportPreview(
            valid=True,
            tab_count=len(data["openTabs"]),
            bookmark_count=count_bookmarks(data["bookmarks"]),
            export_info=info if isinstance(info, dict) else None,
        )
