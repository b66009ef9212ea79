"""Export of open tabs and bookmarks into one portable document."""
import asyncio
import json
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from tabby_grabby.bookmark_codec import BookmarkTreeCodec, count_bookmarks
from tabby_grabby.capabilities import BrowserCapabilities, DocumentSink
from tabby_grabby.config import Config, get_config
from tabby_grabby.errors import DownloadError, ExportError
from tabby_grabby.models import ExportDocument, ExportInfo
from tabby_grabby.tab_snapshot import TabSnapshot
from tabby_grabby.validator import validate_export_data


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def export_timestamp(now: datetime) -> str:
    """ISO 8601 UTC timestamp with millisecond precision, e.g. ``2024-01-01T12:00:00.000Z``."""
    return now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def export_filename(prefix: str, now: datetime) -> str:
    stamp = now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")
    stamp = stamp.replace(":", "-").replace(".", "-")
    return f"{prefix}-{stamp}.json"


@dataclass(frozen=True)
class ExportResult:
    success: bool
    filename: str
    tab_count: int
    bookmark_count: int
    location: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "filename": self.filename,
            "tabCount": self.tab_count,
            "bookmarkCount": self.bookmark_count,
            "location": self.location,
        }


class ExportService:
    """Collects tabs and bookmarks and hands the document to a sink."""

    def __init__(
        self,
        tab_snapshot: TabSnapshot,
        bookmark_codec: BookmarkTreeCodec,
        sink: DocumentSink,
        config: Optional[Config] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.tab_snapshot = tab_snapshot
        self.bookmark_codec = bookmark_codec
        self.sink = sink
        self.config = config or get_config()
        self.clock = clock

    @classmethod
    def from_capabilities(
        cls,
        capabilities: BrowserCapabilities,
        sink: DocumentSink,
        config: Optional[Config] = None,
    ) -> "ExportService":
        config = config or get_config()
        return cls(
            TabSnapshot(capabilities, config),
            BookmarkTreeCodec(capabilities, config),
            sink,
            config,
        )

    async def build_document(self, now: Optional[datetime] = None) -> ExportDocument:
        """Collect tabs and bookmarks concurrently and assemble the document."""
        now = now or self.clock()
        tabs, bookmarks = await asyncio.gather(
            self.tab_snapshot.get_all_tabs(),
            self.bookmark_codec.get_all_bookmarks(),
        )

        info = ExportInfo(
            timestamp=export_timestamp(now),
            version=self.config.export_version,
            extension_name=self.config.extension_name,
            tab_count=len(tabs),
            bookmark_count=count_bookmarks(bookmarks),
        )
        return ExportDocument(export_info=info, open_tabs=tuple(tabs), bookmarks=tuple(bookmarks))

    async def export_all(self) -> ExportResult:
        """Export all open tabs and bookmarks to a JSON document.

        Returns:
            ExportResult with the filename and the exported counts

        Raises:
            ExportError: If collection, assembly or saving failed. No
                document is written in that case.
        """
        try:
            now = self.clock()
            document = await self.build_document(now)
            data = document.to_dict()

            if not validate_export_data(data):
                raise ValueError("Assembled export document is malformed")

            filename = export_filename(self.config.export_filename_prefix, now)
            location = await self.download_json(data, filename)

            info = document.export_info
            print(
                f"[ExportService] Exported {info.tab_count} tabs and "
                f"{info.bookmark_count} bookmarks to {location}",
                file=sys.stderr,
            )
            return ExportResult(
                success=True,
                filename=filename,
                tab_count=info.tab_count,
                bookmark_count=info.bookmark_count,
                location=location,
            )
        except Exception as e:
            print(f"[ExportService] Export error: {e}", file=sys.stderr)
            raise ExportError(f"Failed to export data: {e}") from e

    async def download_json(self, data: Dict[str, Any], filename: str) -> str:
        """Serialize ``data`` as pretty-printed JSON and pass it to the sink.

        Raises:
            DownloadError: If the sink could not persist the document
        """
        payload = json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")
        try:
            return await self.sink.save(payload, filename)
        except Exception as e:
            print(f"[ExportService] Download error: {e}", file=sys.stderr)
            raise DownloadError("Failed to download file") from e

    async def get_export_stats(self) -> Dict[str, int]:
        """Count what an export would currently contain.

        Returns zero counts rather than raising if collection fails.
        """
        try:
            tab_count, bookmark_count = await asyncio.gather(
                self.tab_snapshot.get_tab_count(),
                self.bookmark_codec.get_bookmark_count(),
            )
        except Exception as e:
            print(f"[ExportService] Error getting export stats: {e}", file=sys.stderr)
            return {"tabCount": 0, "bookmarkCount": 0, "totalItems": 0}

        return {
            "tabCount": tab_count,
            "bookmarkCount": bookmark_count,
            "totalItems": tab_count + bookmark_count,
        }
