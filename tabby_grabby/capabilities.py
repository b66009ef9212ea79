"""Interfaces to the host browser and to the export destination."""
import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol


class BrowserCapabilities(Protocol):
    """Protocol for the browser APIs the codecs need.

    Implemented by ChromeBridge for a live browser and by fakes in tests.
    """

    async def get_all_windows(self) -> List[Dict[str, Any]]:
        """Return every window with its ``tabs`` populated."""
        ...

    async def create_window(self, url: str, focused: bool = True) -> Dict[str, Any]:
        """Open a new window on ``url``. The result carries the window ``id``."""
        ...

    async def create_tab(self, window_id: Any, url: str, pinned: bool = False, active: bool = False) -> Dict[str, Any]:
        ...

    async def get_bookmark_tree(self) -> List[Dict[str, Any]]:
        """Return the bookmark forest as ``{id, title, url?, children?}`` nodes."""
        ...

    async def create_bookmark(self, parent_id: str, title: str, url: Optional[str] = None) -> Dict[str, Any]:
        """Create a bookmark, or a folder when ``url`` is None. The result carries its ``id``."""
        ...


class DocumentSink(Protocol):
    """Destination for a serialized export document."""

    async def save(self, data: bytes, filename: str) -> str:
        """Persist ``data`` and return where it went."""
        ...


class FileSink:
    """Writes export documents into a local directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _write(self, data: bytes, filename: str) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self.directory / filename

        # Write to temp file first
        temp_path = target.with_suffix(".tmp")
        try:
            with open(temp_path, "wb") as f:
                f.write(data)

            # Atomic rename
            temp_path.replace(target)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise
        return target

    async def save(self, data: bytes, filename: str) -> str:
        target = await asyncio.to_thread(self._write, data, filename)
        return str(target)
