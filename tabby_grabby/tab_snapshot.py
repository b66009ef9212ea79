"""Open tab collection and restoration."""
import sys
from typing import Any, Dict, Iterable, List, Optional, Sequence

from tabby_grabby.capabilities import BrowserCapabilities
from tabby_grabby.config import Config, get_config
from tabby_grabby.errors import TabCollectionError, TabRestoreError
from tabby_grabby.models import PortableTab


def is_valid_url(url: Optional[str], invalid_prefixes: Sequence[str]) -> bool:
    """Check whether a URL can be reopened in another browser session.

    Internal browser pages and extension pages are rejected.
    """
    if not url:
        return False
    return not url.startswith(tuple(invalid_prefixes))


class TabSnapshot:
    """Captures open tabs as a flat list and reopens them in one window."""

    def __init__(self, capabilities: BrowserCapabilities, config: Optional[Config] = None):
        self.capabilities = capabilities
        self.config = config or get_config()

    def is_valid_url(self, url: Optional[str]) -> bool:
        return is_valid_url(url, self.config.invalid_url_prefixes)

    def flatten(self, native_windows: Iterable[Dict[str, Any]]) -> List[PortableTab]:
        """Flatten windows into tabs, in window then tab order.

        Args:
            native_windows: Windows with their ``tabs`` populated

        Returns:
            Restorable tabs, each tagged with its source window id
        """
        tabs: List[PortableTab] = []

        for window in native_windows:
            for tab in window.get("tabs") or []:
                if not self.is_valid_url(tab.get("url")):
                    continue
                tabs.append(PortableTab(
                    url=tab["url"],
                    title=tab.get("title", ""),
                    window_id=window.get("id"),
                    index=tab.get("index", 0),
                    pinned=bool(tab.get("pinned", False)),
                    active=bool(tab.get("active", False)),
                ))

        return tabs

    async def get_all_tabs(self) -> List[PortableTab]:
        """Collect all restorable tabs across all browser windows.

        Raises:
            TabCollectionError: If windows could not be enumerated
        """
        try:
            windows = await self.capabilities.get_all_windows()
            return self.flatten(windows)
        except Exception as e:
            print(f"[TabSnapshot] Error collecting tabs: {e}", file=sys.stderr)
            raise TabCollectionError("Failed to collect tabs") from e

    async def get_tab_count(self) -> int:
        return len(await self.get_all_tabs())

    async def restore(self, tabs: Sequence[PortableTab]) -> int:
        """Reopen tabs in a single new window.

        The first entry seeds the window; the rest are opened behind it in
        order, keeping their pinned state. Entries with unrestorable URLs
        after the first are skipped.

        Args:
            tabs: Tabs to reopen

        Returns:
            Number of tabs placed in the new window

        Raises:
            TabRestoreError: If the window or any tab could not be created
        """
        if not tabs:
            return 0

        try:
            window = await self.capabilities.create_window(tabs[0].url, focused=True)
            placed = 1

            for tab in tabs[1:]:
                if not self.is_valid_url(tab.url):
                    continue
                await self.capabilities.create_tab(
                    window["id"],
                    tab.url,
                    pinned=tab.pinned,
                    active=False,
                )
                placed += 1

            return placed
        except Exception as e:
            print(f"[TabSnapshot] Error restoring tabs: {e}", file=sys.stderr)
            raise TabRestoreError("Failed to restore tabs") from e
