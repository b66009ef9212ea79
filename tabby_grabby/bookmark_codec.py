"""Bookmark tree flattening and restoration.

Native trees come from ``BrowserCapabilities.get_bookmark_tree`` as nested
``{"id", "title", "url"?, "children"?}`` dicts. They are turned into portable
folder/bookmark nodes addressed by slash-joined folder paths, and restored
into a fresh container folder on import.
"""
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from tabby_grabby.capabilities import BrowserCapabilities
from tabby_grabby.config import Config, get_config
from tabby_grabby.errors import BookmarkCollectionError, BookmarkRestoreError
from tabby_grabby.models import (
    PortableBookmark,
    PortableFolder,
    PortableNode,
    node_from_dict,
)


def join_path(parent_path: str, title: str) -> str:
    return f"{parent_path}/{title}" if parent_path else title


def import_folder_title(prefix: str, now: Optional[datetime] = None) -> str:
    """Name of the container folder an import is restored into."""
    now = now or datetime.now(timezone.utc)
    return f"{prefix} - {now.date().isoformat()}"


def _flatten_children(node: Dict[str, Any], parent_path: str) -> List[PortableNode]:
    """Convert the children of one native folder into portable nodes.

    Folders whose subtree holds no bookmark are dropped.
    """
    result: List[PortableNode] = []

    for child in node.get("children") or []:
        if "children" in child:
            title = child.get("title", "")
            folder_path = join_path(parent_path, title)
            children = _flatten_children(child, folder_path)
            if children:
                result.append(PortableFolder(title=title, path=folder_path, children=tuple(children)))
        elif child.get("url"):
            result.append(PortableBookmark(
                title=child.get("title", ""),
                url=child["url"],
                path=parent_path,
            ))

    return result


def flatten(native_roots: Iterable[Dict[str, Any]]) -> List[PortableNode]:
    """Flatten a native bookmark forest into portable nodes.

    The forest roots themselves are synthetic containers, so their children
    become the top level of the result.

    Args:
        native_roots: Roots returned by the browser's bookmark tree API

    Returns:
        Portable nodes in native sibling order
    """
    result: List[PortableNode] = []
    for root in native_roots:
        if root.get("children"):
            result.extend(_flatten_children(root, ""))
    return result


def count_bookmarks(nodes: Iterable[Any]) -> int:
    """Count bookmark nodes at any depth. Accepts portable nodes or their JSON dicts."""
    count = 0
    for node in nodes:
        if isinstance(node, dict):
            node = node_from_dict(node)
        if isinstance(node, PortableBookmark):
            count += 1
        elif isinstance(node, PortableFolder):
            count += count_bookmarks(node.children)
    return count


def _iter_bookmarks(
    nodes: Iterable[PortableNode],
    folder: Optional[PortableFolder] = None,
) -> Iterable[Tuple[PortableBookmark, Optional[PortableFolder]]]:
    """Yield every bookmark with the folder node it is nested in (None at the top level)."""
    for node in nodes:
        if isinstance(node, PortableBookmark):
            yield node, folder
        elif isinstance(node, PortableFolder):
            yield from _iter_bookmarks(node.children, node)


class BookmarkTreeCodec:
    """Reads bookmarks out of a browser and writes them back into one."""

    def __init__(self, capabilities: BrowserCapabilities, config: Optional[Config] = None):
        self.capabilities = capabilities
        self.config = config or get_config()

    async def get_all_bookmarks(self) -> List[PortableNode]:
        """Collect every bookmark with its folder structure preserved.

        Raises:
            BookmarkCollectionError: If the bookmark tree could not be read
        """
        try:
            tree = await self.capabilities.get_bookmark_tree()
            return flatten(tree)
        except Exception as e:
            print(f"[BookmarkTreeCodec] Error collecting bookmarks: {e}", file=sys.stderr)
            raise BookmarkCollectionError("Failed to collect bookmarks") from e

    async def get_bookmark_count(self) -> int:
        return count_bookmarks(await self.get_all_bookmarks())

    async def restore(self, nodes: Sequence[PortableNode], now: Optional[datetime] = None) -> int:
        """Recreate portable nodes under a new import container folder.

        Folders are all created first, parents before children, so every
        bookmark's parent exists by the time it is placed. Nothing is rolled
        back if a creation call fails partway.

        Args:
            nodes: Portable nodes, as produced by ``flatten``
            now: Timestamp used to name the container folder

        Returns:
            Number of bookmarks created

        Raises:
            BookmarkRestoreError: If any native creation call failed
        """
        if not nodes:
            return 0

        try:
            container = await self.capabilities.create_bookmark(
                self.config.other_bookmarks_id,
                import_folder_title(self.config.import_folder_prefix, now),
            )
            container_id = container["id"]

            folder_map: Dict[str, str] = {"": container_id}
            # Folder node -> created id; paths can collide between sibling or slash-titled folders
            folder_ids: Dict[int, str] = {}

            for node in nodes:
                if isinstance(node, PortableFolder):
                    await self._create_folder_structure(node, container_id, folder_map, folder_ids)

            created = 0
            for bookmark, folder in _iter_bookmarks(nodes):
                if folder is not None:
                    parent_id = folder_ids[id(folder)]
                else:
                    parent_id = folder_map.get(bookmark.path or "", container_id)
                await self.capabilities.create_bookmark(parent_id, bookmark.title, bookmark.url)
                created += 1

            return created
        except Exception as e:
            print(f"[BookmarkTreeCodec] Error restoring bookmarks: {e}", file=sys.stderr)
            raise BookmarkRestoreError("Failed to restore bookmarks") from e

    async def _create_folder_structure(
        self,
        folder: PortableFolder,
        parent_id: str,
        folder_map: Dict[str, str],
        folder_ids: Dict[int, str],
    ) -> None:
        created = await self.capabilities.create_bookmark(parent_id, folder.title)
        folder_map[folder.path] = created["id"]
        folder_ids[id(folder)] = created["id"]

        for child in folder.children:
            if isinstance(child, PortableFolder):
                await self._create_folder_structure(child, created["id"], folder_map, folder_ids)
