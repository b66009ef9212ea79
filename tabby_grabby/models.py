"""Portable data model for exported tabs and bookmarks.

These are the shapes written to and read from an export document. They are
deliberately independent of any browser's native representation.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union


@dataclass(frozen=True)
class PortableBookmark:
    """A single bookmark. ``path`` is the path of its enclosing folder."""
    title: str
    url: str
    path: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "bookmark", "title": self.title, "url": self.url, "path": self.path}


@dataclass(frozen=True)
class PortableFolder:
    """A bookmark folder. ``path`` includes the folder's own title."""
    title: str
    path: str
    children: Tuple["PortableNode", ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "folder",
            "title": self.title,
            "path": self.path,
            "children": [child.to_dict() for child in self.children],
        }


PortableNode = Union[PortableFolder, PortableBookmark]


def node_from_dict(data: Dict[str, Any]) -> Optional[PortableNode]:
    """Build a portable node from its JSON form.

    Returns None for entries that are neither a folder nor a bookmark.
    """
    node_type = data.get("type")
    if node_type == "bookmark":
        return PortableBookmark(
            title=data.get("title", ""),
            url=data.get("url", ""),
            path=data.get("path") or "",
        )
    if node_type == "folder":
        children = [node_from_dict(c) for c in data.get("children") or []]
        return PortableFolder(
            title=data.get("title", ""),
            path=data.get("path") or data.get("title", ""),
            children=tuple(c for c in children if c is not None),
        )
    return None


@dataclass(frozen=True)
class PortableTab:
    """One open tab as captured at export time."""
    url: str
    title: str
    window_id: int = 0
    index: int = 0
    pinned: bool = False
    active: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "windowId": self.window_id,
            "index": self.index,
            "pinned": self.pinned,
            "active": self.active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PortableTab":
        return cls(
            url=data.get("url", ""),
            title=data.get("title", ""),
            window_id=data.get("windowId", 0),
            index=data.get("index", 0),
            pinned=bool(data.get("pinned", False)),
            active=bool(data.get("active", False)),
        )


@dataclass(frozen=True)
class ExportInfo:
    timestamp: str
    version: str
    extension_name: str
    tab_count: int
    bookmark_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "version": self.version,
            "extensionName": self.extension_name,
            "tabCount": self.tab_count,
            "bookmarkCount": self.bookmark_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExportInfo":
        return cls(
            timestamp=data.get("timestamp", ""),
            version=data.get("version", ""),
            extension_name=data.get("extensionName", ""),
            tab_count=data.get("tabCount", 0),
            bookmark_count=data.get("bookmarkCount", 0),
        )


@dataclass(frozen=True)
class ExportDocument:
    """The complete portable snapshot: metadata, open tabs and bookmarks."""
    export_info: Optional[ExportInfo]
    open_tabs: Tuple[PortableTab, ...]
    bookmarks: Tuple[PortableNode, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exportInfo": self.export_info.to_dict() if self.export_info else None,
            "openTabs": [tab.to_dict() for tab in self.open_tabs],
            "bookmarks": [node.to_dict() for node in self.bookmarks],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExportDocument":
        """Build a document from parsed JSON.

        Callers are expected to have run the validator first; this only
        tolerates missing optional fields.
        """
        info = data.get("exportInfo")
        nodes = [node_from_dict(n) for n in data.get("bookmarks") or []]
        return cls(
            export_info=ExportInfo.from_dict(info) if isinstance(info, dict) else None,
            open_tabs=tuple(PortableTab.from_dict(t) for t in data.get("openTabs") or []),
            bookmarks=tuple(n for n in nodes if n is not None),
        )
