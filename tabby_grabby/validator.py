"""Structural validation of export documents.

Only the shape is checked here. URL validity is the tab restorer's concern.
Both functions return a boolean and never raise.
"""
from typing import Any, List


def _valid_nodes(nodes: List[Any]) -> bool:
    for node in nodes:
        if not isinstance(node, dict):
            return False
        node_type = node.get("type")
        if node_type == "bookmark" and (not node.get("url") or not node.get("title")):
            return False
        if node_type == "folder":
            if not node.get("title"):
                return False
            children = node.get("children", [])
            if not isinstance(children, list) or not _valid_nodes(children):
                return False
    return True


def validate_import_data(data: Any) -> bool:
    """Check that a parsed document can be imported.

    Args:
        data: Parsed JSON document

    Returns:
        True if ``openTabs`` and ``bookmarks`` are lists and every entry
        carries the fields its kind requires
    """
    if not isinstance(data, dict):
        return False

    if "openTabs" not in data or "bookmarks" not in data:
        return False

    tabs, bookmarks = data["openTabs"], data["bookmarks"]
    if not isinstance(tabs, list) or not isinstance(bookmarks, list):
        return False

    for tab in tabs:
        if not isinstance(tab, dict) or not tab.get("url") or not tab.get("title"):
            return False

    return _valid_nodes(bookmarks)


def validate_export_data(data: Any) -> bool:
    """Self-check applied to a freshly assembled export document."""
    if not isinstance(data, dict):
        return False

    for prop in ("exportInfo", "openTabs", "bookmarks"):
        if prop not in data:
            return False

    return isinstance(data["openTabs"], list) and isinstance(data["bookmarks"], list)
