"""Shared fixtures for tests."""
import copy
import json
import pytest
from typing import Any, Dict, List, Optional

from tabby_grabby.config import BridgeConfig, Config


SAMPLE_TREE = [
    {
        "id": "0",
        "title": "",
        "children": [
            {
                "id": "1",
                "title": "Bookmarks bar",
                "children": [
                    {"id": "10", "title": "Python Docs", "url": "https://docs.python.org"},
                    {
                        "id": "11",
                        "title": "Work",
                        "children": [
                            {"id": "12", "title": "Jira Board", "url": "https://jira.example.com/board"},
                            {"id": "13", "title": "Confluence", "url": "https://confluence.example.com"},
                            {
                                "id": "14",
                                "title": "Archive",
                                "children": [
                                    {"id": "15", "title": "Old", "children": []},
                                ],
                            },
                        ],
                    },
                    {
                        "id": "16",
                        "title": "Tutorials",
                        "children": [
                            {"id": "17", "title": "SQLite Guide", "url": "https://sqlite.org/guide"},
                        ],
                    },
                ],
            },
            {
                "id": "2",
                "title": "Other bookmarks",
                "children": [
                    {"id": "20", "title": "Stack Overflow", "url": "https://stackoverflow.com"},
                ],
            },
            {"id": "3", "title": "Mobile bookmarks", "children": []},
        ],
    }
]


SAMPLE_WINDOWS = [
    {
        "id": 1,
        "tabs": [
            {"url": "https://example.com", "title": "Example", "index": 0, "pinned": False, "active": True},
            {"url": "chrome://settings", "title": "Settings", "index": 1, "pinned": False, "active": False},
            {"url": "https://github.com", "title": "GitHub", "index": 2, "pinned": True, "active": False},
        ],
    },
    {
        "id": 2,
        "tabs": [
            {"url": "https://news.ycombinator.com", "title": "Hacker News", "index": 0, "pinned": False, "active": True},
            {"url": "chrome-extension://abc/popup.html", "title": "Tabby Grabby", "index": 1, "pinned": False, "active": False},
        ],
    },
]


def empty_tree() -> List[Dict[str, Any]]:
    return [{
        "id": "0",
        "title": "",
        "children": [
            {"id": "1", "title": "Bookmarks bar", "children": []},
            {"id": "2", "title": "Other bookmarks", "children": []},
        ],
    }]


class FakeBrowser:
    """In-memory browser implementing BrowserCapabilities.

    Every call is appended to ``calls``. Actions named in ``fail_on`` raise
    RuntimeError; ``fail_after`` lets that many calls of the action succeed
    first.
    """

    def __init__(self, tree=None, windows=None, fail_on=(), fail_after: int = 0):
        self.tree = copy.deepcopy(tree if tree is not None else empty_tree())
        self.windows = copy.deepcopy(windows if windows is not None else [])
        self.fail_on = set(fail_on)
        self.fail_after = fail_after
        self.calls: List[tuple] = []
        self.created_windows: List[Dict[str, Any]] = []
        self._next_id = 1000
        self._action_counts: Dict[str, int] = {}

    def _record(self, action: str, *args) -> None:
        self.calls.append((action, *args))
        count = self._action_counts.get(action, 0)
        self._action_counts[action] = count + 1
        if action in self.fail_on and count >= self.fail_after:
            raise RuntimeError(f"{action} failed")

    def _new_id(self) -> str:
        self._next_id += 1
        return str(self._next_id)

    def _find(self, nodes, node_id) -> Optional[Dict[str, Any]]:
        for node in nodes:
            if node.get("id") == node_id:
                return node
            found = self._find(node.get("children", []), node_id)
            if found:
                return found
        return None

    def node(self, node_id: str) -> Optional[Dict[str, Any]]:
        return self._find(self.tree, node_id)

    @property
    def native_calls(self) -> List[tuple]:
        return [c for c in self.calls if c[0] in ("create_window", "create_tab", "create_bookmark")]

    async def get_all_windows(self):
        self._record("get_all_windows")
        return copy.deepcopy(self.windows)

    async def create_window(self, url, focused=True):
        self._record("create_window", url, focused)
        window = {"id": int(self._new_id()), "tabs": [{"url": url, "pinned": False, "active": True}]}
        self.created_windows.append(window)
        return {"id": window["id"]}

    async def create_tab(self, window_id, url, pinned=False, active=False):
        self._record("create_tab", window_id, url, pinned, active)
        window = next(w for w in self.created_windows if w["id"] == window_id)
        window["tabs"].append({"url": url, "pinned": pinned, "active": active})
        return {"id": int(self._new_id()), "windowId": window_id}

    async def get_bookmark_tree(self):
        self._record("get_bookmark_tree")
        return copy.deepcopy(self.tree)

    async def create_bookmark(self, parent_id, title, url=None):
        self._record("create_bookmark", parent_id, title, url)
        parent = self.node(parent_id)
        if parent is None:
            raise RuntimeError(f"Can't find parent bookmark for id {parent_id}")
        node = {"id": self._new_id(), "title": title}
        if url is None:
            node["children"] = []
        else:
            node["url"] = url
        parent["children"].append(node)
        return copy.deepcopy(node)


class MemorySink:
    """DocumentSink that keeps saved documents in memory."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.saved: Dict[str, bytes] = {}

    async def save(self, data, filename):
        if self.fail:
            raise OSError("disk full")
        self.saved[filename] = data
        return f"memory:{filename}"

    def document(self, filename: str) -> Dict[str, Any]:
        return json.loads(self.saved[filename])


@pytest.fixture
def config():
    """Default configuration, independent of the environment."""
    return Config(bridge=BridgeConfig())


@pytest.fixture
def sample_tree():
    return copy.deepcopy(SAMPLE_TREE)


@pytest.fixture
def sample_windows():
    return copy.deepcopy(SAMPLE_WINDOWS)


@pytest.fixture
def browser(sample_tree, sample_windows):
    """Fake browser populated with sample bookmarks and windows."""
    return FakeBrowser(tree=sample_tree, windows=sample_windows)


@pytest.fixture
def empty_browser():
    """Fake browser with no bookmarks and no windows."""
    return FakeBrowser()


@pytest.fixture
def sample_document():
    """A valid export document as parsed JSON."""
    return {
        "exportInfo": {
            "timestamp": "2024-05-01T10:00:00.000Z",
            "version": "1.0.0",
            "extensionName": "Tabby Grabby",
            "tabCount": 2,
            "bookmarkCount": 3,
        },
        "openTabs": [
            {"url": "https://example.com", "title": "Example", "windowId": 1, "index": 0, "pinned": False, "active": True},
            {"url": "https://github.com", "title": "GitHub", "windowId": 1, "index": 1, "pinned": True, "active": False},
        ],
        "bookmarks": [
            {"type": "bookmark", "title": "Top", "url": "https://top.example", "path": ""},
            {
                "type": "folder",
                "title": "Work",
                "path": "Work",
                "children": [
                    {"type": "bookmark", "title": "Docs", "url": "https://docs.example", "path": "Work"},
                    {
                        "type": "folder",
                        "title": "Deep",
                        "path": "Work/Deep",
                        "children": [
                            {"type": "bookmark", "title": "Deeper", "url": "https://deep.example", "path": "Work/Deep"},
                        ],
                    },
                ],
            },
        ],
    }
