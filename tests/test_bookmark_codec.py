"""Tests for bookmark_codec module."""
from datetime import datetime, timezone

import pytest

from tabby_grabby.bookmark_codec import (
    BookmarkTreeCodec,
    count_bookmarks,
    flatten,
    import_folder_title,
)
from tabby_grabby.errors import BookmarkCollectionError, BookmarkRestoreError
from tabby_grabby.models import PortableBookmark, PortableFolder

from tests.conftest import FakeBrowser


FIXED_NOW = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


def _walk(nodes):
    for node in nodes:
        yield node
        if isinstance(node, PortableFolder):
            yield from _walk(node.children)


def _shape(nodes):
    # Restore creates folders ahead of bookmarks, so sibling order between the two kinds may change
    folders = {n.path for n in _walk(nodes) if isinstance(n, PortableFolder)}
    bookmarks = {(n.title, n.url, n.path) for n in _walk(nodes) if isinstance(n, PortableBookmark)}
    return folders, bookmarks


class TestFlatten:
    def test_synthetic_root_is_transparent(self, sample_tree):
        nodes = flatten(sample_tree)
        assert [n.title for n in nodes] == ["Bookmarks bar", "Other bookmarks"]
        assert all(isinstance(n, PortableFolder) for n in nodes)

    def test_preserves_sibling_order(self, sample_tree):
        bar = flatten(sample_tree)[0]
        assert [c.title for c in bar.children] == ["Python Docs", "Work", "Tutorials"]

    def test_folder_paths_include_own_title(self, sample_tree):
        bar = flatten(sample_tree)[0]
        work = bar.children[1]
        assert bar.path == "Bookmarks bar"
        assert work.path == "Bookmarks bar/Work"

    def test_bookmark_path_is_parent_folder_path(self, sample_tree):
        bar = flatten(sample_tree)[0]
        docs = bar.children[0]
        jira = bar.children[1].children[0]
        assert docs == PortableBookmark("Python Docs", "https://docs.python.org", "Bookmarks bar")
        assert jira.path == "Bookmarks bar/Work"

    def test_prunes_folders_without_bookmarks(self, sample_tree):
        titles = [n.title for n in _walk(flatten(sample_tree))]
        assert "Archive" not in titles
        assert "Old" not in titles
        assert "Mobile bookmarks" not in titles

    def test_prunes_deeply_nested_empty_folders(self):
        tree = [{"children": [{"title": "A", "children": [{"title": "B", "children": [{"title": "C", "children": []}]}]}]}]
        assert flatten(tree) == []

    def test_every_bookmark_path_matches_a_folder(self, sample_tree):
        nodes = list(_walk(flatten(sample_tree)))
        folder_paths = {n.path for n in nodes if isinstance(n, PortableFolder)} | {""}
        for node in nodes:
            if isinstance(node, PortableBookmark):
                assert node.path in folder_paths

    def test_empty_tree(self):
        assert flatten([{"children": []}]) == []
        assert flatten([]) == []

    def test_ignores_nodes_without_url_or_children(self):
        tree = [{"children": [{"title": "Separator"}, {"title": "Site", "url": "https://x.com"}]}]
        assert flatten(tree) == [PortableBookmark("Site", "https://x.com", "")]


class TestCountBookmarks:
    def test_counts_nested(self, sample_tree):
        assert count_bookmarks(flatten(sample_tree)) == 5

    def test_zero(self):
        assert count_bookmarks([]) == 0

    def test_single_bookmark_at_root(self):
        assert count_bookmarks([PortableBookmark("A", "https://a.com")]) == 1

    def test_counts_raw_dicts(self, sample_document):
        assert count_bookmarks(sample_document["bookmarks"]) == 3


class TestImportFolderTitle:
    def test_uses_date_only(self):
        assert import_folder_title("Tabby Grabby Import", FIXED_NOW) == "Tabby Grabby Import - 2024-05-01"


class TestGetAllBookmarks:
    @pytest.mark.asyncio
    async def test_reads_tree(self, browser, config):
        codec = BookmarkTreeCodec(browser, config)
        nodes = await codec.get_all_bookmarks()
        assert count_bookmarks(nodes) == 5

    @pytest.mark.asyncio
    async def test_failure_is_wrapped(self, config):
        codec = BookmarkTreeCodec(FakeBrowser(fail_on={"get_bookmark_tree"}), config)
        with pytest.raises(BookmarkCollectionError, match="Failed to collect bookmarks") as exc_info:
            await codec.get_all_bookmarks()
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_get_bookmark_count(self, browser, config):
        codec = BookmarkTreeCodec(browser, config)
        assert await codec.get_bookmark_count() == 5


class TestRestore:
    @pytest.mark.asyncio
    async def test_empty_input_makes_no_calls(self, empty_browser, config):
        codec = BookmarkTreeCodec(empty_browser, config)
        assert await codec.restore([]) == 0
        assert empty_browser.calls == []

    @pytest.mark.asyncio
    async def test_call_order_container_folder_bookmark(self, empty_browser, config):
        nodes = [PortableFolder("Work", "Work", (PortableBookmark("Docs", "https://docs.example", "Work"),))]
        codec = BookmarkTreeCodec(empty_browser, config)

        await codec.restore(nodes, now=FIXED_NOW)

        calls = empty_browser.calls
        assert calls[0] == ("create_bookmark", "2", "Tabby Grabby Import - 2024-05-01", None)
        container_id = empty_browser.node("2")["children"][0]["id"]
        assert calls[1] == ("create_bookmark", container_id, "Work", None)
        work_id = empty_browser.node(container_id)["children"][0]["id"]
        assert calls[2] == ("create_bookmark", work_id, "Docs", "https://docs.example")
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_folders_created_before_bookmarks(self, empty_browser, config, sample_tree):
        codec = BookmarkTreeCodec(empty_browser, config)
        await codec.restore(flatten(sample_tree))

        kinds = ["bookmark" if c[3] else "folder" for c in empty_browser.calls]
        first_bookmark = kinds.index("bookmark")
        assert "folder" not in kinds[first_bookmark:]

    @pytest.mark.asyncio
    async def test_bookmark_listed_before_its_folder(self, empty_browser, config):
        nodes = [
            PortableBookmark("Docs", "https://docs.example", "Work"),
            PortableFolder("Work", "Work", (PortableBookmark("Wiki", "https://wiki.example", "Work"),)),
        ]
        codec = BookmarkTreeCodec(empty_browser, config)
        await codec.restore(nodes)

        container = empty_browser.node("2")["children"][0]
        work = container["children"][0]
        assert work["title"] == "Work"
        assert [c["title"] for c in work["children"]] == ["Docs", "Wiki"]

    @pytest.mark.asyncio
    async def test_unknown_path_falls_back_to_container(self, empty_browser, config):
        nodes = [PortableBookmark("Lost", "https://lost.example", "Nowhere/At/All")]
        codec = BookmarkTreeCodec(empty_browser, config)
        await codec.restore(nodes)

        container = empty_browser.node("2")["children"][0]
        assert [c["title"] for c in container["children"]] == ["Lost"]

    @pytest.mark.asyncio
    async def test_returns_created_count(self, empty_browser, config, sample_tree):
        codec = BookmarkTreeCodec(empty_browser, config)
        assert await codec.restore(flatten(sample_tree)) == 5

    @pytest.mark.asyncio
    async def test_round_trip_preserves_structure(self, empty_browser, config, sample_tree):
        original = flatten(sample_tree)
        codec = BookmarkTreeCodec(empty_browser, config)
        await codec.restore(original)

        container = empty_browser.node("2")["children"][0]
        assert _shape(flatten([container])) == _shape(original)

    @pytest.mark.asyncio
    async def test_round_trip_with_colliding_folder_paths(self, empty_browser, config):
        tree = [{"children": [{"title": "Bar", "children": [
            {"title": "Misc", "children": [{"title": "A", "url": "https://a.example"}]},
            {"title": "Misc", "children": [{"title": "B", "url": "https://b.example"}]},
            {"title": "x/y", "children": [{"title": "C", "url": "https://c.example"}]},
            {"title": "x", "children": [
                {"title": "y", "children": [{"title": "D", "url": "https://d.example"}]},
            ]},
        ]}]}]
        original = flatten(tree)
        codec = BookmarkTreeCodec(empty_browser, config)
        await codec.restore(original)

        container = empty_browser.node("2")["children"][0]
        restored = flatten([container])
        assert [n.to_dict() for n in restored] == [n.to_dict() for n in original]

    @pytest.mark.asyncio
    async def test_failure_raises_without_rollback(self, config, sample_tree):
        browser = FakeBrowser(fail_on={"create_bookmark"}, fail_after=3)
        codec = BookmarkTreeCodec(browser, config)

        with pytest.raises(BookmarkRestoreError, match="Failed to restore bookmarks"):
            await codec.restore(flatten(sample_tree))

        # Container plus two folders stay behind
        container = browser.node("2")["children"][0]
        assert [c["title"] for c in container["children"]] == ["Bookmarks bar"]
        assert [c["title"] for c in container["children"][0]["children"]] == ["Work"]
