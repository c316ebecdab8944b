"""Tests for the flat store and its subtree primitive.

The store has no tree: parent/child relations are string prefixes.
These tests pin down the prefix rules and the all-or-nothing
transaction that multi-step commands rely on.
"""

import pytest

from py_vfs.fs.entry import create_dir_entry, create_file_entry
from py_vfs.fs.store import FlatStore, TransactionState


def _sample_store() -> FlatStore:
    """Build a small tree: /, /a, /a/b, /a/b/c.txt, /ab, /etc."""
    return FlatStore(
        {
            "/": create_dir_entry(),
            "/a": create_dir_entry(),
            "/a/b": create_dir_entry(),
            "/a/b/c.txt": create_file_entry("c"),
            "/ab": create_file_entry("not a child of /a"),
            "/etc": create_dir_entry(),
        }
    )


class TestMappingProtocol:
    """Verify the store behaves like a mapping."""

    def test_get_missing_returns_none(self) -> None:
        """get() should return None for unknown paths."""
        assert FlatStore().get("/nope") is None

    def test_set_and_contains(self) -> None:
        """Stored paths should be found with 'in'."""
        store = FlatStore()
        store["/x"] = create_file_entry()
        assert "/x" in store
        assert len(store) == 1

    def test_delete_does_not_cascade(self) -> None:
        """Deleting a key should remove exactly that key."""
        store = _sample_store()
        del store["/a"]
        assert "/a/b" in store

    def test_paths_are_sorted(self) -> None:
        """paths() should list every key in order."""
        assert _sample_store().paths()[:3] == ["/", "/a", "/a/b"]


class TestSubtree:
    """Verify prefix-based tree queries."""

    def test_collect_subtree_parents_first(self) -> None:
        """Parents should precede their children."""
        assert _sample_store().collect_subtree("/a") == ["/a", "/a/b", "/a/b/c.txt"]

    def test_collect_subtree_excludes_prefix_siblings(self) -> None:
        """'/ab' shares a string prefix with '/a' but is not under it."""
        assert "/ab" not in _sample_store().collect_subtree("/a")

    def test_collect_subtree_without_self(self) -> None:
        """include_self=False should drop the subtree root."""
        assert _sample_store().collect_subtree("/a", include_self=False) == [
            "/a/b",
            "/a/b/c.txt",
        ]

    def test_collect_root_subtree(self) -> None:
        """The root's subtree should be the whole store, root first."""
        store = _sample_store()
        paths = store.collect_subtree("/")
        assert paths[0] == "/"
        assert sorted(paths) == store.paths()

    def test_children_are_direct_only(self) -> None:
        """children() should not include grandchildren."""
        assert _sample_store().children("/") == ["/a", "/ab", "/etc"]
        assert _sample_store().children("/a") == ["/a/b"]

    def test_has_children(self) -> None:
        """Empty directories should have no children."""
        store = _sample_store()
        assert store.has_children("/a")
        assert not store.has_children("/etc")

    def test_remove_subtree_cascades(self) -> None:
        """Removing a directory should remove everything under it."""
        store = _sample_store()
        removed = store.remove_subtree("/a")
        assert removed == ["/a/b/c.txt", "/a/b", "/a"]
        assert "/a/b/c.txt" not in store
        assert "/ab" in store


class TestTransaction:
    """Verify all-or-nothing multi-step updates."""

    def test_commit_keeps_changes(self) -> None:
        """A block that completes should keep its changes."""
        store = _sample_store()
        with store.transaction() as txn:
            store["/new"] = create_file_entry()
        assert "/new" in store
        assert txn.state is TransactionState.COMMITTED

    def test_abort_restores_keys(self) -> None:
        """A failing block should undo added and removed keys."""
        store = _sample_store()
        with pytest.raises(RuntimeError), store.transaction() as txn:
            store["/new"] = create_file_entry()
            store.remove_subtree("/a")
            msg = "boom"
            raise RuntimeError(msg)
        assert "/new" not in store
        assert "/a/b/c.txt" in store
        assert txn.state is TransactionState.ABORTED

    def test_abort_restores_in_place_edits(self) -> None:
        """Mutating a live entry should be rolled back too."""
        store = _sample_store()
        entry = store["/a/b/c.txt"]
        with pytest.raises(RuntimeError), store.transaction():
            entry.content = "changed"
            msg = "boom"
            raise RuntimeError(msg)
        assert store["/a/b/c.txt"] is entry
        assert entry.content == "c"

    def test_nested_transactions_join(self) -> None:
        """An inner block should roll back with the outer one."""
        store = _sample_store()
        with pytest.raises(RuntimeError), store.transaction():
            with store.transaction():
                store["/inner"] = create_file_entry()
            msg = "boom"
            raise RuntimeError(msg)
        assert "/inner" not in store
        assert not store.in_transaction


class TestStoreSerialization:
    """Verify dict conversion of the whole store."""

    def test_from_dict_normalises_legacy_types(self) -> None:
        """Loaded 'directory' entries should become 'dir'."""
        store = FlatStore.from_dict({"/": {"type": "directory"}})
        assert store["/"].is_dir
        assert store.to_dict()["/"]["type"] == "dir"
