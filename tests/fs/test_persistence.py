"""Tests for saving and loading the flat store.

The store lives in memory.  Persistence writes it out as JSON keyed by
path, and reads it back into live entries on the next start.
"""

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from py_vfs.fs.entry import EntryType, create_dir_entry, create_file_entry
from py_vfs.fs.persistence import dump_filesystem, json_saver, load_filesystem
from py_vfs.fs.store import FlatStore

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def _store() -> FlatStore:
    return FlatStore(
        {
            "/": create_dir_entry(now=NOW),
            "/home": create_dir_entry(now=NOW),
            "/home/notes.txt": create_file_entry(
                "hello", owner="alice", group="staff", permissions="-rw-r-----", now=NOW
            ),
        }
    )


class TestDump:
    """Verify the on-disk format."""

    def test_writes_path_keyed_json(self, tmp_path: Path) -> None:
        """The file should map paths to entry dicts."""
        target = tmp_path / "state.json"
        dump_filesystem(_store(), target)
        data = json.loads(target.read_text())
        assert set(data) == {"/", "/home", "/home/notes.txt"}
        assert data["/home"]["type"] == "dir"
        assert data["/home/notes.txt"]["content"] == "hello"

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        """Missing parent directories should be created."""
        target = tmp_path / "deep" / "er" / "state.json"
        dump_filesystem(_store(), target)
        assert target.exists()


class TestLoad:
    """Verify reconstruction from disk."""

    def test_restores_entries(self, tmp_path: Path) -> None:
        """Loaded entries should carry every saved field."""
        target = tmp_path / "state.json"
        dump_filesystem(_store(), target)
        loaded = load_filesystem(target)
        notes = loaded["/home/notes.txt"]
        assert notes.content == "hello"
        assert notes.owner == "alice"
        assert notes.permissions == "-rw-r-----"
        assert notes.modified == NOW

    def test_legacy_directory_type(self, tmp_path: Path) -> None:
        """Older files spelling 'directory' should load as DIRECTORY."""
        target = tmp_path / "old.json"
        target.write_text(json.dumps({"/": {"type": "directory", "permissions": "drwxr-xr-x"}}))
        loaded = load_filesystem(target)
        assert loaded["/"].type is EntryType.DIRECTORY

    def test_unknown_type(self, tmp_path: Path) -> None:
        """Unknown entry types should be rejected."""
        target = tmp_path / "bad.json"
        target.write_text(json.dumps({"/": {"type": "socket"}}))
        with pytest.raises(ValueError, match="socket"):
            load_filesystem(target)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Loading a file that does not exist raises the OS error."""
        with pytest.raises(FileNotFoundError):
            load_filesystem(tmp_path / "absent.json")


class TestJsonSaver:
    """Verify the ready-made save callback."""

    def test_saver_dumps_store(self, tmp_path: Path) -> None:
        """Calling the saver should write the current store."""
        target = tmp_path / "state.json"
        store = _store()
        save = json_saver(target)
        save(store)
        del store["/home/notes.txt"]
        save(store)
        assert "/home/notes.txt" not in json.loads(target.read_text())
