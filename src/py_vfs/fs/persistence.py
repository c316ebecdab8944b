"""Filesystem persistence — save and load the flat store to/from disk.

The virtual filesystem lives in memory.  Sessions that should survive a
restart hand ``SessionContext`` a save callback, and mutating commands
call it after every change:

    - ``dump_filesystem(store, path)`` — write the store as JSON.
    - ``load_filesystem(path)`` — rebuild a store from that JSON.
    - ``json_saver(path)`` — a ready-made save callback around ``dump``.

The JSON shape is the store's own ``{path: entry}`` mapping, with
timestamps as ISO-8601 strings.  Older files that spell the directory
type ``"directory"`` load fine; they are rewritten as ``"dir"`` on the
next save.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

from py_vfs.fs.store import FlatStore

if TYPE_CHECKING:
    from py_vfs.context import SaveCallback


def dump_filesystem(store: FlatStore, path: Path) -> None:
    """Save a store to a JSON file.

    Args:
        store: The store to save.
        path: The file path to write to (parents are created).

    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(store.to_dict(), indent=2))


def load_filesystem(path: Path) -> FlatStore:
    """Load a store from a JSON file.

    Args:
        path: The file path to read from.

    Returns:
        A reconstructed FlatStore.

    Raises:
        FileNotFoundError: If the path does not exist.
        ValueError: If an entry has an unknown type.

    """
    data = json.loads(path.read_text())
    return FlatStore.from_dict(data)


def json_saver(path: Path) -> SaveCallback:
    """Return a save callback that dumps the store to *path*."""

    def save(store: FlatStore) -> None:
        dump_filesystem(store, path)

    return save
