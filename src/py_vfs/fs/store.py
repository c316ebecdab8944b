"""The flat store — one mapping from absolute path to entry.

There is no tree.  ``/etc`` and ``/etc/passwd`` are two unrelated keys
that happen to share a prefix, and every parent/child question is
answered by string matching::

    child.startswith(parent + "/")

This keeps arbitrary-path lookup O(1) and makes recursive delete a
prefix sweep.  The price is that nothing stops a caller storing
``/a/b`` without ``/a``; well-formedness is the callers' job.

The store owns the one tree-shaped primitive every command needs,
``collect_subtree``, so no command re-implements its own descendant
walk.  Multi-step sequences (rename with children, recursive chown)
run inside ``transaction()``: a snapshot is taken on entry and put back
if the body raises, so the store ends up either fully changed or
exactly as before.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from enum import StrEnum
from typing import Any

from py_vfs.fs.entry import Entry
from py_vfs.fs.paths import ROOT, subtree_prefix


class TransactionState(StrEnum):
    """Lifecycle of a store transaction."""

    ACTIVE = "active"
    COMMITTED = "committed"
    ABORTED = "aborted"


class Transaction:
    """A handle on one in-flight ``FlatStore.transaction()`` block.

    Remembers, for every path stored when the block began, the live
    entry object and a copy of its field values at that moment.
    """

    def __init__(self, entries: dict[str, Entry]) -> None:
        """Begin an ACTIVE transaction over the current *entries*."""
        self.state = TransactionState.ACTIVE
        self._saved = {path: (entry, entry.copy()) for path, entry in entries.items()}

    @property
    def snapshot(self) -> dict[str, Entry]:
        """Return copies of the entries as they were at the start."""
        return {path: saved for path, (_, saved) in self._saved.items()}

    def restore(self) -> dict[str, Entry]:
        """Rewind every original entry object and return the old mapping."""
        restored: dict[str, Entry] = {}
        for path, (entry, saved) in self._saved.items():
            vars(entry).update(vars(saved))
            restored[path] = entry
        return restored


class FlatStore:
    """A flat ``path → Entry`` mapping with subtree helpers."""

    def __init__(self, entries: dict[str, Entry] | None = None) -> None:
        """Create a store, optionally pre-populated (the dict is copied)."""
        self._entries: dict[str, Entry] = dict(entries) if entries else {}
        self._transaction: Transaction | None = None

    # -- Mapping protocol ----------------------------------------------------

    def __getitem__(self, path: str) -> Entry:
        """Return the entry at *path* (KeyError if absent)."""
        return self._entries[path]

    def __setitem__(self, path: str, entry: Entry) -> None:
        """Store *entry* at *path*, replacing anything there."""
        self._entries[path] = entry

    def __delitem__(self, path: str) -> None:
        """Remove exactly *path* (no cascade)."""
        del self._entries[path]

    def __contains__(self, path: object) -> bool:
        """Return True if *path* is stored."""
        return path in self._entries

    def __iter__(self) -> Iterator[str]:
        """Iterate over stored paths in insertion order."""
        return iter(list(self._entries))

    def __len__(self) -> int:
        """Return the number of stored paths."""
        return len(self._entries)

    def get(self, path: str) -> Entry | None:
        """Return the entry at *path*, or None."""
        return self._entries.get(path)

    def paths(self) -> list[str]:
        """Return every stored path, sorted."""
        return sorted(self._entries)

    def items(self) -> list[tuple[str, Entry]]:
        """Return ``(path, entry)`` pairs, sorted by path."""
        return sorted(self._entries.items())

    # -- Tree-shaped queries over the flat map ------------------------------

    def collect_subtree(self, path: str, *, include_self: bool = True) -> list[str]:
        """Return *path* and every stored path beneath it.

        Results are ordered by depth, so parents always precede their
        children; callers create in this order and delete in reverse.

        Args:
            path: Normalised absolute path of the subtree root.
            include_self: Whether to include *path* itself (if stored).

        """
        prefix = subtree_prefix(path)
        found = [p for p in self._entries if p != path and p.startswith(prefix)]
        if include_self and path in self._entries:
            found.append(path)
        return sorted(found, key=_depth_then_name)

    def children(self, path: str) -> list[str]:
        """Return the stored paths directly beneath *path*, sorted."""
        prefix = subtree_prefix(path)
        return sorted(
            p
            for p in self._entries
            if p != path and p.startswith(prefix) and "/" not in p[len(prefix) :]
        )

    def has_children(self, path: str) -> bool:
        """Return True if anything is stored beneath *path*."""
        prefix = subtree_prefix(path)
        return any(p != path and p.startswith(prefix) for p in self._entries)

    def remove_subtree(self, path: str) -> list[str]:
        """Delete *path* and everything beneath it (the cascade).

        Returns:
            The removed paths, deepest first.

        """
        removed = list(reversed(self.collect_subtree(path)))
        for p in removed:
            del self._entries[p]
        return removed

    # -- Transactions --------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        """Return True while a transaction block is running."""
        return self._transaction is not None

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """Run a block all-or-nothing.

        In-place mutation of a live entry inside the block is rolled
        back too, and the rolled-back store holds the same entry objects
        it held before.  Nested blocks join the outermost transaction.

        Raises:
            Whatever the block raised, after restoring the snapshot.

        """
        if self._transaction is not None:
            yield self._transaction
            return

        txn = Transaction(self._entries)
        self._transaction = txn
        try:
            yield txn
        except BaseException:
            self._entries = txn.restore()
            txn.state = TransactionState.ABORTED
            raise
        else:
            txn.state = TransactionState.COMMITTED
        finally:
            self._transaction = None

    # -- Serialization -------------------------------------------------------

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Serialize to the persisted ``{path: entry}`` shape."""
        return {path: entry.to_dict() for path, entry in self.items()}

    @classmethod
    def from_dict(cls, data: dict[str, dict[str, Any]]) -> FlatStore:
        """Rebuild a store, validating every entry on the way in."""
        return cls({path: Entry.from_dict(raw) for path, raw in data.items()})


def _depth_then_name(path: str) -> tuple[int, str]:
    if path == ROOT:
        return (0, path)
    return (path.count("/"), path)
