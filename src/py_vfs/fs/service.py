"""The filesystem service — the single gateway to the virtual store.

Commands never touch the store directly.  They ask the service, and the
service asks the permission engine first:

- ``get_file(path, operation)`` — look up an entry, enforcing the
  requested permission.
- ``set_file(path, entry)`` — create, modify or delete, chosen from
  whether *entry* is None and whether *path* exists.
- ``list_directory(path)`` — direct children of a directory.
- ``exists`` / ``is_directory`` — permission-free checks.
- ``rename`` / ``change_owner`` — the multi-step operations behind
  ``mv`` and ``chown -R``, applied all-or-nothing.

Namespace operations (create, delete, rename) are checked against the
*parent* directory, exactly as Unix checks ``w`` on the directory whose
listing changes.

Every denial is logged at WARNING and every mutation at INFO, both
under the ``fs`` source with the session user's uid.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from py_vfs.fs import errors
from py_vfs.fs.entry import ENTRY_FIELDS, Entry, EntryType
from py_vfs.fs.filesystem import FileSystem
from py_vfs.fs.paths import ROOT, get_dirname, is_sub_path, resolve_path
from py_vfs.fs.permissions import (
    Operation,
    PermissionCheck,
    PermissionsSystem,
    user_in_group,
)
from py_vfs.logging import LogLevel

if TYPE_CHECKING:
    from py_vfs.context import SessionContext
    from py_vfs.fs.store import FlatStore
    from py_vfs.users import User

_SOURCE = "fs"


@dataclass(frozen=True)
class DirectoryListing:
    """One direct child returned by ``list_directory``."""

    name: str
    type: EntryType
    path: str
    entry: Entry


@dataclass(frozen=True)
class _StagedMove:
    old_path: str
    new_path: str
    entry: Entry


class FileSystemService:
    """Permission-enforcing read/write access to a session's store."""

    def __init__(self, context: SessionContext) -> None:
        """Bind the service to a session context.

        The service reads the user and working directory from the
        context on every call, so ``su`` and ``cd`` take effect at once.
        """
        self.context = context
        self.permissions_system = PermissionsSystem(self)
        self.files = FileSystem(self)

    # -- Context accessors ---------------------------------------------------

    @property
    def store(self) -> FlatStore:
        """Return the flat store being operated on."""
        return self.context.store

    @property
    def user(self) -> User:
        """Return the session user."""
        return self.context.current_user

    def now(self) -> datetime:
        """Return the session clock's current time."""
        return self.context.clock()

    def normalize_path(self, path: str) -> str:
        """Resolve *path* against the working directory; never raises."""
        if not path:
            return self.context.get_current_path()
        return resolve_path(path, self.context.get_current_path())

    # -- Reads ---------------------------------------------------------------

    def get_file(self, path: str, operation: Operation | str = Operation.READ) -> Entry:
        """Return the live entry at *path* after a permission check.

        Raises:
            errors.FileNotFoundError: If nothing is stored at *path*.
            errors.PermissionDeniedError: If the check fails.

        """
        normalized = self.normalize_path(path)
        entry = self.store.get(normalized)
        if entry is None:
            raise errors.FileNotFoundError(path)

        check = self.permissions_system.has_permission(normalized, self.user, operation)
        if not check:
            raise self._denied(path, str(operation), check)
        return entry

    def list_directory(self, path: str) -> list[DirectoryListing]:
        """Return the direct children of a directory, sorted by name.

        Raises:
            errors.FileNotFoundError: If *path* does not exist.
            errors.NotDirectoryError: If *path* is not a directory.
            errors.PermissionDeniedError: If the user may not list it.

        """
        normalized = self.normalize_path(path)
        existing = self.store.get(normalized)
        if existing is not None and existing.type is not EntryType.DIRECTORY:
            raise errors.NotDirectoryError(path)

        self.get_file(normalized, Operation.LIST)

        listing: list[DirectoryListing] = []
        for child in self.store.children(normalized):
            entry = self.store[child]
            listing.append(
                DirectoryListing(
                    name=child.rsplit("/", 1)[-1], type=entry.type, path=child, entry=entry
                )
            )
        return listing

    def exists(self, path: str) -> bool:
        """Return True if *path* is stored, regardless of permissions."""
        try:
            return self.normalize_path(path) in self.store
        except Exception:  # noqa: BLE001
            return False

    def is_directory(self, path: str) -> bool:
        """Return True if *path* is a stored directory, regardless of permissions."""
        try:
            entry = self.store.get(self.normalize_path(path))
        except Exception:  # noqa: BLE001
            return False
        return entry is not None and entry.type is EntryType.DIRECTORY

    def collect_subtree(self, path: str, *, include_self: bool = True) -> list[str]:
        """Return *path* and every stored path beneath it, parents first."""
        return self.store.collect_subtree(self.normalize_path(path), include_self=include_self)

    # -- Writes --------------------------------------------------------------

    def set_file(self, path: str, entry: Entry | dict[str, Any] | None = None) -> None:
        """Create, modify or delete the entry at *path*.

        The operation is inferred:

        ============  ===========  ===========================
        *entry*       path exists  operation
        ============  ===========  ===========================
        None          yes          delete (cascades to children)
        None          no           FileNotFoundError
        given         no           create (stored verbatim)
        given         yes          modify (fields merged)
        ============  ===========  ===========================

        Raises:
            errors.FileNotFoundError: Deleting a missing path, or creating
                under a missing parent.
            errors.NotDirectoryError: Creating under a non-directory.
            errors.PermissionDeniedError: If the parent (create/delete) or
                the target (modify) is not writable.
            errors.TypeMismatchError: If a modify changes the entry type.

        """
        normalized = self.normalize_path(path)
        exists = normalized in self.store

        if entry is None:
            if not exists:
                raise errors.FileNotFoundError(path, "delete")
            self._delete(path, normalized)
        elif exists:
            self._modify(path, normalized, entry)
        else:
            self._create(path, normalized, entry)

    def create(self, path: str, entry: Entry | dict[str, Any]) -> None:
        """Create *path*, refusing to touch anything already there.

        Raises:
            errors.FileExistsError: If *path* is already stored.

        """
        normalized = self.normalize_path(path)
        if normalized in self.store:
            raise errors.FileExistsError(path)
        self._create(path, normalized, entry)

    def _create(self, path: str, normalized: str, entry: Entry | dict[str, Any]) -> None:
        new_entry = entry if isinstance(entry, Entry) else Entry.from_dict(entry)
        self._check_parent(path, normalized, Operation.CREATE)
        self.store[normalized] = new_entry
        self.log(LogLevel.INFO, f"create {new_entry.type} {normalized}")

    def _modify(self, path: str, normalized: str, update: Entry | dict[str, Any]) -> None:
        existing = self.store[normalized]
        changes = _as_changes(update)

        unknown = set(changes) - ENTRY_FIELDS
        if unknown:
            msg = f"Unknown entry fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        new_type = EntryType.parse(changes.get("type", existing.type))
        if new_type is not existing.type:
            raise errors.TypeMismatchError(path, existing.type.value, new_type.value)

        check = self.permissions_system.has_permission(normalized, self.user, Operation.WRITE)
        if not check:
            raise self._denied(path, Operation.WRITE, check)

        changes["type"] = new_type
        for name, value in changes.items():
            setattr(existing, name, value)
        stamp = self.now()
        existing.modified = stamp
        existing.accessed = stamp
        self.log(LogLevel.INFO, f"modify {normalized}")

    def _delete(self, path: str, normalized: str) -> None:
        if normalized == ROOT:
            raise errors.PermissionDeniedError(path, Operation.DELETE, reason="Cannot remove /")
        self._check_parent(path, normalized, Operation.DELETE)
        removed = self.store.remove_subtree(normalized)
        self.log(LogLevel.INFO, f"delete {normalized} ({len(removed)} entries)")

    def _check_parent(self, path: str, normalized: str, operation: Operation) -> None:
        """Require a writable parent directory for a namespace operation."""
        parent = get_dirname(normalized)
        parent_entry = self.store.get(parent)
        if parent_entry is None:
            raise errors.FileNotFoundError(parent, operation)
        if parent_entry.type is not EntryType.DIRECTORY:
            raise errors.NotDirectoryError(parent)

        check = self.permissions_system.has_permission(parent, self.user, Operation.WRITE)
        if not check:
            raise self._denied(path, operation, check)

    # -- Multi-step operations -----------------------------------------------

    def rename(self, source: str, destination: str, *, overwrite: bool = True) -> str:
        """Move *source* (and everything beneath it) to *destination*.

        Every precondition is validated before the store is touched,
        and the rewrite itself runs in a store transaction, so the tree
        is either fully renamed or left exactly as it was.

        Args:
            source: Path of the entry to move.
            destination: Exact new path (not a directory to move into).
            overwrite: Whether an existing destination may be replaced.

        Returns:
            The normalised destination path.

        Raises:
            errors.FileNotFoundError: Missing source or destination parent.
            errors.PermissionDeniedError: Either parent is not writable.
            errors.FileExistsError: Destination exists and *overwrite* is False.
            errors.IsDirectoryError: Replacing a directory with a file.
            errors.NotDirectoryError: Replacing a file with a directory.
            errors.FileSystemError: Moving a directory into itself, or onto
                a non-empty directory.

        """
        src = self.normalize_path(source)
        dst = self.normalize_path(destination)

        source_entry = self.store.get(src)
        if source_entry is None:
            raise errors.FileNotFoundError(source, Operation.RENAME)
        if src == dst:
            return dst
        if src == ROOT:
            raise errors.PermissionDeniedError(source, Operation.RENAME, reason="Cannot move /")
        if is_sub_path(dst, src):
            msg = f"Cannot move '{source}' to a subdirectory of itself, '{destination}'"
            raise errors.FileSystemError(msg, destination, Operation.RENAME)

        self._check_parent(source, src, Operation.RENAME)
        self._check_parent(destination, dst, Operation.RENAME)

        target = self.store.get(dst)
        if target is not None:
            if not overwrite:
                raise errors.FileExistsError(destination)
            if target.is_dir and not source_entry.is_dir:
                raise errors.IsDirectoryError(destination)
            if not target.is_dir and source_entry.is_dir:
                raise errors.NotDirectoryError(destination)
            if target.is_dir and self.store.has_children(dst):
                msg = f"Directory not empty: '{destination}'"
                raise errors.FileSystemError(msg, destination, Operation.RENAME)

        staged = [
            _StagedMove(old_path=old, new_path=dst + old[len(src) :], entry=self.store[old])
            for old in self.store.collect_subtree(src)
        ]

        with self.store.transaction():
            if target is not None:
                del self.store[dst]
            for move in reversed(staged):
                del self.store[move.old_path]
            for move in staged:
                self.store[move.new_path] = move.entry

        self.log(LogLevel.INFO, f"rename {src} -> {dst} ({len(staged)} entries)")
        return dst

    def change_owner(
        self,
        path: str,
        owner: str | int | None = None,
        group: str | int | None = None,
        *,
        recursive: bool = False,
    ) -> list[str]:
        """Change the owner and/or group of *path* (and its subtree).

        Only root may change owners.  Other users may change the group
        of entries they own, and only to a group they belong to.  Every
        target is validated before any is changed.

        Returns:
            The paths that were updated, parents first.

        Raises:
            errors.FileNotFoundError: If *path* does not exist.
            errors.PermissionDeniedError: If any target may not be changed.

        """
        normalized = self.normalize_path(path)
        entry = self.store.get(normalized)
        if entry is None:
            raise errors.FileNotFoundError(path, "chown")

        targets = (
            self.store.collect_subtree(normalized)
            if recursive and entry.is_dir
            else [normalized]
        )
        user = self.user

        if not user.is_root:
            if owner is not None:
                check = PermissionCheck(allowed=False, reason="Only root may change owner")
                raise self._denied(path, "chown", check)
            reachable = self.permissions_system.can_reach(normalized, user)
            if not reachable:
                raise self._denied(path, "chown", reachable)
            if group is not None:
                if not user_in_group(user, group):
                    check = PermissionCheck(allowed=False, reason=f"Not a member of {group}")
                    raise self._denied(path, "chown", check)
                for target in targets:
                    current = self.store[target]
                    if current.owner not in (user.username, user.uid):
                        check = PermissionCheck(allowed=False, reason="Operation not permitted")
                        raise self._denied(target, "chown", check)

        with self.store.transaction():
            for target in targets:
                current = self.store[target]
                if owner is not None:
                    current.owner = owner
                if group is not None:
                    current.group = group

        self.log(
            LogLevel.INFO,
            f"chown {owner if owner is not None else ''}:{group if group is not None else ''} "
            f"{normalized} ({len(targets)} entries)",
        )
        return targets

    # -- Helpers -------------------------------------------------------------

    def _denied(
        self, path: str, operation: str, check: PermissionCheck
    ) -> errors.PermissionDeniedError:
        """Log a denial and build the exception for the caller to raise."""
        self.log(LogLevel.WARNING, f"denied {operation} on {path}: {check.reason}")
        return errors.PermissionDeniedError(path, str(operation), reason=check.reason)

    def log(self, level: LogLevel, message: str) -> None:
        """Record *message* in the session log under the ``fs`` source."""
        self.context.logger.log(level, message, source=_SOURCE, uid=self.user.uid)


def _as_changes(update: Entry | dict[str, Any]) -> dict[str, Any]:
    if isinstance(update, Entry):
        return {name: getattr(update, name) for name in ENTRY_FIELDS}
    return dict(update)
