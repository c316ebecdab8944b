"""Content and metadata access layered on the filesystem service.

``FileSystemService`` answers "may I touch this entry?".  ``FileSystem``
answers the everyday questions commands ask once they may: what is in
this file, how big is it, when was it created, what mode does it have.

Every method resolves the entry through the service, so the same
permission rules apply:

- reading content needs ``read``; writing content needs ``write``.
- metadata reads (type, size, dates, mode) only need the entry to be
  *reachable*, as with ``stat`` on a real system.
- ``set_permissions`` is owner-or-root, via the permission engine.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from py_vfs.fs import errors
from py_vfs.fs.entry import DIRECTORY_SIZE, Entry, EntryType
from py_vfs.fs.permissions import (
    Operation,
    apply_symbolic_mode,
    is_valid_permission_string,
    octal_to_permission_string,
    parse_octal_mode,
)
from py_vfs.logging import LogLevel

if TYPE_CHECKING:
    from py_vfs.fs.service import FileSystemService


class FileSystem:
    """Per-entry content and metadata operations for the session user."""

    def __init__(self, service: FileSystemService) -> None:
        """Attach to the service that owns the store and the session."""
        self._service = service

    # -- Lookup --------------------------------------------------------------

    def stat(self, path: str) -> Entry:
        """Return the live entry at *path* if the user can reach it.

        Only the directories above *path* are checked, as with ``stat``.

        Raises:
            errors.FileNotFoundError: If *path* does not exist.
            errors.PermissionDeniedError: If a parent cannot be traversed.

        """
        service = self._service
        entry = service.store.get(service.normalize_path(path))
        if entry is None:
            raise errors.FileNotFoundError(path)
        check = service.permissions_system.can_reach(path, service.user)
        if not check:
            service.log(LogLevel.WARNING, f"denied stat on {path}: {check.reason}")
            raise errors.PermissionDeniedError(path, "stat", reason=check.reason)
        return entry

    # -- Content -------------------------------------------------------------

    def get_content(self, path: str) -> str:
        """Return a file's content and mark it accessed.

        Raises:
            errors.FileNotFoundError: If *path* does not exist.
            errors.PermissionDeniedError: If the user may not read it.
            errors.IsDirectoryError: If *path* is a directory.

        """
        entry = self._service.get_file(path, Operation.READ)
        if entry.is_dir:
            raise errors.IsDirectoryError(path)
        entry.accessed = self._service.now()
        return entry.content or ""

    def set_content(self, path: str, content: str) -> None:
        """Replace a file's content, updating size and timestamps.

        Raises:
            errors.FileNotFoundError: If *path* does not exist.
            errors.PermissionDeniedError: If the user may not write it.
            errors.IsDirectoryError: If *path* is a directory.

        """
        entry = self._service.get_file(path, Operation.WRITE)
        if entry.is_dir:
            raise errors.IsDirectoryError(path)
        stamp = self._service.now()
        entry.content = content
        entry.size = len(content)
        entry.modified = stamp
        entry.accessed = stamp
        self._service.log(LogLevel.INFO, f"write {self._service.normalize_path(path)}")

    # -- Mode ----------------------------------------------------------------

    def get_permissions(self, path: str) -> str:
        """Return the mode string of *path*."""
        return self.stat(path).permissions

    def set_permissions(self, path: str, permissions: str | int) -> str:
        """Change the mode of *path*.

        Args:
            path: Target path.
            permissions: A ten-character mode string, an octal int such
                as ``0o755``, octal digits such as ``"755"``, or a
                symbolic mode such as ``"u+x,go-w"``.

        Returns:
            The mode string now stored.

        Raises:
            errors.FileNotFoundError: If *path* does not exist.
            errors.PermissionDeniedError: Unless the user is owner or root.
            errors.InvalidPermissionsError: If *permissions* is malformed.

        """
        entry = self.stat(path)
        mode = self._to_mode_string(path, permissions, entry)
        service = self._service
        try:
            service.permissions_system.set_permissions(path, mode, service.user)
        except errors.PermissionDeniedError as exc:
            service.log(LogLevel.WARNING, f"denied chmod on {path}: {exc.reason}")
            raise
        service.log(LogLevel.INFO, f"chmod {mode} {service.normalize_path(path)}")
        return mode

    @staticmethod
    def _to_mode_string(path: str, permissions: str | int, entry: Entry) -> str:
        """Turn any accepted mode notation into a ten-character string."""
        if isinstance(permissions, int):
            mode: int | None = permissions
        elif is_valid_permission_string(permissions):
            return permissions
        else:
            mode = parse_octal_mode(permissions)
            if mode is None:
                try:
                    return apply_symbolic_mode(entry.permissions, permissions)
                except ValueError:
                    raise errors.InvalidPermissionsError(path, permissions) from None

        try:
            return octal_to_permission_string(mode, is_dir=entry.is_dir)
        except ValueError:
            raise errors.InvalidPermissionsError(path, f"{mode:o}") from None

    # -- Type and size -------------------------------------------------------

    def get_type(self, path: str) -> EntryType:
        """Return the entry type of *path*."""
        return self.stat(path).type

    def is_dir(self, path: str) -> bool:
        """Return True if *path* is a directory."""
        return self.get_type(path) is EntryType.DIRECTORY

    def is_file(self, path: str) -> bool:
        """Return True if *path* is a regular file."""
        return self.get_type(path) is EntryType.FILE

    def get_size(self, path: str) -> int:
        """Return the recorded size of *path*."""
        return self.stat(path).size

    def set_type_dir(self, path: str) -> None:
        """Turn a file into an empty directory (its content is dropped)."""
        entry = self._service.get_file(path, Operation.WRITE)
        if entry.is_dir:
            return
        entry.type = EntryType.DIRECTORY
        entry.content = None
        entry.size = DIRECTORY_SIZE
        entry.links = 2
        entry.permissions = "d" + entry.permissions[1:]
        entry.modified = self._service.now()

    def set_type_file(self, path: str) -> None:
        """Turn an empty directory into an empty file.

        Raises:
            errors.FileSystemError: If the directory still has children.

        """
        entry = self._service.get_file(path, Operation.WRITE)
        if entry.is_file:
            return
        normalized = self._service.normalize_path(path)
        if self._service.store.has_children(normalized):
            msg = f"Directory not empty: '{path}'"
            raise errors.FileSystemError(msg, path, "retype")
        entry.type = EntryType.FILE
        entry.content = ""
        entry.size = 0
        entry.links = 1
        entry.permissions = "-" + entry.permissions[1:]
        entry.modified = self._service.now()

    # -- Dates ---------------------------------------------------------------

    def get_creation_date(self, path: str) -> datetime:
        """Return when *path* was created."""
        return self.stat(path).created

    def set_creation_date(self, path: str, date: datetime) -> None:
        """Overwrite the creation date (requires write)."""
        self._service.get_file(path, Operation.WRITE).created = date

    def refresh_creation_date(self, path: str) -> datetime:
        """Set the creation date to now and return it."""
        stamp = self._service.now()
        self.set_creation_date(path, stamp)
        return stamp

    def get_access_date(self, path: str) -> datetime:
        """Return when *path* was last accessed."""
        return self.stat(path).accessed

    def set_access_date(self, path: str, date: datetime) -> None:
        """Overwrite the access date (requires read, like ``touch -a``)."""
        self._service.get_file(path, Operation.READ).accessed = date

    def refresh_access_date(self, path: str) -> datetime:
        """Set the access date to now and return it."""
        stamp = self._service.now()
        self.set_access_date(path, stamp)
        return stamp
