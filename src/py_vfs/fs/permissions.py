"""Permissions — Unix-style access checks over the flat store.

Every entry carries a ten-character mode string such as ``-rwxr-x---``:
one type character, then three ``rwx`` triples for the owner, the
owning group and everybody else.  A check answers one question — may
*this user* perform *this operation* on *this path*? — with a fixed
decision sequence:

1. **Namespace operations** (create, delete, rename) change the parent
   directory's listing, so they are checked as ``write`` on the parent.
   The final path segment is never traversed or inspected.
2. **Root** (uid 0) is allowed everything, except executing a file
   nobody has an execute bit on.
3. **Traverse**: every directory on the way down needs its ``x`` bit
   for the user's class.  ``/a/b/c.txt`` is unreachable if ``/a`` is
   ``drwx------`` and owned by someone else, whatever ``c.txt`` says.
4. **Classify** the user as owner, group or others.
5. **Map** the operation to a bit: read/list → ``r``, write → ``w``,
   execute/traverse → ``x``.

Special bits count as execute for their slot: ``s``/``S`` in the owner
and group triples, ``t``/``T`` in the others triple.

Checks never raise.  They return a ``PermissionCheck`` and the service
turns a denial into ``PermissionDeniedError``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from py_vfs.fs import errors
from py_vfs.fs.entry import Entry, EntryType
from py_vfs.fs.paths import ROOT, get_dirname

if TYPE_CHECKING:
    from py_vfs.fs.service import FileSystemService
    from py_vfs.users import User

_PERMISSION_PATTERN = re.compile(r"[d\-lcb][rwxsStT\-]{9}")
_OCTAL_DIGITS = re.compile(r"[0-7]{1,4}")
_MAX_MODE = 0o7777
_SYMBOLIC_CLAUSE = re.compile(r"([ugoa]*)([+\-=])([rwx]*)")
_SYMBOLIC_OFFSETS = {"u": (1,), "g": (4,), "o": (7,), "a": (1, 4, 7)}


class Operation(StrEnum):
    """Everything a caller can ask permission for."""

    READ = "read"
    WRITE = "write"
    EXECUTE = "execute"
    LIST = "list"
    TRAVERSE = "traverse"
    CREATE = "create"
    DELETE = "delete"
    RENAME = "rename"


NAMESPACE_OPERATIONS = frozenset({Operation.CREATE, Operation.DELETE, Operation.RENAME})


class UserClass(StrEnum):
    """Which triple of the mode string applies to a user."""

    OWNER = "owner"
    GROUP = "group"
    OTHERS = "others"


@dataclass(frozen=True)
class PermissionCheck:
    """The verdict of one permission check.

    Truthy when the operation is allowed, so callers can write
    ``if system.has_permission(...)``.
    """

    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        """Return the verdict."""
        return self.allowed


@dataclass(frozen=True)
class PermissionTriple:
    """Read/write/execute flags for one user class."""

    read: bool
    write: bool
    execute: bool


@dataclass(frozen=True)
class PermissionBits:
    """A parsed mode string: one triple per user class."""

    owner: PermissionTriple
    group: PermissionTriple
    others: PermissionTriple

    def for_class(self, user_class: UserClass) -> PermissionTriple:
        """Return the triple that applies to *user_class*."""
        return getattr(self, user_class.value)

    @property
    def any_execute(self) -> bool:
        """Return True if any class has an execute bit."""
        return self.owner.execute or self.group.execute or self.others.execute


def parse_permissions(permissions: str) -> PermissionBits:
    """Split a ten-character mode string into three triples.

    Short or malformed strings parse leniently: missing characters
    simply grant nothing.
    """
    bits = permissions[1:10].ljust(9, "-")
    return PermissionBits(
        owner=PermissionTriple(
            read=bits[0] == "r", write=bits[1] == "w", execute=bits[2] in "xsS"
        ),
        group=PermissionTriple(
            read=bits[3] == "r", write=bits[4] == "w", execute=bits[5] in "xsS"
        ),
        others=PermissionTriple(
            read=bits[6] == "r", write=bits[7] == "w", execute=bits[8] in "xtT"
        ),
    )


def is_valid_permission_string(permissions: str) -> bool:
    """Return True for a well-formed ten-character mode string."""
    return _PERMISSION_PATTERN.fullmatch(permissions) is not None


def octal_to_permission_string(mode: int, *, is_dir: bool = False) -> str:
    """Convert a numeric mode such as ``0o755`` into ``-rwxr-xr-x``.

    The setuid, setgid and sticky bits (``0o4000``, ``0o2000``,
    ``0o1000``) become ``s``/``S``/``t``/``T`` as ``ls -l`` shows them.

    Raises:
        ValueError: If *mode* is outside ``0..0o7777``.

    """
    if not 0 <= mode <= _MAX_MODE:
        msg = f"Mode out of range: {mode:o}"
        raise ValueError(msg)

    chars = ["d" if is_dir else "-"]
    for shift in (6, 3, 0):
        digit = (mode >> shift) & 0o7
        chars.append("r" if digit & 0o4 else "-")
        chars.append("w" if digit & 0o2 else "-")
        chars.append("x" if digit & 0o1 else "-")

    specials = ((0o4000, 3, "s"), (0o2000, 6, "s"), (0o1000, 9, "t"))
    for flag, index, letter in specials:
        if mode & flag:
            chars[index] = letter if chars[index] == "x" else letter.upper()
    return "".join(chars)


def permission_string_to_octal(permissions: str) -> int:
    """Convert ``-rwsr-xr-x`` back into ``0o4755``.

    The inverse of ``octal_to_permission_string`` for valid strings.
    """
    bits = permissions[1:10].ljust(9, "-")
    mode = 0
    for index, char in enumerate(bits):
        if char in "rwxst":
            mode |= 1 << (8 - index)
    specials = ((2, 0o4000), (5, 0o2000), (8, 0o1000))
    for index, flag in specials:
        if bits[index] in "sStT":
            mode |= flag
    return mode


def parse_octal_mode(text: str) -> int | None:
    """Parse ``"755"`` or ``"0644"`` into an int, or None if not octal."""
    if _OCTAL_DIGITS.fullmatch(text) is None:
        return None
    return int(text, 8)


def apply_symbolic_mode(permissions: str, mode: str) -> str:
    """Apply a symbolic mode such as ``u+x``, ``go-w`` or ``a=r,u+w``.

    Who defaults to ``a``.  Special bits are not supported here.

    Raises:
        ValueError: If any clause is malformed.

    """
    chars = list(permissions.ljust(10, "-")[:10])
    for clause in mode.split(","):
        match = _SYMBOLIC_CLAUSE.fullmatch(clause)
        if match is None:
            msg = f"Invalid symbolic mode: {mode}"
            raise ValueError(msg)
        who, op, perms = match.groups()
        for cls in who or "a":
            for offset in _SYMBOLIC_OFFSETS[cls]:
                for index, letter in enumerate("rwx"):
                    position = offset + index
                    if op == "=":
                        chars[position] = letter if letter in perms else "-"
                    elif letter in perms:
                        chars[position] = letter if op == "+" else "-"
    return "".join(chars)


def user_in_group(user: User, group: str | int) -> bool:
    """Return True if *group* is the user's primary gid or group, or one of their groups."""
    if isinstance(group, int):
        return group == user.gid
    return group == user.primary_group or group in user.groups


def classify_user(entry: Entry, user: User) -> UserClass:
    """Decide which mode triple applies to *user* for *entry*."""
    owner = entry.owner
    if owner == user.username or (isinstance(owner, int) and owner == user.uid):
        return UserClass.OWNER
    if user_in_group(user, entry.group):
        return UserClass.GROUP
    return UserClass.OTHERS


def check_entry(entry: Entry, user: User, operation: Operation) -> PermissionCheck:
    """Check one operation against one entry's own mode bits.

    This ignores root and the path; ``PermissionsSystem`` layers those
    on top.
    """
    bits = parse_permissions(entry.permissions)
    user_class = classify_user(entry, user)
    triple = bits.for_class(user_class)

    match operation:
        case Operation.READ:
            return _verdict(triple.read, f"No read permission ({user_class})")
        case Operation.WRITE:
            return _verdict(triple.write, f"No write permission ({user_class})")
        case Operation.LIST:
            if entry.type is not EntryType.DIRECTORY:
                return PermissionCheck(allowed=False, reason="Not a directory")
            return _verdict(triple.read, f"No list permission ({user_class})")
        case Operation.TRAVERSE:
            if entry.type is not EntryType.DIRECTORY:
                return PermissionCheck(allowed=False, reason="Not a directory")
            return _verdict(triple.execute, f"No traverse permission ({user_class})")
        case Operation.EXECUTE:
            if entry.type is EntryType.DIRECTORY:
                return check_entry(entry, user, Operation.TRAVERSE)
            return check_execute(entry, user)
        case _:
            return PermissionCheck(allowed=False, reason=f"Unknown operation: {operation}")


def check_execute(entry: Entry, user: User | None) -> PermissionCheck:
    """Check execute permission on a regular file.

    Root may execute a file when *any* class has an execute bit; other
    users need the bit of their own class.
    """
    if entry.type is not EntryType.FILE:
        return PermissionCheck(allowed=False, reason="Not a file")
    if user is None:
        return PermissionCheck(allowed=False, reason="User required for execute check")

    bits = parse_permissions(entry.permissions)
    if user.is_root:
        return _verdict(bits.any_execute, "No execute permission anywhere")

    user_class = classify_user(entry, user)
    return _verdict(bits.for_class(user_class).execute, f"No execute permission ({user_class})")


def _verdict(allowed: bool, denial_reason: str) -> PermissionCheck:  # noqa: FBT001
    return PermissionCheck(allowed=allowed, reason=None if allowed else denial_reason)


class PermissionsSystem:
    """Path-aware permission checks against a service's store.

    Reads the store directly (no permission recursion) and resolves
    relative paths through the owning service.
    """

    def __init__(self, service: FileSystemService) -> None:
        """Attach to *service* for path normalisation and store access."""
        self._service = service

    def has_permission(
        self, path: str, user: User, operation: Operation | str
    ) -> PermissionCheck:
        """Decide whether *user* may perform *operation* on *path*.

        Args:
            path: Absolute or cwd-relative path.
            user: The identity asking.
            operation: An ``Operation`` or its string value.

        Returns:
            A verdict; never raises.

        """
        try:
            operation = Operation(operation)
        except ValueError:
            return PermissionCheck(allowed=False, reason=f"Unknown operation: {operation}")

        normalized = self._service.normalize_path(path)
        if operation in NAMESPACE_OPERATIONS:
            if normalized == ROOT:
                return PermissionCheck(allowed=False, reason="Cannot modify the root directory")
            return self.has_permission(get_dirname(normalized), user, Operation.WRITE)

        entry = self._service.store.get(normalized)
        if entry is None:
            return PermissionCheck(allowed=False, reason="File not found")

        if user.is_root:
            if operation is Operation.EXECUTE and entry.type is EntryType.FILE:
                return check_execute(entry, user)
            return PermissionCheck(allowed=True, reason="Root user")

        path_check = self._check_path(normalized, user)
        if not path_check:
            return path_check

        return check_entry(entry, user, operation)

    def _check_path(self, path: str, user: User) -> PermissionCheck:
        """Require traverse on every directory from the root down to *path*.

        Prefixes that are missing or are not directories are skipped;
        well-formedness is not this layer's concern.
        """
        store = self._service.store
        parts = [p for p in path.split("/") if p]
        current = ""
        for part in parts:
            current = f"{current}/{part}"
            entry = store.get(current)
            if entry is None or entry.type is not EntryType.DIRECTORY:
                continue
            if not check_entry(entry, user, Operation.TRAVERSE):
                return PermissionCheck(allowed=False, reason=f"No traverse permission on {current}")
        return PermissionCheck(allowed=True)

    def can_reach(self, path: str, user: User) -> PermissionCheck:
        """Check traverse on every directory *above* *path*.

        This is what ``stat`` and ``chown`` need: the entry's own bits
        do not matter, only whether the user can get to it.
        """
        normalized = self._service.normalize_path(path)
        if user.is_root or normalized == ROOT:
            return PermissionCheck(allowed=True)
        return self._check_path(get_dirname(normalized), user)

    def get_permissions(self, path: str) -> str | None:
        """Return the mode string stored at *path*, or None."""
        entry = self._service.store.get(self._service.normalize_path(path))
        return entry.permissions if entry is not None else None

    def set_permissions(self, path: str, permissions: str, user: User) -> None:
        """Replace the mode string at *path*.

        Only the owner or root may change permissions.

        Raises:
            errors.FileNotFoundError: If *path* is absent.
            errors.PermissionDeniedError: If *user* is neither owner nor root.
            errors.InvalidPermissionsError: If *permissions* is malformed.

        """
        normalized = self._service.normalize_path(path)
        entry = self._service.store.get(normalized)
        if entry is None:
            raise errors.FileNotFoundError(path, "chmod")

        is_owner = entry.owner == user.username or entry.owner == user.uid
        if not user.is_root and not is_owner:
            raise errors.PermissionDeniedError(path, "chmod", reason="Operation not permitted")

        if not is_valid_permission_string(permissions):
            raise errors.InvalidPermissionsError(path, permissions)

        entry.permissions = permissions
        entry.modified = self._service.now()

    def can_read(self, path: str) -> bool:
        """Return True if the session user may read *path*."""
        return self.has_permission(path, self._service.user, Operation.READ).allowed

    def can_write(self, path: str) -> bool:
        """Return True if the session user may write *path*."""
        return self.has_permission(path, self._service.user, Operation.WRITE).allowed

    def can_execute(self, path: str) -> bool:
        """Return True if the session user may execute *path*."""
        return self.has_permission(path, self._service.user, Operation.EXECUTE).allowed
