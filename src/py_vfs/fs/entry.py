"""Entries — the metadata record behind every virtual path.

An entry is what ``stat`` would show: type, permission string, owner,
group, size, timestamps and, for files, the content itself.  Entries
do not know their own path; the store maps paths to entries.

There are exactly two entry types.  Older saved states sometimes spell
the directory type ``"directory"``; that alias is accepted when data is
*ingested* (``EntryType.parse``, ``Entry.from_dict``) and never produced.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
    from py_vfs.users import User

DIRECTORY_SIZE = 4096

DEFAULT_FILE_PERMISSIONS = "-rw-r--r--"
DEFAULT_DIR_PERMISSIONS = "drwxr-xr-x"

Owner: TypeAlias = str | int
EntryUpdate: TypeAlias = dict[str, Any]


class EntryType(StrEnum):
    """The kind of node an entry describes."""

    FILE = "file"
    DIRECTORY = "dir"

    @classmethod
    def parse(cls, value: str | EntryType) -> EntryType:
        """Convert raw type text into an ``EntryType``.

        Raises:
            ValueError: If *value* names no known type.

        """
        if isinstance(value, EntryType):
            return value
        if value == "directory":
            return cls.DIRECTORY
        return cls(value)


def _now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class Entry:
    """A file or directory record.

    Mutable on purpose: the service hands out live references, so a
    caller that updates ``accessed`` is updating the stored entry.
    """

    type: EntryType
    permissions: str
    owner: Owner = "root"
    group: Owner = "root"
    size: int = 0
    content: str | None = None
    created: datetime = field(default_factory=_now)
    modified: datetime = field(default_factory=_now)
    accessed: datetime = field(default_factory=_now)
    links: int = 1

    @property
    def is_dir(self) -> bool:
        """Return True for directories."""
        return self.type is EntryType.DIRECTORY

    @property
    def is_file(self) -> bool:
        """Return True for regular files."""
        return self.type is EntryType.FILE

    def copy(self) -> Entry:
        """Return an independent shallow copy."""
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible primitives."""
        data: dict[str, Any] = {
            "type": self.type.value,
            "permissions": self.permissions,
            "owner": self.owner,
            "group": self.group,
            "size": self.size,
            "created": self.created.isoformat(),
            "modified": self.modified.isoformat(),
            "accessed": self.accessed.isoformat(),
            "links": self.links,
        }
        if self.content is not None:
            data["content"] = self.content
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Entry:
        """Deserialize an entry, normalising legacy type names.

        Missing timestamps default to now; a file's missing size is
        recomputed from its content.
        """
        entry_type = EntryType.parse(data["type"])
        is_dir = entry_type is EntryType.DIRECTORY
        content = data.get("content")
        if is_dir:
            content = None
        default_size = DIRECTORY_SIZE if is_dir else len(content or "")
        now = _now()
        return cls(
            type=entry_type,
            permissions=data.get(
                "permissions", DEFAULT_DIR_PERMISSIONS if is_dir else DEFAULT_FILE_PERMISSIONS
            ),
            owner=data.get("owner", "root"),
            group=data.get("group", "root"),
            size=data.get("size", default_size),
            content=content,
            created=_parse_time(data.get("created"), now),
            modified=_parse_time(data.get("modified"), now),
            accessed=_parse_time(data.get("accessed"), now),
            links=data.get("links", 2 if is_dir else 1),
        )


ENTRY_FIELDS = frozenset(f.name for f in fields(Entry))


def _parse_time(value: str | datetime | None, default: datetime) -> datetime:
    if value is None:
        return default
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def create_file_entry(
    content: str = "",
    *,
    owner: Owner = "root",
    group: Owner = "root",
    permissions: str = DEFAULT_FILE_PERMISSIONS,
    now: datetime | None = None,
) -> Entry:
    """Build a regular-file entry whose size matches its content."""
    stamp = now or _now()
    return Entry(
        type=EntryType.FILE,
        permissions=permissions,
        owner=owner,
        group=group,
        size=len(content),
        content=content,
        created=stamp,
        modified=stamp,
        accessed=stamp,
        links=1,
    )


def create_dir_entry(
    *,
    owner: Owner = "root",
    group: Owner = "root",
    permissions: str = DEFAULT_DIR_PERMISSIONS,
    now: datetime | None = None,
) -> Entry:
    """Build a directory entry (fixed size, two links)."""
    stamp = now or _now()
    return Entry(
        type=EntryType.DIRECTORY,
        permissions=permissions,
        owner=owner,
        group=group,
        size=DIRECTORY_SIZE,
        content=None,
        created=stamp,
        modified=stamp,
        accessed=stamp,
        links=2,
    )


def create_default_entry(
    entry_type: EntryType = EntryType.FILE,
    user: User | None = None,
    owner: Owner | None = None,
    group: Owner | None = None,
    now: datetime | None = None,
) -> Entry:
    """Build a new entry owned by *user* with default permissions.

    Owner falls back to the user's name (else ``root``); group to the
    user's primary group (else the username, else ``root``).
    """
    if owner is None:
        owner = user.username if user else "root"
    if group is None:
        group = user.primary_group if user else "root"
    default_owner, default_group = owner, group
    if entry_type is EntryType.DIRECTORY:
        return create_dir_entry(owner=default_owner, group=default_group, now=now)
    return create_file_entry(owner=default_owner, group=default_group, now=now)
