"""Users and groups — identities the permission engine checks against.

The virtual filesystem does not own users.  Every session carries a
``User`` and hands it to each permission check.  Where users *come
from* is the classic Unix answer: two text files inside the virtual
filesystem itself.

**User** — an identity with a numeric ``uid``, a primary ``gid`` and the
    names of every group it belongs to.  The uid is what decides
    whether a request is privileged; names are what entries store.

**/etc/passwd** — ``name:password:uid:gid:gecos:home:shell`` per line.

**/etc/group** — ``name:password:gid:member,member`` per line.

**UserDatabase** — a read-only view over those two files in a store,
    used by ``su``, ``chown`` and ``id`` to turn names into identities.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from py_vfs.fs.store import FlatStore

ROOT_UID = 0
ROOT_GID = 0

PASSWD_PATH = "/etc/passwd"
GROUP_PATH = "/etc/group"
SHADOW_PATH = "/etc/shadow"

DEFAULT_PASSWD_CONTENT = """root:x:0:0:root:/root:/bin/bash
daemon:x:1:1:daemon:/usr/sbin:/usr/sbin/nologin
nobody:x:65534:65534:nobody:/nonexistent:/usr/sbin/nologin
"""

DEFAULT_GROUP_CONTENT = """root:x:0:
daemon:x:1:
sudo:x:27:
users:x:100:
nogroup:x:65534:
"""

DEFAULT_SHADOW_CONTENT = """root:*:19000:0:99999:7:::
daemon:*:19000:0:99999:7:::
nobody:*:19000:0:99999:7:::
"""


@dataclass(frozen=True)
class User:
    """An identity in the system.

    Frozen, so a session can hand the same object to every check
    without worrying that a command mutates it halfway through.
    """

    username: str
    uid: int
    gid: int
    groups: tuple[str, ...] = field(default=())
    home: str = "/"
    shell: str = "/bin/bash"

    @property
    def is_root(self) -> bool:
        """Return True for the superuser (uid 0)."""
        return self.uid == ROOT_UID

    @property
    def primary_group(self) -> str:
        """Return the first group name, falling back to the username."""
        return self.groups[0] if self.groups else self.username

    def __repr__(self) -> str:
        """Return a readable representation."""
        return f"User(uid={self.uid}, username={self.username!r})"


def root_user() -> User:
    """Return the superuser identity."""
    return User(username="root", uid=ROOT_UID, gid=ROOT_GID, groups=("root",), home="/root")


@dataclass(frozen=True)
class PasswdRecord:
    """One parsed line of ``/etc/passwd``."""

    username: str
    password: str
    uid: int
    gid: int
    gecos: str
    home: str
    shell: str


@dataclass(frozen=True)
class GroupRecord:
    """One parsed line of ``/etc/group``."""

    name: str
    password: str
    gid: int
    members: tuple[str, ...]


def _int_field(value: str, default: int = -1) -> int:
    try:
        return int(value)
    except ValueError:
        return default


def parse_passwd(text: str) -> list[PasswdRecord]:
    """Parse ``/etc/passwd`` content; blank lines are ignored.

    Missing trailing fields default to empty strings.
    """
    records: list[PasswdRecord] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        fields = (line.split(":") + [""] * 7)[:7]
        username, password, uid, gid, gecos, home, shell = fields
        records.append(
            PasswdRecord(
                username=username,
                password=password,
                uid=_int_field(uid),
                gid=_int_field(gid),
                gecos=gecos,
                home=home,
                shell=shell,
            )
        )
    return records


def parse_group(text: str) -> list[GroupRecord]:
    """Parse ``/etc/group`` content; blank lines are ignored."""
    records: list[GroupRecord] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        name, password, gid, members = (line.split(":") + [""] * 4)[:4]
        records.append(
            GroupRecord(
                name=name,
                password=password,
                gid=_int_field(gid),
                members=tuple(m for m in members.split(",") if m),
            )
        )
    return records


def format_passwd_line(record: PasswdRecord) -> str:
    """Render a passwd record back into its colon-separated form."""
    return ":".join(
        [
            record.username,
            record.password,
            str(record.uid),
            str(record.gid),
            record.gecos,
            record.home,
            record.shell,
        ]
    )


def format_group_line(record: GroupRecord) -> str:
    """Render a group record back into its colon-separated form."""
    return ":".join([record.name, record.password, str(record.gid), ",".join(record.members)])


class UserDatabase:
    """Read-only lookups over ``/etc/passwd`` and ``/etc/group`` in a store.

    The files are re-read on every call, so edits made through the
    filesystem (``echo ... >> /etc/group``) are visible immediately.
    """

    def __init__(self, store: FlatStore) -> None:
        """Create a database view over *store*."""
        self._store = store

    def _read(self, path: str) -> str:
        entry = self._store.get(path)
        if entry is None or entry.content is None:
            return ""
        return entry.content

    def users(self) -> list[PasswdRecord]:
        """Return every passwd record."""
        return parse_passwd(self._read(PASSWD_PATH))

    def groups(self) -> list[GroupRecord]:
        """Return every group record."""
        return parse_group(self._read(GROUP_PATH))

    def find_user(self, name_or_uid: str | int) -> PasswdRecord | None:
        """Look a user up by name, or by uid for numeric input."""
        records = self.users()
        for record in records:
            if record.username == name_or_uid:
                return record
        uid = name_or_uid if isinstance(name_or_uid, int) else _int_field(name_or_uid, default=-2)
        for record in records:
            if record.uid == uid:
                return record
        return None

    def find_group(self, name_or_gid: str | int) -> GroupRecord | None:
        """Look a group up by name, or by gid for numeric input."""
        records = self.groups()
        for record in records:
            if record.name == name_or_gid:
                return record
        gid = name_or_gid if isinstance(name_or_gid, int) else _int_field(name_or_gid, default=-2)
        for record in records:
            if record.gid == gid:
                return record
        return None

    def groups_for(self, username: str) -> list[str]:
        """Return the user's group names, primary group first."""
        record = self.find_user(username)
        names: list[str] = []
        if record is not None:
            primary = self.find_group(record.gid)
            if primary is not None:
                names.append(primary.name)
        for group in self.groups():
            if username in group.members and group.name not in names:
                names.append(group.name)
        return names

    def load_user(self, name_or_uid: str | int) -> User | None:
        """Build a ``User`` from the passwd and group files.

        Returns:
            The user, or None if no passwd line matches.

        """
        record = self.find_user(name_or_uid)
        if record is None:
            return None
        return User(
            username=record.username,
            uid=record.uid,
            gid=record.gid,
            groups=tuple(self.groups_for(record.username)),
            home=record.home or "/",
            shell=record.shell or "/bin/bash",
        )
