"""System installation — the directory tree every fresh session starts from.

A brand-new store is empty, not even ``/``.  ``install_system`` lays
down the familiar skeleton and the account files the shell reads:

    /               drwxr-xr-x
    /bin /etc /usr /var ...
    /home           drwxr-xr-x  (one directory per user)
    /root           drwx------  (root's home, private)
    /tmp            drwxrwxrwt  (world-writable, sticky)
    /etc/passwd     -rw-r--r--
    /etc/group      -rw-r--r--
    /etc/shadow     -rw-------
    /etc/environment

Installation only fills in what is missing, so it is safe to run over a
store loaded from disk.  ``add_user`` is the ``useradd`` of this system:
it appends the account lines and creates the home directory.
``create_session`` ties it together for the front-ends.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import datetime

from py_vfs.context import SaveCallback, SessionContext, utc_now
from py_vfs.env import (
    DEFAULT_ENVIRONMENT_CONTENT,
    ENVIRONMENT_PATH,
    Environment,
    parse_environment_file,
)
from py_vfs.fs.entry import create_dir_entry, create_file_entry
from py_vfs.fs.store import FlatStore
from py_vfs.logging import Logger, LogLevel
from py_vfs.users import (
    DEFAULT_GROUP_CONTENT,
    DEFAULT_PASSWD_CONTENT,
    DEFAULT_SHADOW_CONTENT,
    GROUP_PATH,
    PASSWD_PATH,
    SHADOW_PATH,
    GroupRecord,
    PasswdRecord,
    User,
    UserDatabase,
    format_group_line,
    format_passwd_line,
    parse_group,
    root_user,
)

FIRST_USER_UID = 1000
HOSTNAME_PATH = "/etc/hostname"
DEFAULT_HOSTNAME = "vfs"
_SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class _SystemFile:
    path: str
    content: str
    permissions: str = "-rw-r--r--"


SYSTEM_DIRECTORIES: tuple[tuple[str, str], ...] = (
    ("/", "drwxr-xr-x"),
    ("/bin", "drwxr-xr-x"),
    ("/etc", "drwxr-xr-x"),
    ("/home", "drwxr-xr-x"),
    ("/root", "drwx------"),
    ("/tmp", "drwxrwxrwt"),
    ("/usr", "drwxr-xr-x"),
    ("/usr/bin", "drwxr-xr-x"),
    ("/var", "drwxr-xr-x"),
    ("/var/log", "drwxr-xr-x"),
)

SYSTEM_FILES: tuple[_SystemFile, ...] = (
    _SystemFile(PASSWD_PATH, DEFAULT_PASSWD_CONTENT),
    _SystemFile(GROUP_PATH, DEFAULT_GROUP_CONTENT),
    _SystemFile(SHADOW_PATH, DEFAULT_SHADOW_CONTENT, "-rw-------"),
    _SystemFile(ENVIRONMENT_PATH, DEFAULT_ENVIRONMENT_CONTENT),
    _SystemFile(HOSTNAME_PATH, f"{DEFAULT_HOSTNAME}\n"),
)


def install_system(store: FlatStore | None = None, *, now: datetime | None = None) -> FlatStore:
    """Create every missing system directory and file in *store*.

    Args:
        store: The store to fill; a new one is created when omitted.
        now: Timestamp for the new entries (defaults to the current time).

    Returns:
        The filled store.

    """
    store = store if store is not None else FlatStore()
    stamp = now or utc_now()

    for path, permissions in SYSTEM_DIRECTORIES:
        if path not in store:
            store[path] = create_dir_entry(permissions=permissions, now=stamp)

    for system_file in SYSTEM_FILES:
        if system_file.path not in store:
            store[system_file.path] = create_file_entry(
                system_file.content, permissions=system_file.permissions, now=stamp
            )
    return store


def _append_line(store: FlatStore, path: str, line: str, stamp: datetime) -> None:
    entry = store[path]
    content = entry.content or ""
    if content and not content.endswith("\n"):
        content += "\n"
    entry.content = f"{content}{line}\n"
    entry.size = len(entry.content)
    entry.modified = stamp


def add_user(
    store: FlatStore,
    username: str,
    *,
    uid: int | None = None,
    groups: Iterable[str] = (),
    shell: str = "/bin/bash",
    now: datetime | None = None,
) -> User:
    """Create an account: passwd, shadow and group lines plus a home directory.

    The user gets a private primary group with ``gid == uid``, is added
    to each existing group named in *groups*, and owns ``/home/<name>``.

    Args:
        store: An installed store (``/etc/passwd`` etc. must exist).
        username: The new login name.
        uid: Explicit uid; the first free uid from 1000 when omitted.
        groups: Supplementary group names.
        shell: Login shell recorded in passwd.
        now: Timestamp for the changes.

    Returns:
        The new user, loaded back from the account files.

    Raises:
        ValueError: If the name or uid is taken, or a group does not exist.

    """
    database = UserDatabase(store)
    existing = database.users()
    if any(record.username == username for record in existing):
        msg = f"User already exists: {username}"
        raise ValueError(msg)

    taken = {record.uid for record in existing}
    if uid is None:
        uid = FIRST_USER_UID
        while uid in taken:
            uid += 1
    elif uid in taken:
        msg = f"UID already in use: {uid}"
        raise ValueError(msg)

    supplementary = list(groups)
    known_groups = {group.name: group for group in database.groups()}
    missing = [name for name in supplementary if name not in known_groups]
    if missing:
        msg = f"Unknown group(s): {', '.join(missing)}"
        raise ValueError(msg)

    stamp = now or utc_now()
    home = f"/home/{username}"
    passwd = PasswdRecord(
        username=username, password="x", uid=uid, gid=uid, gecos="", home=home, shell=shell
    )
    _append_line(store, PASSWD_PATH, format_passwd_line(passwd), stamp)
    days = int(stamp.timestamp() // _SECONDS_PER_DAY)
    _append_line(store, SHADOW_PATH, f"{username}:!:{days}:0:99999:7:::", stamp)

    if not any(group.gid == uid for group in known_groups.values()):
        private = GroupRecord(name=username, password="x", gid=uid, members=())
        _append_line(store, GROUP_PATH, format_group_line(private), stamp)

    if supplementary:
        _add_members(store, username, supplementary, stamp)

    if home not in store:
        store[home] = create_dir_entry(owner=username, group=username, now=stamp)

    user = database.load_user(username)
    if user is None:
        msg = f"Failed to create user: {username}"
        raise ValueError(msg)
    return user


def _add_members(store: FlatStore, username: str, names: list[str], stamp: datetime) -> None:
    entry = store[GROUP_PATH]
    records = [
        replace(record, members=(*record.members, username))
        if record.name in names and username not in record.members
        else record
        for record in parse_group(entry.content or "")
    ]
    entry.content = "".join(f"{format_group_line(record)}\n" for record in records)
    entry.size = len(entry.content)
    entry.modified = stamp


def create_session(
    store: FlatStore | None = None,
    *,
    username: str = "root",
    save_callback: SaveCallback | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> SessionContext:
    """Install the system (if needed) and log *username* in.

    The session starts in the user's home directory when it exists,
    else ``/``, with ``/etc/environment`` loaded into its variables.

    Raises:
        ValueError: If *username* has no passwd entry.

    """
    store = install_system(store, now=clock())
    if username == "root":
        user = UserDatabase(store).load_user("root") or root_user()
    else:
        loaded = UserDatabase(store).load_user(username)
        if loaded is None:
            msg = f"Unknown user: {username}"
            raise ValueError(msg)
        user = loaded

    env_entry = store.get(ENVIRONMENT_PATH)
    variables = Environment(parse_environment_file(env_entry.content or "") if env_entry else None)

    home = store.get(user.home)
    start = user.home if home is not None and home.is_dir else "/"
    logger = Logger()
    context = SessionContext(
        store=store,
        current_user=user,
        current_path=start,
        clock=clock,
        logger=logger,
        save_callback=save_callback,
        variables=variables,
    )
    logger.log(
        LogLevel.INFO, f"session started for {user.username}", source="session", uid=user.uid
    )
    return context
