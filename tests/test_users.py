"""Tests for users, groups and the account files.

Users are identities the permission engine checks against.  They are
stored the Unix way, in /etc/passwd and /etc/group inside the virtual
filesystem itself.
"""

import pytest

from py_vfs.fs.entry import create_file_entry
from py_vfs.install import add_user, install_system
from py_vfs.users import (
    GROUP_PATH,
    PASSWD_PATH,
    GroupRecord,
    User,
    UserDatabase,
    format_group_line,
    format_passwd_line,
    parse_group,
    parse_passwd,
    root_user,
)


class TestUser:
    """Verify the User identity."""

    def test_root(self) -> None:
        """uid 0 is the superuser."""
        root = root_user()
        assert root.is_root
        assert root.home == "/root"
        assert root.primary_group == "root"

    def test_regular_user(self) -> None:
        """Any other uid is unprivileged."""
        alice = User(username="alice", uid=1000, gid=1000, groups=("alice",))
        assert not alice.is_root

    def test_primary_group_falls_back_to_username(self) -> None:
        """A user without groups uses their name as group."""
        assert User(username="bob", uid=1001, gid=1001).primary_group == "bob"

    def test_repr(self) -> None:
        """repr should show uid and name."""
        assert repr(root_user()) == "User(uid=0, username='root')"

    def test_frozen(self) -> None:
        """Users should be immutable."""
        with pytest.raises(AttributeError):
            root_user().uid = 5  # type: ignore[misc]


class TestAccountFiles:
    """Verify passwd and group parsing."""

    def test_parse_passwd(self) -> None:
        """Each line should become one record."""
        text = "root:x:0:0:root:/root:/bin/bash\n\nalice:x:1000:1000::/home/alice:\n"
        records = parse_passwd(text)
        assert [r.username for r in records] == ["root", "alice"]
        assert records[1].uid == 1000
        assert records[1].shell == ""

    def test_passwd_round_trip(self) -> None:
        """Formatting a parsed line should give the line back."""
        line = "daemon:x:1:1:daemon:/usr/sbin:/usr/sbin/nologin"
        assert format_passwd_line(parse_passwd(line)[0]) == line

    def test_parse_group_members(self) -> None:
        """Members should be split on commas."""
        (record,) = parse_group("users:x:100:alice,bob")
        assert record == GroupRecord(name="users", password="x", gid=100, members=("alice", "bob"))

    def test_group_without_members(self) -> None:
        """An empty member list should format with a trailing colon."""
        (record,) = parse_group("root:x:0:")
        assert record.members == ()
        assert format_group_line(record) == "root:x:0:"


class TestUserDatabase:
    """Verify lookups over an installed store."""

    def test_default_accounts(self) -> None:
        """A fresh install should know root, daemon and nobody."""
        database = UserDatabase(install_system())
        assert [r.username for r in database.users()] == ["root", "daemon", "nobody"]

    def test_find_by_name_or_uid(self) -> None:
        """Users can be found by name or by numeric string."""
        database = UserDatabase(install_system())
        by_name = database.find_user("nobody")
        by_uid = database.find_user("65534")
        assert by_name is not None
        assert by_name == by_uid

    def test_find_group(self) -> None:
        """Groups can be found by name or gid."""
        database = UserDatabase(install_system())
        sudo = database.find_group("sudo")
        assert sudo is not None
        assert sudo.gid == 27
        assert database.find_group(100) == database.find_group("users")
        assert database.find_group("wheel") is None

    def test_load_user_with_memberships(self) -> None:
        """load_user should resolve primary and supplementary groups."""
        store = install_system()
        add_user(store, "alice", groups=("sudo", "users"))
        alice = UserDatabase(store).load_user("alice")
        assert alice is not None
        assert alice.uid == 1000
        assert alice.groups == ("alice", "sudo", "users")
        assert alice.home == "/home/alice"

    def test_unknown_user(self) -> None:
        """Unknown users load as None."""
        assert UserDatabase(install_system()).load_user("mallory") is None

    def test_files_are_reread(self) -> None:
        """Edits to /etc/passwd should be visible immediately."""
        store = install_system()
        database = UserDatabase(store)
        passwd = store[PASSWD_PATH].content or ""
        store[PASSWD_PATH] = create_file_entry(passwd + "eve:x:2000:100::/:/bin/sh\n")
        eve = database.load_user("eve")
        assert eve is not None
        assert eve.groups == ("users",)

    def test_missing_files(self) -> None:
        """A store without account files has no users."""
        store = install_system()
        del store[PASSWD_PATH]
        del store[GROUP_PATH]
        database = UserDatabase(store)
        assert database.users() == []
        assert database.groups_for("root") == []
