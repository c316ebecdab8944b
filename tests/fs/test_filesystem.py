"""Tests for content and metadata access through the FileSystem facade."""

from datetime import UTC, datetime, timedelta

import pytest

from py_vfs.fs import errors
from py_vfs.fs.entry import DIRECTORY_SIZE, EntryType, create_dir_entry, create_file_entry
from py_vfs.fs.filesystem import FileSystem
from py_vfs.fs.service import FileSystemService
from py_vfs.install import add_user, create_session, install_system
from py_vfs.users import UserDatabase

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
LATER = NOW + timedelta(hours=2)


class _Clock:
    def __init__(self) -> None:
        self.now = NOW

    def __call__(self) -> datetime:
        return self.now


def _setup(username: str = "root") -> tuple[FileSystemService, _Clock]:
    """Return a service with alice's notes file and a controllable clock."""
    store = install_system(now=NOW)
    add_user(store, "alice", now=NOW)
    add_user(store, "bob", now=NOW)
    store["/home/alice/notes.txt"] = create_file_entry(
        "line one\n", owner="alice", group="alice", permissions="-rw-r-----", now=NOW
    )
    clock = _Clock()
    context = create_session(store, username=username, clock=clock)
    return FileSystemService(context), clock


def _files(username: str = "root") -> FileSystem:
    service, _ = _setup(username)
    return service.files


def _login(service: FileSystemService, username: str) -> None:
    user = UserDatabase(service.store).load_user(username)
    assert user is not None
    service.context.switch_user(user)


# -- Content ----------------------------------------------------------------


class TestContent:
    """Verify reading and writing file content."""

    def test_owner_reads(self) -> None:
        """Alice should read her own notes."""
        assert _files("alice").get_content("/home/alice/notes.txt") == "line one\n"

    def test_read_marks_accessed(self) -> None:
        """Reading should update the access time only."""
        service, clock = _setup()
        clock.now = LATER
        service.files.get_content("/home/alice/notes.txt")
        entry = service.store["/home/alice/notes.txt"]
        assert entry.accessed == LATER
        assert entry.modified == NOW

    def test_others_cannot_read(self) -> None:
        """Bob is 'others' on a -rw-r----- file."""
        with pytest.raises(errors.PermissionDeniedError):
            _files("bob").get_content("/home/alice/notes.txt")

    def test_directory_has_no_content(self) -> None:
        """Reading a directory should raise IsDirectoryError."""
        with pytest.raises(errors.IsDirectoryError):
            _files().get_content("/etc")

    def test_write_updates_size_and_times(self) -> None:
        """Writing should keep size in step with content."""
        service, clock = _setup("alice")
        clock.now = LATER
        service.files.set_content("/home/alice/notes.txt", "rewritten")
        entry = service.store["/home/alice/notes.txt"]
        assert entry.content == "rewritten"
        assert entry.size == len("rewritten")
        assert entry.modified == LATER
        assert entry.accessed == LATER

    def test_write_is_logged(self) -> None:
        """Content writes should appear in the session log."""
        service, _ = _setup()
        service.files.set_content("/etc/hostname", "box\n")
        messages = [e.message for e in service.context.logger.filter(source="fs")]
        assert "write /etc/hostname" in messages

    def test_write_needs_write_bit(self) -> None:
        """Alice may not write /etc/hostname."""
        with pytest.raises(errors.PermissionDeniedError):
            _files("alice").set_content("/etc/hostname", "mine")


# -- Metadata ---------------------------------------------------------------


class TestStat:
    """Verify metadata reads only need reachability."""

    def test_stat_ignores_own_bits(self) -> None:
        """Bob may stat alice's notes through her open home directory."""
        entry = _files("bob").stat("/home/alice/notes.txt")
        assert entry.owner == "alice"

    def test_stat_through_private_directory(self) -> None:
        """Bob may not stat anything inside /root."""
        service, _ = _setup()
        service.store["/root/.profile"] = create_file_entry("", now=NOW)
        _login(service, "bob")
        with pytest.raises(errors.PermissionDeniedError):
            service.files.stat("/root/.profile")

    def test_stat_missing(self) -> None:
        """stat on nothing should raise FileNotFoundError."""
        with pytest.raises(errors.FileNotFoundError):
            _files().stat("/nope")

    def test_type_and_size(self) -> None:
        """Type and size should come straight from the entry."""
        files = _files()
        assert files.get_type("/etc") is EntryType.DIRECTORY
        assert files.is_dir("/etc")
        assert files.is_file("/etc/passwd")
        assert files.get_size("/etc") == DIRECTORY_SIZE
        assert files.get_size("/home/alice/notes.txt") == len("line one\n")

    def test_dates(self) -> None:
        """Creation and access dates should be readable and refreshable."""
        service, clock = _setup()
        files = service.files
        assert files.get_creation_date("/etc/passwd") == NOW
        clock.now = LATER
        assert files.refresh_creation_date("/etc/passwd") == LATER
        assert files.refresh_access_date("/etc/passwd") == LATER
        assert files.get_access_date("/etc/passwd") == LATER

    def test_setting_creation_date_needs_write(self) -> None:
        """Alice may not backdate /etc/passwd."""
        with pytest.raises(errors.PermissionDeniedError):
            _files("alice").set_creation_date("/etc/passwd", NOW - timedelta(days=1))

    def test_setting_access_date_needs_read(self) -> None:
        """Reading is enough to touch the access date."""
        files = _files("alice")
        files.set_access_date("/etc/passwd", LATER)
        assert files.get_access_date("/etc/passwd") == LATER


# -- Modes ------------------------------------------------------------------


class TestSetPermissions:
    """Verify every accepted mode notation."""

    def test_mode_string(self) -> None:
        """A full mode string is stored as given."""
        files = _files()
        assert files.set_permissions("/etc/hostname", "-rw-------") == "-rw-------"
        assert files.get_permissions("/etc/hostname") == "-rw-------"

    def test_octal_int(self) -> None:
        """An int is treated as a numeric mode."""
        assert _files().set_permissions("/etc/hostname", 0o600) == "-rw-------"

    def test_octal_digits(self) -> None:
        """Digit strings keep the entry's type character."""
        assert _files().set_permissions("/tmp", "1777") == "drwxrwxrwt"

    def test_symbolic(self) -> None:
        """Symbolic modes apply to the current mode."""
        files = _files("alice")
        assert files.set_permissions("/home/alice/notes.txt", "g-r,o+r") == "-rw----r--"

    def test_invalid_mode(self) -> None:
        """Unparseable modes raise InvalidPermissionsError."""
        with pytest.raises(errors.InvalidPermissionsError):
            _files().set_permissions("/etc/hostname", "bogus!")

    def test_out_of_range_int(self) -> None:
        """Numeric modes above 7777 are invalid."""
        with pytest.raises(errors.InvalidPermissionsError):
            _files().set_permissions("/etc/hostname", 0o17777)

    def test_non_owner_is_denied(self) -> None:
        """Bob may not chmod alice's file, and the denial is logged."""
        service, _ = _setup("bob")
        with pytest.raises(errors.PermissionDeniedError):
            service.files.set_permissions("/home/alice/notes.txt", "777")
        warnings = [e.message for e in service.context.logger.filter(source="fs")]
        assert any(m.startswith("denied chmod") for m in warnings)
        assert service.store["/home/alice/notes.txt"].permissions == "-rw-r-----"


class TestRetype:
    """Verify switching an entry between file and directory."""

    def test_file_to_dir(self) -> None:
        """A file becomes an empty directory."""
        service, _ = _setup()
        service.store["/tmp/x"] = create_file_entry("gone", now=NOW)
        service.files.set_type_dir("/tmp/x")
        entry = service.store["/tmp/x"]
        assert entry.is_dir
        assert entry.content is None
        assert entry.permissions.startswith("d")

    def test_empty_dir_to_file(self) -> None:
        """An empty directory becomes an empty file."""
        service, _ = _setup()
        service.store["/tmp/d"] = create_dir_entry(now=NOW)
        service.files.set_type_file("/tmp/d")
        entry = service.store["/tmp/d"]
        assert entry.is_file
        assert entry.content == ""
        assert entry.size == 0

    def test_non_empty_dir_to_file(self) -> None:
        """A directory with children cannot become a file."""
        with pytest.raises(errors.FileSystemError, match="Directory not empty"):
            _files().set_type_file("/etc")
