"""Tests for the per-session context."""

from datetime import UTC, datetime

from py_vfs.context import SessionContext
from py_vfs.fs.store import FlatStore
from py_vfs.users import User, root_user

ALICE = User(username="alice", uid=1000, gid=1000, groups=("alice",), home="/home/alice")


class TestSessionContext:
    """Verify defaults, navigation and user switching."""

    def test_defaults(self) -> None:
        """A bare context is root at '/' over an empty store."""
        context = SessionContext()
        assert context.current_user.is_root
        assert context.get_current_path() == "/"
        assert len(context.store) == 0

    def test_identity_variables(self) -> None:
        """USER, HOME and friends should follow the current user."""
        context = SessionContext(current_user=ALICE, current_path="/home/alice")
        variables = context.variables
        assert variables.get("USER") == "alice"
        assert variables.get("LOGNAME") == "alice"
        assert variables.get("HOME") == "/home/alice"
        assert variables.get("PWD") == "/home/alice"

    def test_set_current_path_tracks_oldpwd(self) -> None:
        """Changing directory should remember where we came from."""
        context = SessionContext()
        context.set_current_path("/tmp")
        assert context.get_current_path() == "/tmp"
        assert context.variables.get("PWD") == "/tmp"
        assert context.variables.get("OLDPWD") == "/"

    def test_switch_user(self) -> None:
        """Switching user should re-export identity and log the change."""
        context = SessionContext()
        context.switch_user(ALICE)
        assert context.current_user is ALICE
        assert context.variables.get("USER") == "alice"
        (entry,) = context.logger.filter(source="session")
        assert entry.message == "session user changed from root to alice"
        assert entry.uid == 0

    def test_switch_back_logs_previous_uid(self) -> None:
        """The log entry belongs to the user who ran su."""
        context = SessionContext(current_user=ALICE)
        context.switch_user(root_user())
        (entry,) = context.logger.filter(source="session")
        assert entry.uid == 1000

    def test_save_without_callback(self) -> None:
        """save() without a callback should do nothing."""
        SessionContext().save()

    def test_save_calls_callback_with_store(self) -> None:
        """save() should hand the store to the callback."""
        saved: list[FlatStore] = []
        context = SessionContext(save_callback=saved.append)
        context.save()
        assert saved == [context.store]

    def test_clock_is_injectable(self) -> None:
        """Contexts should use the clock they are given."""
        fixed = datetime(2020, 1, 1, tzinfo=UTC)
        context = SessionContext(clock=lambda: fixed)
        assert context.clock() == fixed
