"""Session context — everything one shell session carries around.

The filesystem layer never reaches for global state.  Who is asking,
where they are standing, what time it is and how to persist the result
all arrive through a ``SessionContext``:

- ``store`` — the flat path → entry mapping being operated on.
- ``current_user`` — the identity every permission check uses.
- ``current_path`` — the directory relative paths resolve against.
- ``clock`` — the source of timestamps (injectable for tests).
- ``logger`` — the session's audit log.
- ``save_callback`` — invoked by ``save()`` after mutating commands.
- ``variables`` — the session environment (``HOME``, ``PWD``, ...).

Switching user (``su``) means replacing ``current_user`` on the
context; services built on the context see the change immediately.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeAlias
from datetime import UTC, datetime

from py_vfs.env import Environment
from py_vfs.fs.store import FlatStore
from py_vfs.logging import Logger, LogLevel
from py_vfs.users import User, root_user

SaveCallback: TypeAlias = Callable[[FlatStore], None]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(tz=UTC)


@dataclass
class SessionContext:
    """Per-session state injected into the filesystem service and shell."""

    store: FlatStore = field(default_factory=FlatStore)
    current_user: User = field(default_factory=root_user)
    current_path: str = "/"
    clock: Callable[[], datetime] = utc_now
    logger: Logger = field(default_factory=Logger)
    save_callback: SaveCallback | None = None
    variables: Environment = field(default_factory=Environment)

    def __post_init__(self) -> None:
        """Seed the identity and location variables."""
        self._export_identity()
        self.variables.set("PWD", self.current_path)
        if "OLDPWD" not in self.variables:
            self.variables.set("OLDPWD", self.current_path)

    def get_current_path(self) -> str:
        """Return the working directory."""
        return self.current_path

    def set_current_path(self, path: str) -> None:
        """Change the working directory, remembering the old one."""
        self.variables.set("OLDPWD", self.current_path)
        self.current_path = path
        self.variables.set("PWD", path)

    def switch_user(self, user: User) -> None:
        """Make *user* the identity for every following operation."""
        previous = self.current_user
        self.current_user = user
        self._export_identity()
        self.logger.log(
            LogLevel.INFO,
            f"session user changed from {previous.username} to {user.username}",
            source="session",
            uid=previous.uid,
        )

    def save(self) -> None:
        """Hand the store to the save callback, if one is configured."""
        if self.save_callback is not None:
            self.save_callback(self.store)

    def _export_identity(self) -> None:
        user = self.current_user
        self.variables.update(
            {
                "USER": user.username,
                "LOGNAME": user.username,
                "HOME": user.home,
                "SHELL": user.shell,
            }
        )
