"""Interactive REPL (Read-Eval-Print Loop) for the virtual filesystem shell.

The REPL installs the system, logs a user in, creates a shell and
enters the classic loop:

    1. **Read** — display a prompt and read user input.
    2. **Eval** — pass the command to ``shell.execute()``.
    3. **Print** — display the result.
    4. **Loop** — repeat until the shell returns the exit sentinel.

The shell is fully testable (returns strings, no I/O); the REPL is the
thin I/O wrapper that connects it to ``stdin``/``stdout``.

Configuration comes from two environment variables of the *host*:

- ``PY_VFS_STATE`` — a JSON file to load the store from and save it to.
- ``PY_VFS_USER`` — the user to log in as (default ``root``).
"""

import os
import readline
from pathlib import Path

from py_vfs.context import SessionContext
from py_vfs.fs.persistence import json_saver, load_filesystem
from py_vfs.fs.store import FlatStore
from py_vfs.install import DEFAULT_HOSTNAME, create_session
from py_vfs.shell import Shell

_BANNER_WIDTH = 38
STATE_ENV_VAR = "PY_VFS_STATE"
USER_ENV_VAR = "PY_VFS_USER"


def format_banner() -> str:
    """Return the greeting printed when the REPL starts."""
    border = "=" * _BANNER_WIDTH
    return (
        f"\n  {border}\n            py-vfs v0.1.0\n    A simulated Unix filesystem\n  {border}\n\n"
        "Type 'help' for commands, 'exit' to quit.\n"
    )


def build_prompt(context: SessionContext) -> str:
    """Build the shell prompt string.

    Returns:
        A prompt like ``alice@vfs:/home/alice$ `` (``#`` for root).

    """
    user = context.current_user
    marker = "#" if user.is_root else "$"
    return f"{user.username}@{DEFAULT_HOSTNAME}:{context.get_current_path()}{marker} "


def load_state(path: Path | None) -> FlatStore | None:
    """Load a saved store, or return None when there is nothing to load."""
    if path is None or not path.exists():
        return None
    return load_filesystem(path)


def run() -> None:
    """Start a session and run the interactive REPL.

    This is the ``py-vfs`` console entry point.  It handles:
    - Loading and saving state when ``PY_VFS_STATE`` is set.
    - The read-eval-print loop.
    - Graceful handling of Ctrl+C and Ctrl+D.
    """
    state_value = os.environ.get(STATE_ENV_VAR)
    state_path = Path(state_value) if state_value else None
    context = create_session(
        load_state(state_path),
        username=os.environ.get(USER_ENV_VAR, "root"),
        save_callback=json_saver(state_path) if state_path else None,
    )
    shell = Shell(context)

    readline.parse_and_bind("tab: complete")

    print(format_banner())  # noqa: T201

    try:
        while True:
            try:
                command = input(build_prompt(context))
            except EOFError:
                # Ctrl+D: graceful exit
                print()  # noqa: T201
                break

            result = shell.execute(command)
            if result == Shell.EXIT_SENTINEL:
                break
            if result:
                print(result)  # noqa: T201

    except KeyboardInterrupt:
        # Ctrl+C: graceful exit
        print("\nInterrupted.")  # noqa: T201

    finally:
        context.save()
        print("logout")  # noqa: T201
