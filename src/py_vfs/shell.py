"""The shell — command interpreter over the virtual filesystem.

The shell reads a command string, splits it into a command name and
arguments, dispatches to a handler, and returns a string result.

Every handler reaches the filesystem through ``FileSystemService``, so
every command gets the same permission checks.  The store is touched
directly in two places only, both after the service has allowed the
operation: ``cp -p`` stamps the source metadata onto entries the copy
just created, and ``ls -a`` reads ``.`` and ``..`` for a directory it
has already listed.  ``useradd`` edits the account files through
``install.add_user``, as the real command edits /etc/passwd.

Handlers turn ``FileSystemError`` into an ``Error: <command>: <message>``
line instead of raising.

Design choices:
    - **Returns strings, not prints.**  The caller (REPL or web app)
      decides how to display output.
    - **Command dispatch via a dict.**  Adding a command means writing
      a method and adding one dict entry.
    - **Save after mutations.**  Commands that change the store call
      ``context.save()`` so a persistent session never loses a change.

Supported syntax: ``$VAR`` expansion, quoting (``shlex``), ``*``/``?``
globs in the final path segment, ``|`` pipes and ``>``/``>>`` output
redirection.
"""

import re
import shlex
from collections.abc import Callable
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import TypeAlias

from py_vfs.context import SessionContext
from py_vfs.fs import errors
from py_vfs.fs.entry import Entry, create_dir_entry, create_file_entry
from py_vfs.fs.paths import ancestors, get_basename, get_dirname, is_sub_path, join_path
from py_vfs.fs.permissions import Operation, permission_string_to_octal
from py_vfs.fs.service import FileSystemService
from py_vfs.install import add_user
from py_vfs.logging import LogLevel
from py_vfs.users import User, UserDatabase, root_user

# Type alias for a command handler: takes a list of args, returns output.
_Handler: TypeAlias = Callable[[list[str]], str]

_GLOB_CHARS = re.compile(r"[*?]")
_VARIABLE = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)")
_BLOCK_SIZE = 1024

# Commands whose success or partial success changes the store.
_MUTATING_COMMANDS = frozenset({"touch", "mkdir", "rm", "cp", "mv", "chmod", "chown", "useradd"})


@dataclass
class _Redirections:
    """Parsed output redirection from a command string."""

    stdout: str | None = None  # > file or >> file
    append: bool = False  # >> vs >


def _split_flags(args: list[str], allowed: str) -> tuple[set[str], list[str]]:
    """Separate single-letter flags (``-la``) from operands.

    ``--`` ends flag parsing; a lone ``-`` is an operand.

    Raises:
        ValueError: On a flag letter not in *allowed*.

    """
    flags: set[str] = set()
    operands: list[str] = []
    parsing = True
    for arg in args:
        if parsing and arg == "--":
            parsing = False
        elif parsing and arg.startswith("-") and len(arg) > 1:
            for letter in arg[1:]:
                if letter not in allowed:
                    msg = f"invalid option -- '{letter}'"
                    raise ValueError(msg)
                flags.add(letter)
        else:
            operands.append(arg)
    return flags, operands


def _format_long(name: str, entry: Entry) -> str:
    """Render one ``ls -l`` line."""
    return (
        f"{entry.permissions} {entry.links:>2} {entry.owner!s:<8} {entry.group!s:<8} "
        f"{entry.size:>6} {entry.modified:%b %d %H:%M} {name}"
    )


class Shell:
    """Command interpreter bound to one session.

    The session context supplies the store, the current user and the
    working directory; ``su`` and ``cd`` change them in place.
    """

    EXIT_SENTINEL = "__EXIT__"

    def __init__(self, context: SessionContext) -> None:
        """Create a shell for *context*.

        Args:
            context: The session whose store and identity commands use.

        """
        self._context = context
        self._fs = FileSystemService(context)
        self._pipe_input: str = ""

        # Command dispatch table: command name to handler method.
        self._commands: dict[str, _Handler] = {
            "help": self._cmd_help,
            "pwd": self._cmd_pwd,
            "cd": self._cmd_cd,
            "ls": self._cmd_ls,
            "cat": self._cmd_cat,
            "echo": self._cmd_echo,
            "touch": self._cmd_touch,
            "mkdir": self._cmd_mkdir,
            "rm": self._cmd_rm,
            "cp": self._cmd_cp,
            "mv": self._cmd_mv,
            "chmod": self._cmd_chmod,
            "chown": self._cmd_chown,
            "grep": self._cmd_grep,
            "stat": self._cmd_stat,
            "whoami": self._cmd_whoami,
            "id": self._cmd_id,
            "su": self._cmd_su,
            "useradd": self._cmd_useradd,
            "groups": self._cmd_groups,
            "env": self._cmd_env,
            "export": self._cmd_export,
            "unset": self._cmd_unset,
            "log": self._cmd_log,
            "exit": self._cmd_exit,
        }

    @property
    def context(self) -> SessionContext:
        """Return the session this shell runs in."""
        return self._context

    @property
    def service(self) -> FileSystemService:
        """Return the filesystem gateway commands go through."""
        return self._fs

    @property
    def _user(self) -> User:
        return self._context.current_user

    @property
    def _users(self) -> UserDatabase:
        return UserDatabase(self._context.store)

    def execute(self, command: str) -> str:
        """Parse and execute a command line, with pipe support.

        Commands can be chained with ``|``; the output of each stage
        becomes the piped input of the next.

        Args:
            command: The raw command string (e.g. ``"cat notes | grep todo"``).

        Returns:
            The command output, an ``Error:`` line, or ``EXIT_SENTINEL``.

        """
        stripped = command.strip()
        if not stripped:
            return ""

        stages = [s.strip() for s in stripped.split("|")]
        output = ""
        for i, stage in enumerate(stages):
            self._pipe_input = output if i > 0 else ""
            cmd, redirects = self._parse_redirections(self._expand_variables(stage))
            output = self._execute_single(cmd)
            if output == self.EXIT_SENTINEL:
                break

            output = self._apply_output_redirect(output, redirects)

            # Stop the pipeline if a command produces an error
            if output.startswith(("Unknown command:", "Error:")):
                break
        self._pipe_input = ""
        return output

    # -- Parsing ---------------------------------------------------------

    def _expand_variables(self, command: str) -> str:
        """Replace ``$VAR`` with its value; undefined variables expand to ``""``."""

        def _replace(match: re.Match[str]) -> str:
            value = self._context.variables.get(match.group(1))
            return value if value is not None else ""

        return _VARIABLE.sub(_replace, command)

    @staticmethod
    def _parse_redirections(command: str) -> tuple[str, _Redirections]:
        """Extract ``>>`` or ``>`` (checked in that order) from a command."""
        redirects = _Redirections()
        remaining = command

        if match := re.search(r">>\s*(\S+)", remaining):
            redirects.stdout = match.group(1)
            redirects.append = True
            remaining = remaining[: match.start()] + remaining[match.end() :]
        elif match := re.search(r">\s*(\S+)", remaining):
            redirects.stdout = match.group(1)
            remaining = remaining[: match.start()] + remaining[match.end() :]

        return remaining.strip(), redirects

    def _expand_globs(self, args: list[str]) -> list[str]:
        """Expand ``*`` and ``?`` patterns; unmatched patterns stay literal."""
        expanded: list[str] = []
        for arg in args:
            if _GLOB_CHARS.search(arg) is None:
                expanded.append(arg)
                continue
            expanded.extend(self._glob(arg) or [arg])
        return expanded

    def _glob(self, pattern: str) -> list[str]:
        head, sep, tail = pattern.rpartition("/")
        if _GLOB_CHARS.search(head):
            return []
        directory = (head or "/") if sep else "."
        try:
            listing = self._fs.list_directory(directory)
        except errors.FileSystemError:
            return []
        prefix = f"{head}/" if sep else ""
        return [
            prefix + item.name
            for item in listing
            if fnmatchcase(item.name, tail)
            and (tail.startswith(".") or not item.name.startswith("."))
        ]

    def _execute_single(self, command: str) -> str:
        """Execute a single (non-piped) command."""
        try:
            parts = shlex.split(command)
        except ValueError as e:
            return f"Error: {e}"
        if not parts:
            return ""

        name = parts[0]
        handler = self._commands.get(name)
        if handler is None:
            return f"Unknown command: {name}"

        try:
            return handler(self._expand_globs(parts[1:]))
        finally:
            if name in _MUTATING_COMMANDS:
                self._context.save()

    # -- Redirection -----------------------------------------------------

    def _apply_output_redirect(self, output: str, redirects: _Redirections) -> str:
        """Write successful output to the redirect target, if any."""
        is_error = output.startswith(("Error:", "Unknown command:"))
        if is_error or redirects.stdout is None:
            return output
        return self._write_redirect(redirects.stdout, output, append=redirects.append)

    def _write_redirect(self, path: str, content: str, *, append: bool) -> str:
        """Write *content* (plus a newline) to *path*, creating it if needed."""
        text = content if not content or content.endswith("\n") else content + "\n"
        try:
            if self._fs.exists(path):
                existing = self._fs.files.get_content(path) if append else ""
                self._fs.files.set_content(path, existing + text)
            else:
                self._fs.create(path, self._new_file(text))
        except errors.FileSystemError as e:
            return f"Error: {e}"
        self._context.save()
        return ""  # Output was redirected; return empty

    # -- Entry factories -------------------------------------------------

    def _new_file(self, content: str = "") -> Entry:
        user = self._user
        return create_file_entry(
            content, owner=user.username, group=user.primary_group, now=self._fs.now()
        )

    def _new_dir(self) -> Entry:
        user = self._user
        return create_dir_entry(owner=user.username, group=user.primary_group, now=self._fs.now())

    # -- Navigation ------------------------------------------------------

    def _cmd_help(self, _args: list[str]) -> str:
        """List available commands."""
        return "Available commands: " + ", ".join(sorted(self._commands))

    def _cmd_pwd(self, _args: list[str]) -> str:
        """Print the working directory."""
        return self._context.get_current_path()

    def _cmd_cd(self, args: list[str]) -> str:
        """Change the working directory (``cd -`` returns to the previous one)."""
        variables = self._context.variables
        target = args[0] if args else variables.get("HOME") or "/"
        if target == "-":
            target = variables.get("OLDPWD") or self._context.get_current_path()

        path = self._fs.normalize_path(target)
        try:
            if self._fs.exists(path) and not self._fs.is_directory(path):
                raise errors.NotDirectoryError(target)
            self._fs.get_file(path, Operation.TRAVERSE)
        except errors.FileSystemError as e:
            return f"Error: cd: {e}"
        self._context.set_current_path(path)
        return ""

    def _cmd_ls(self, args: list[str]) -> str:
        """List directory contents (``-l`` long format, ``-a`` dotfiles)."""
        try:
            flags, operands = _split_flags(args, "la")
        except ValueError as e:
            return f"Error: ls: {e}"

        targets = operands or ["."]
        long_format = "l" in flags
        files: list[str] = []
        sections: list[str] = []
        for target in targets:
            try:
                if not self._fs.is_directory(target):
                    entry = self._fs.files.stat(target)
                    files.append(_format_long(target, entry) if long_format else target)
                    continue
                body = self._list_directory(target, long_format=long_format, show_all="a" in flags)
            except errors.FileSystemError as e:
                return f"Error: ls: {e}"
            sections.append(f"{target}:\n{body}" if len(targets) > 1 else body)
        if files:
            sections.insert(0, "\n".join(files))
        return "\n\n".join(sections)

    def _list_directory(self, target: str, *, long_format: bool, show_all: bool) -> str:
        listing = self._fs.list_directory(target)
        items = [
            (item.name, item.entry)
            for item in listing
            if show_all or not item.name.startswith(".")
        ]
        if show_all:
            path = self._fs.normalize_path(target)
            store = self._fs.store
            specials = [(".", store.get(path)), ("..", store.get(get_dirname(path)))]
            items = [(name, entry) for name, entry in specials if entry is not None] + items

        if not long_format:
            return "\n".join(name for name, _ in items)
        blocks = sum(-(-entry.size // _BLOCK_SIZE) for _, entry in items)
        lines = [f"total {blocks}"]
        lines.extend(_format_long(name, entry) for name, entry in items)
        return "\n".join(lines)

    # -- Files -----------------------------------------------------------

    def _cmd_cat(self, args: list[str]) -> str:
        """Print file contents (or piped input when no file is given)."""
        if not args:
            if self._pipe_input:
                return self._pipe_input
            return "Usage: cat <path...>"
        chunks: list[str] = []
        for path in args:
            try:
                chunks.append(self._fs.files.get_content(path))
            except errors.FileSystemError as e:
                return f"Error: cat: {e}"
        return "".join(chunks).removesuffix("\n")

    def _cmd_echo(self, args: list[str]) -> str:
        """Print the arguments."""
        return " ".join(args)

    def _cmd_touch(self, args: list[str]) -> str:
        """Create empty files, or refresh the timestamps of existing ones."""
        if not args:
            return "Usage: touch <path...>"
        for path in args:
            try:
                if self._fs.exists(path):
                    entry = self._fs.get_file(path, Operation.WRITE)
                    stamp = self._fs.now()
                    entry.modified = stamp
                    entry.accessed = stamp
                else:
                    self._fs.create(path, self._new_file())
            except errors.FileSystemError as e:
                return f"Error: touch: {e}"
        return ""

    def _cmd_mkdir(self, args: list[str]) -> str:
        """Create directories (``-p`` creates parents and tolerates existing ones)."""
        try:
            flags, operands = _split_flags(args, "p")
        except ValueError as e:
            return f"Error: mkdir: {e}"
        if not operands:
            return "Usage: mkdir [-p] <path...>"

        for target in operands:
            try:
                if "p" in flags:
                    self._make_parents(target)
                else:
                    self._fs.create(target, self._new_dir())
            except errors.FileSystemError as e:
                return f"Error: mkdir: {e}"
        return ""

    def _make_parents(self, target: str) -> None:
        path = self._fs.normalize_path(target)
        for directory in [*ancestors(path), path]:
            if not self._fs.exists(directory):
                self._fs.create(directory, self._new_dir())
            elif not self._fs.is_directory(directory):
                raise errors.NotDirectoryError(directory)

    def _cmd_rm(self, args: list[str]) -> str:
        """Remove files; directories and their contents need ``-r``."""
        try:
            flags, operands = _split_flags(args, "rRf")
        except ValueError as e:
            return f"Error: rm: {e}"
        if not operands:
            return "Usage: rm [-r] [-f] <path...>"
        recursive = bool(flags & {"r", "R"})
        force = "f" in flags

        for target in operands:
            if not self._fs.exists(target):
                if force:
                    continue
                return f"Error: rm: cannot remove '{target}': No such file or directory"
            if self._fs.is_directory(target) and not recursive:
                return f"Error: rm: cannot remove '{target}': Is a directory"
            try:
                self._fs.set_file(target, None)
            except errors.FileSystemError as e:
                return f"Error: rm: {e}"
        return ""

    def _cmd_cp(self, args: list[str]) -> str:
        """Copy files (``-r`` for directories, ``-p`` to keep mode and times)."""
        try:
            flags, operands = _split_flags(args, "rRp")
        except ValueError as e:
            return f"Error: cp: {e}"
        if len(operands) < 2:  # noqa: PLR2004
            return "Usage: cp [-r] [-p] <source...> <dest>"

        *sources, dest = operands
        dest_is_dir = self._fs.is_directory(dest)
        if len(sources) > 1 and not dest_is_dir:
            return f"Error: cp: target '{dest}' is not a directory"

        for source in sources:
            target = self._into(dest, source) if dest_is_dir else dest
            try:
                self._copy(
                    source, target, recursive=bool(flags & {"r", "R"}), preserve="p" in flags
                )
            except errors.FileSystemError as e:
                return f"Error: cp: {e}"
        return ""

    def _into(self, directory: str, source: str) -> str:
        """Return the path *source* gets when copied or moved into *directory*."""
        return join_path(
            self._fs.normalize_path(directory), get_basename(self._fs.normalize_path(source))
        )

    def _copy(self, source: str, target: str, *, recursive: bool, preserve: bool) -> None:
        src = self._fs.normalize_path(source)
        dst = self._fs.normalize_path(target)
        entry = self._fs.get_file(src, Operation.READ)

        if entry.is_file:
            if dst == src:
                msg = f"'{source}' and '{target}' are the same file"
                raise errors.FileSystemError(msg, target, "copy")
            original = self._copy_entry(src, dst)
            if preserve:
                self._preserve(original, dst)
            return

        if not recursive:
            msg = f"-r not specified; omitting directory '{source}'"
            raise errors.FileSystemError(msg, source, "copy")
        if dst == src or is_sub_path(dst, src):
            msg = f"cannot copy a directory, '{source}', into itself, '{target}'"
            raise errors.FileSystemError(msg, target, "copy")

        with self._fs.store.transaction():
            copied: list[tuple[Entry, str]] = []
            for path in self._fs.collect_subtree(src):
                copy_path = dst + path[len(src) :]
                copied.append((self._copy_entry(path, copy_path), copy_path))
            # Deepest first, so a read-only directory is sealed after its children.
            if preserve:
                for original, path in reversed(copied):
                    self._preserve(original, path)

    def _copy_entry(self, src: str, dst: str) -> Entry:
        """Copy exactly one entry (no recursion) and return the source as it was."""
        original = self._fs.get_file(src, Operation.READ).copy()
        if original.is_dir:
            self._fs.get_file(src, Operation.LIST)
            if not self._fs.is_directory(dst):
                self._fs.create(dst, self._new_dir())
        else:
            content = self._fs.files.get_content(src)
            if self._fs.exists(dst):
                self._fs.files.set_content(dst, content)
            else:
                self._fs.create(dst, self._new_file(content))
        return original

    def _preserve(self, original: Entry, dst: str) -> None:
        """Stamp ``cp -p`` metadata onto an entry this command just wrote."""
        copied = self._fs.store[dst]
        copied.permissions = copied.permissions[0] + original.permissions[1:]
        copied.created = original.created
        copied.modified = original.modified
        copied.accessed = original.accessed
        if self._user.is_root:
            copied.owner = original.owner
            copied.group = original.group

    def _cmd_mv(self, args: list[str]) -> str:
        """Move or rename files and directories."""
        try:
            _flags, operands = _split_flags(args, "f")
        except ValueError as e:
            return f"Error: mv: {e}"
        if len(operands) < 2:  # noqa: PLR2004
            return "Usage: mv <source...> <dest>"

        *sources, dest = operands
        dest_is_dir = self._fs.is_directory(dest)
        if len(sources) > 1 and not dest_is_dir:
            return f"Error: mv: target '{dest}' is not a directory"

        for source in sources:
            target = self._into(dest, source) if dest_is_dir else dest
            try:
                self._fs.rename(source, target)
            except errors.FileSystemError as e:
                return f"Error: mv: {e}"
        return ""

    # -- Ownership and modes ---------------------------------------------

    def _cmd_chmod(self, args: list[str]) -> str:
        """Change modes: ``755``, ``-rwxr-xr-x`` or ``u+x,go-w`` (``-R`` recurses)."""
        recursive = bool(args) and args[0] == "-R"
        operands = args[1:] if recursive else args
        if len(operands) < 2:  # noqa: PLR2004
            return "Usage: chmod [-R] <mode> <path...>"

        mode, *targets = operands
        try:
            for target in targets:
                paths = self._fs.collect_subtree(target) if recursive else [target]
                if not paths:
                    raise errors.FileNotFoundError(target, "chmod")
                with self._fs.store.transaction():
                    for path in paths:
                        self._fs.files.set_permissions(path, mode)
        except errors.FileSystemError as e:
            return f"Error: chmod: {e}"
        return ""

    def _cmd_chown(self, args: list[str]) -> str:
        """Change owner and/or group: ``owner``, ``owner:group``, ``:group``."""
        try:
            flags, operands = _split_flags(args, "R")
        except ValueError as e:
            return f"Error: chown: {e}"
        if len(operands) < 2:  # noqa: PLR2004
            return "Usage: chown [-R] <owner[:group]> <path...>"

        spec, *targets = operands
        owner_text, sep, group_text = spec.partition(":")
        owner: str | None = None
        group: str | None = None

        if owner_text:
            record = self._users.find_user(owner_text)
            if record is None:
                return f"Error: chown: invalid user: '{owner_text}'"
            owner = record.username
            if sep and not group_text:
                primary = self._users.find_group(record.gid)
                group = primary.name if primary is not None else None
        if group_text:
            group_record = self._users.find_group(group_text)
            if group_record is None:
                return f"Error: chown: invalid group: '{group_text}'"
            group = group_record.name
        if owner is None and group is None:
            return "Usage: chown [-R] <owner[:group]> <path...>"

        for target in targets:
            try:
                self._fs.change_owner(target, owner, group, recursive="R" in flags)
            except errors.FileSystemError as e:
                return f"Error: chown: {e}"
        return ""

    # -- Inspection ------------------------------------------------------

    def _cmd_grep(self, args: list[str]) -> str:
        """Print lines matching a regex in files or piped input (``-i``, ``-n``)."""
        try:
            flags, operands = _split_flags(args, "in")
        except ValueError as e:
            return f"Error: grep: {e}"
        if not operands:
            return "Usage: grep [-i] [-n] <pattern> [path...]"

        pattern, *paths = operands
        try:
            regex = re.compile(pattern, re.IGNORECASE if "i" in flags else 0)
        except re.error as e:
            return f"Error: grep: invalid pattern: {e}"

        sources: list[tuple[str, str]] = []
        if paths:
            for path in paths:
                try:
                    sources.append((path, self._fs.files.get_content(path)))
                except errors.FileSystemError as e:
                    return f"Error: grep: {e}"
        else:
            sources.append(("", self._pipe_input))

        matched: list[str] = []
        for name, text in sources:
            for number, line in enumerate(text.splitlines(), start=1):
                if regex.search(line) is None:
                    continue
                prefix = f"{name}:" if len(sources) > 1 else ""
                if "n" in flags:
                    prefix += f"{number}:"
                matched.append(prefix + line)
        return "\n".join(matched)

    def _cmd_stat(self, args: list[str]) -> str:
        """Show an entry's metadata."""
        if not args:
            return "Usage: stat <path>"
        blocks: list[str] = []
        for target in args:
            try:
                entry = self._fs.files.stat(target)
            except errors.FileSystemError as e:
                return f"Error: stat: {e}"
            kind = "directory" if entry.is_dir else "regular file"
            mode = permission_string_to_octal(entry.permissions)
            blocks.append(
                "\n".join(
                    [
                        f"  File: {self._fs.normalize_path(target)}",
                        f"  Size: {entry.size:<10} Links: {entry.links:<5} {kind}",
                        f"Access: ({mode:04o}/{entry.permissions})  "
                        f"Owner: {entry.owner}  Group: {entry.group}",
                        f"Access: {entry.accessed:%Y-%m-%d %H:%M:%S}",
                        f"Modify: {entry.modified:%Y-%m-%d %H:%M:%S}",
                        f" Birth: {entry.created:%Y-%m-%d %H:%M:%S}",
                    ]
                )
            )
        return "\n".join(blocks)

    # -- Identity --------------------------------------------------------

    def _cmd_whoami(self, _args: list[str]) -> str:
        """Show the current user name."""
        return self._user.username

    def _cmd_id(self, args: list[str]) -> str:
        """Show uid, gid and groups for the current (or a named) user."""
        if args:
            user = self._users.load_user(args[0])
            if user is None:
                return f"Error: id: '{args[0]}': no such user"
        else:
            user = self._user

        users = self._users
        primary = users.find_group(user.gid)
        primary_name = primary.name if primary is not None else str(user.gid)
        group_parts: list[str] = []
        for name in user.groups:
            record = users.find_group(name)
            group_parts.append(f"{record.gid}({name})" if record is not None else name)
        return (
            f"uid={user.uid}({user.username}) gid={user.gid}({primary_name}) "
            f"groups={','.join(group_parts)}"
        )

    def _cmd_su(self, args: list[str]) -> str:
        """Switch the session to another user (root when no name is given)."""
        target = args[0] if args else "root"
        user = self._users.load_user(target)
        if user is None and target == "root":
            user = root_user()
        if user is None:
            return f"Error: su: user {target} does not exist"
        self._context.switch_user(user)
        return ""

    def _cmd_useradd(self, args: list[str]) -> str:
        """Create an account with a home directory (root only, ``-G`` adds groups)."""
        operands = list(args)
        groups: list[str] = []
        if len(operands) > 1 and operands[0] == "-G":
            groups = [name for name in operands[1].split(",") if name]
            operands = operands[2:]
        if len(operands) != 1:
            return "Usage: useradd [-G group,...] <username>"
        if not self._user.is_root:
            return "Error: useradd: Permission denied"

        try:
            user = add_user(self._fs.store, operands[0], groups=groups, now=self._fs.now())
        except ValueError as e:
            return f"Error: useradd: {e}"
        self._fs.log(LogLevel.INFO, f"useradd {user.username} (uid={user.uid})")
        return f"User '{user.username}' created (uid={user.uid})"

    def _cmd_groups(self, args: list[str]) -> str:
        """Show the groups of the current (or a named) user."""
        username = args[0] if args else self._user.username
        users = self._users
        if users.find_user(username) is None:
            return f"Error: groups: '{username}': no such user"
        return " ".join(users.groups_for(username))

    # -- Session ---------------------------------------------------------

    def _cmd_env(self, _args: list[str]) -> str:
        """List all environment variables."""
        items = self._context.variables.items()
        return "\n".join(f"{k}={v}" for k, v in items) if items else "No variables set."

    def _cmd_export(self, args: list[str]) -> str:
        """Set an environment variable (KEY=VALUE)."""
        if not args or "=" not in args[0]:
            return "Usage: export KEY=VALUE"
        key, value = args[0].split("=", 1)
        self._context.variables.set(key, value)
        return ""

    def _cmd_unset(self, args: list[str]) -> str:
        """Remove an environment variable."""
        if not args:
            return "Usage: unset KEY"
        try:
            self._context.variables.delete(args[0])
        except KeyError:
            return f"Error: unset: {args[0]} is not set"
        return ""

    def _cmd_log(self, args: list[str]) -> str:
        """Show the session log (optionally only the last N entries)."""
        logger = self._context.logger
        if args:
            try:
                entries = logger.tail(int(args[0]))
            except ValueError:
                return f"Error: log: invalid count '{args[0]}'"
        else:
            entries = logger.entries
        return "\n".join(str(e) for e in entries) if entries else "No log entries."

    def _cmd_exit(self, _args: list[str]) -> str:
        """Signal the front-end to end the session."""
        return self.EXIT_SENTINEL
