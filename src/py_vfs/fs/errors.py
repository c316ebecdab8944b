"""Filesystem exceptions — typed failure signals for every command.

Each error carries the ``path`` it concerns and the ``operation`` that
failed, so the command layer can build messages like
``rm: cannot remove 'x': Permission denied`` without parsing strings.

Two names deliberately mirror Python built-ins (``FileNotFoundError``,
``FileExistsError``).  They are *virtual* filesystem errors and do not
inherit from ``OSError``; import this module and refer to them as
``errors.FileNotFoundError`` to keep the distinction visible.
"""


class FileSystemError(Exception):
    """Base class for all virtual filesystem failures."""

    def __init__(self, message: str, path: str | None = None, operation: str | None = None) -> None:
        """Create an error tied to a path and an operation."""
        super().__init__(message)
        self.message = message
        self.path = path
        self.operation = operation


class PermissionDeniedError(FileSystemError):
    """The permission engine refused an operation."""

    def __init__(self, path: str, operation: str = "access", reason: str | None = None) -> None:
        """Create a denial for *operation* on *path*."""
        message = f"Permission denied: cannot {operation} '{path}'"
        super().__init__(message, path, operation)
        self.reason = reason


class FileNotFoundError(FileSystemError):  # noqa: A001
    """The target path is not in the store."""

    def __init__(self, path: str, operation: str = "access") -> None:
        """Create a not-found error for *path*."""
        super().__init__(f"No such file or directory: '{path}'", path, operation)


class FileExistsError(FileSystemError):  # noqa: A001
    """A create-only operation hit an existing path."""

    def __init__(self, path: str) -> None:
        """Create an already-exists error for *path*."""
        super().__init__(f"File exists: '{path}'", path, "create")


class TypeMismatchError(FileSystemError):
    """A modify tried to change an entry's type."""

    def __init__(self, path: str, expected_type: str, actual_type: str) -> None:
        """Create a mismatch between the stored and the submitted type."""
        message = f"Type mismatch: '{path}' is {expected_type}, got {actual_type}"
        super().__init__(message, path, "modify")
        self.expected_type = expected_type
        self.actual_type = actual_type


class IsDirectoryError(FileSystemError):
    """A file operation was attempted on a directory."""

    def __init__(self, path: str) -> None:
        """Create an is-a-directory error for *path*."""
        super().__init__(f"Is a directory: '{path}'", path, "file_operation")


class NotDirectoryError(FileSystemError):
    """A directory operation was attempted on something else."""

    def __init__(self, path: str) -> None:
        """Create a not-a-directory error for *path*."""
        super().__init__(f"Not a directory: '{path}'", path, "directory_operation")


class InvalidPermissionsError(FileSystemError, ValueError):
    """A permission string or octal mode failed validation."""

    def __init__(self, path: str, permissions: object) -> None:
        """Create an invalid-mode error."""
        super().__init__(f"Invalid mode: '{permissions}'", path, "chmod")
        self.permissions = permissions
