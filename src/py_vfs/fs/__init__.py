"""Virtual filesystem — flat store, permissions, and the service gateway.

Re-exports public symbols so callers can write::

    from py_vfs.fs import FileSystemService, FlatStore, errors
"""

from py_vfs.fs import errors
from py_vfs.fs.entry import (
    DEFAULT_DIR_PERMISSIONS,
    DEFAULT_FILE_PERMISSIONS,
    DIRECTORY_SIZE,
    Entry,
    EntryType,
    EntryUpdate,
    create_default_entry,
    create_dir_entry,
    create_file_entry,
)
from py_vfs.fs.filesystem import FileSystem
from py_vfs.fs.paths import (
    ROOT,
    get_basename,
    get_dirname,
    get_relative_path,
    is_sub_path,
    join_path,
    normalize_path,
    resolve_path,
)
from py_vfs.fs.permissions import (
    Operation,
    PermissionCheck,
    PermissionsSystem,
    octal_to_permission_string,
    parse_permissions,
)
from py_vfs.fs.persistence import dump_filesystem, json_saver, load_filesystem
from py_vfs.fs.service import DirectoryListing, FileSystemService
from py_vfs.fs.store import FlatStore, Transaction, TransactionState

__all__ = [
    "DEFAULT_DIR_PERMISSIONS",
    "DEFAULT_FILE_PERMISSIONS",
    "DIRECTORY_SIZE",
    "ROOT",
    "DirectoryListing",
    "Entry",
    "EntryType",
    "EntryUpdate",
    "FileSystem",
    "FileSystemService",
    "FlatStore",
    "Operation",
    "PermissionCheck",
    "PermissionsSystem",
    "Transaction",
    "TransactionState",
    "create_default_entry",
    "create_dir_entry",
    "create_file_entry",
    "dump_filesystem",
    "errors",
    "get_basename",
    "get_dirname",
    "get_relative_path",
    "is_sub_path",
    "join_path",
    "json_saver",
    "load_filesystem",
    "normalize_path",
    "octal_to_permission_string",
    "parse_permissions",
    "resolve_path",
]
