"""Path resolution — purely lexical helpers for virtual paths.

Nothing in this module touches the store.  A path is just a string:
``/home/alice/../bob`` normalises to ``/home/bob`` whether or not any
of those directories exist.  This mirrors how the shell reasons about
paths *before* asking the filesystem whether they are real.

Rules:
    - Absolute paths start with ``/``; everything else is relative to
      the current directory.
    - Empty segments (``//``, trailing ``/``) and ``.`` are dropped.
    - ``..`` pops one segment; popping past the root is a no-op.
    - The root's basename and dirname are both ``/``.
"""

ROOT = "/"


def normalize_path(path: str) -> str:
    """Collapse ``.``, ``..`` and redundant slashes into an absolute path.

    Examples::

        "/a/./b//c/"   → "/a/b/c"
        "/a/b/../../.."→ "/"
        ""             → "/"

    """
    resolved: list[str] = []
    for part in path.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if resolved:
                resolved.pop()
        else:
            resolved.append(part)
    return ROOT + "/".join(resolved)


def resolve_path(path: str, current_path: str = ROOT) -> str:
    """Resolve *path* against *current_path*.

    Args:
        path: An absolute or relative path.
        current_path: The absolute directory relative paths start from.

    Returns:
        An absolute path.  ``"."`` returns *current_path* unchanged.

    """
    if path.startswith("/"):
        return normalize_path(path)
    if path == ".":
        return current_path
    if path == "..":
        parts = [p for p in current_path.split("/") if p]
        if parts:
            parts.pop()
        return ROOT + "/".join(parts)
    base = current_path if current_path.endswith("/") else current_path + "/"
    return normalize_path(base + path)


def get_basename(path: str) -> str:
    """Return the last segment of *path* (``/`` for the root)."""
    if path == ROOT:
        return ROOT
    return path.rstrip("/").split("/")[-1] or ROOT


def get_dirname(path: str) -> str:
    """Return everything before the last segment (``/`` for the root)."""
    if path == ROOT:
        return ROOT
    head, _, _ = path.rstrip("/").rpartition("/")
    return head or ROOT


def join_path(*segments: str) -> str:
    """Join segments into one normalised absolute path."""
    return normalize_path("/".join(s for s in segments if s))


def is_sub_path(child: str, parent: str) -> bool:
    """Return True if *child* lies strictly beneath *parent*.

    A path is never a sub-path of itself.  Every path except the root
    is a sub-path of the root.
    """
    child = normalize_path(child)
    parent = normalize_path(parent)
    if parent == ROOT:
        return child != ROOT
    return child.startswith(parent + "/")


def subtree_prefix(path: str) -> str:
    """Return the string prefix shared by every path beneath *path*."""
    return ROOT if path == ROOT else path + "/"


def get_relative_path(from_path: str, to_path: str) -> str:
    """Compute the relative path that leads from *from_path* to *to_path*.

    Returns ``"."`` when both normalise to the same directory.
    """
    source = [p for p in normalize_path(from_path).split("/") if p]
    target = [p for p in normalize_path(to_path).split("/") if p]

    common = 0
    while common < len(source) and common < len(target) and source[common] == target[common]:
        common += 1

    parts = [".."] * (len(source) - common) + target[common:]
    return "/".join(parts) if parts else "."


def ancestors(path: str) -> list[str]:
    """Return every proper prefix directory of *path*, excluding the root.

    ``/a/b/c`` → ``["/a", "/a/b"]``.
    """
    parts = [p for p in normalize_path(path).split("/") if p]
    return ["/" + "/".join(parts[:i]) for i in range(1, len(parts))]
