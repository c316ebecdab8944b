"""Tests for lexical path resolution.

Paths are plain strings until the filesystem is asked about them.
These helpers turn whatever the user typed into the one canonical
absolute form the flat store is keyed by.
"""

import pytest

from py_vfs.fs.paths import (
    ancestors,
    get_basename,
    get_dirname,
    get_relative_path,
    is_sub_path,
    join_path,
    normalize_path,
    resolve_path,
    subtree_prefix,
)


class TestNormalizePath:
    """Verify collapsing of dots and slashes."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("/a/./b//c/", "/a/b/c"),
            ("/a/b/../../..", "/"),
            ("", "/"),
            ("/", "/"),
            ("a/b", "/a/b"),
            ("/home/alice/../bob", "/home/bob"),
        ],
    )
    def test_normalizes(self, raw: str, expected: str) -> None:
        """Dots, empty segments and trailing slashes should collapse."""
        assert normalize_path(raw) == expected

    def test_idempotent(self) -> None:
        """Normalising twice should change nothing."""
        once = normalize_path("/x/../y/./z//")
        assert normalize_path(once) == once

    def test_dotdot_past_root_is_noop(self) -> None:
        """Popping past the root should stay at the root."""
        assert normalize_path("/../../etc") == "/etc"


class TestResolvePath:
    """Verify resolution against a working directory."""

    def test_absolute_ignores_current(self) -> None:
        """An absolute path should not depend on the current path."""
        assert resolve_path("/etc/passwd", "/home/alice") == "/etc/passwd"

    def test_dot_returns_current(self) -> None:
        """'.' should return the current path unchanged."""
        assert resolve_path(".", "/home/alice") == "/home/alice"

    def test_dotdot_pops_one_segment(self) -> None:
        """'..' should go to the parent."""
        assert resolve_path("..", "/home/alice") == "/home"

    def test_dotdot_at_root_stays(self) -> None:
        """'..' at the root should stay at the root."""
        assert resolve_path("..", "/") == "/"

    def test_relative_is_joined(self) -> None:
        """Relative paths should be appended to the current path."""
        assert resolve_path("docs/a.txt", "/home/alice") == "/home/alice/docs/a.txt"

    def test_relative_from_root(self) -> None:
        """Relative paths from the root should not double the slash."""
        assert resolve_path("tmp", "/") == "/tmp"

    def test_relative_with_parent_segments(self) -> None:
        """Embedded '..' in a relative path should be resolved."""
        assert resolve_path("../bob/x", "/home/alice") == "/home/bob/x"

    def test_default_current_is_root(self) -> None:
        """Without a current path, relative paths resolve from '/'."""
        assert resolve_path("etc") == "/etc"


class TestBasenameAndDirname:
    """Verify splitting a path into parent and name."""

    def test_basename(self) -> None:
        """The basename should be the last segment."""
        assert get_basename("/home/alice/notes.txt") == "notes.txt"

    def test_dirname(self) -> None:
        """The dirname should be everything before the last segment."""
        assert get_dirname("/home/alice/notes.txt") == "/home/alice"

    def test_top_level_dirname_is_root(self) -> None:
        """A top-level entry's parent should be '/'."""
        assert get_dirname("/etc") == "/"

    def test_root_basename_and_dirname(self) -> None:
        """The root's basename and dirname should both be '/'."""
        assert get_basename("/") == "/"
        assert get_dirname("/") == "/"


class TestSubPaths:
    """Verify prefix-based ancestry."""

    def test_child_is_sub_path(self) -> None:
        """A descendant should be a sub-path."""
        assert is_sub_path("/a/b/c", "/a")

    def test_path_is_not_its_own_sub_path(self) -> None:
        """A path should never be a sub-path of itself."""
        assert not is_sub_path("/a", "/a")

    def test_sibling_with_shared_prefix(self) -> None:
        """'/ab' should not count as being under '/a'."""
        assert not is_sub_path("/ab", "/a")

    def test_everything_is_under_root(self) -> None:
        """Every path except the root itself should be under '/'."""
        assert is_sub_path("/etc", "/")
        assert not is_sub_path("/", "/")

    def test_subtree_prefix(self) -> None:
        """The root's prefix is '/', everything else gains a slash."""
        assert subtree_prefix("/") == "/"
        assert subtree_prefix("/etc") == "/etc/"

    def test_ancestors(self) -> None:
        """Ancestors should list proper prefixes, excluding the root."""
        assert ancestors("/a/b/c") == ["/a", "/a/b"]
        assert ancestors("/a") == []


class TestJoinAndRelative:
    """Verify joining and relative path computation."""

    def test_join(self) -> None:
        """Segments should join into one normalised path."""
        assert join_path("/home", "alice", "../bob") == "/home/bob"

    def test_join_skips_empty(self) -> None:
        """Empty segments should be ignored."""
        assert join_path("/", "", "etc") == "/etc"

    def test_relative_to_child(self) -> None:
        """A child should be reachable by its remaining segments."""
        assert get_relative_path("/home", "/home/alice/x") == "alice/x"

    def test_relative_to_sibling(self) -> None:
        """A sibling should be reached through '..'."""
        assert get_relative_path("/home/alice", "/home/bob") == "../bob"

    def test_relative_to_self(self) -> None:
        """The same directory should give '.'."""
        assert get_relative_path("/etc/", "/etc") == "."
