"""Environment variables — session configuration via key-value pairs.

Every shell session has an environment: ``HOME``, ``USER``, ``PWD``,
``OLDPWD`` and whatever ``/etc/environment`` declares.  Values are
plain strings; there are no types and no nesting.

``/etc/environment`` uses the pam_env format: one ``KEY=VALUE`` per
line, ``#`` comments, optional surrounding quotes on the value.
"""

ENVIRONMENT_PATH = "/etc/environment"

DEFAULT_ENVIRONMENT_CONTENT = """# System-wide environment variables
PATH="/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"
LANG="en_US.UTF-8"
"""


def parse_environment_file(text: str) -> dict[str, str]:
    """Parse ``/etc/environment`` content into a dict.

    Lines without ``=`` or with an empty key are ignored.
    """
    result: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":  # noqa: PLR2004
            value = value[1:-1]
        result[key] = value
    return result


class Environment:
    """A key-value store for session variables.

    Each instance is an independent copy — modifying one does not
    affect any other.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        """Create an environment, optionally pre-populated.

        Args:
            initial: Starting variables (copied, not referenced).

        """
        self._vars: dict[str, str] = dict(initial) if initial else {}

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the value for *key*, or *default* if not set."""
        return self._vars.get(key, default)

    def set(self, key: str, value: str) -> None:
        """Set *key* to *value* (creates or overwrites)."""
        self._vars[key] = value

    def update(self, values: dict[str, str]) -> None:
        """Set several variables at once."""
        self._vars.update(values)

    def delete(self, key: str) -> None:
        """Remove *key* from the environment.

        Raises:
            KeyError: If *key* does not exist.

        """
        del self._vars[key]

    def items(self) -> list[tuple[str, str]]:
        """Return all (key, value) pairs, sorted by key."""
        return sorted(self._vars.items())

    def copy(self) -> "Environment":
        """Return an independent copy of this environment."""
        return Environment(initial=self._vars)

    def __contains__(self, key: object) -> bool:
        """Return True if *key* is set."""
        return key in self._vars

    def __len__(self) -> int:
        """Return the number of variables."""
        return len(self._vars)
