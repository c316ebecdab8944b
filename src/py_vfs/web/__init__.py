"""Browser-based web terminal for py-vfs.

This package provides a Flask application that exposes the shell
through a web browser.  It is an **optional** extra — install with::

    pip install py-vfs[web]

The ``create_app`` factory in ``app.py`` installs the system, logs a
user in, creates a shell, and serves three endpoints:

- ``GET /`` — HTML terminal page.
- ``POST /api/execute`` — execute a shell command and return JSON.
- ``GET /api/status`` — session status (user, cwd, entry count).
"""
