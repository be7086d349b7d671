"""Browser-facing inspection UI for heisenberg-fs.

This package provides a Flask application that exposes a filesystem
engine over HTTP.  It is an **optional** extra — install with::

    pip install heisenberg-fs[web]

The ``create_app`` factory in ``app.py`` wraps an engine and serves
status, file listing, log, and request endpoints.
"""
