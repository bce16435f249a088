"""Transport shell: command line and HTTP server."""

from __future__ import annotations

from courier.app.cli import cli

__all__ = [
    "cli",
]
