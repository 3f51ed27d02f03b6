"""Logging setup for the CLI.

Library modules log through ``logging.getLogger(__name__)``; the CLI routes
those records to the rich console and, for scan runs, to a plain-text
``run.log`` inside the run directory.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.logging import RichHandler

from pbiscan.cli.common.output import console

_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s:%(lineno)d  %(message)s"


def setup_logging(*, level: str = "WARNING") -> None:
    """Send log records at ``level`` and above to the console."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in root.handlers[:]:
        if isinstance(h, RichHandler):
            root.removeHandler(h)

    handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
    handler.setLevel(getattr(logging, level.upper(), logging.WARNING))
    root.addHandler(handler)


def add_file_log(path: Path, *, level: str = "INFO") -> logging.Handler:
    """Also write log records to ``path``. Returns the handler so it can be removed."""
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler.setFormatter(logging.Formatter(_FILE_FORMAT))
    logging.getLogger().addHandler(handler)
    return handler
