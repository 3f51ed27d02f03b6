"""Exit handling utilities for the CLI."""

from typing import NoReturn

import typer

from pbiscan.cli.common.output import out

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def ok_exit(msg: str | None = None) -> NoReturn:
    """Exit successfully with an optional informational message."""
    if msg:
        out.info(msg)
    raise typer.Exit(EXIT_OK)


def die(msg: str, code: int = EXIT_FAILURE) -> NoReturn:
    """Exit with an error message and a non-zero exit code."""
    out.error(msg)
    raise typer.Exit(code)


def warn_exit(msg: str, code: int = EXIT_OK) -> NoReturn:
    """Exit with a warning message."""
    out.warn(msg)
    raise typer.Exit(code)


def exit_from_exc(exc: Exception, *, message: str, code: int = EXIT_FAILURE) -> NoReturn:
    """Print an error message and exit, chaining the original exception."""
    out.error(f"{message} ({exc})")
    raise typer.Exit(code) from exc
