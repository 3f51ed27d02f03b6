"""CLI application for Power BI metadata scanning."""

import typer

from pbiscan.cli.commands.scan import app as scan_app
from pbiscan.cli.commands.workspaces import app as workspaces_app
from pbiscan.cli.common.log_setup import setup_logging

app = typer.Typer(
    help="pbiscan - Power BI / Fabric admin metadata scanner",
    no_args_is_help=True,
)


@app.callback()
def _init(
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Console log level (DEBUG, INFO, WARNING, ERROR)",
        envvar="PBISCAN_LOG_LEVEL",
    ),
):
    """Configure console logging for every command."""
    setup_logging(level=log_level)


app.add_typer(workspaces_app, name="workspaces", help="List workspaces visible to the admin.")
app.add_typer(scan_app, name="scan", help="Run scans / flatten scan results.")


if __name__ == "__main__":
    app()
