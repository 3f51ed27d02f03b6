"""Commands for browsing workspaces visible to the admin principal."""

import typer

from pbiscan.cli.common.context import build_scan_context
from pbiscan.cli.common.exits import EXIT_USAGE, die, exit_from_exc, warn_exit
from pbiscan.cli.common.options import LikeOpt, TenantOpt
from pbiscan.cli.common.output import out
from pbiscan.core.config import ScanConfig
from pbiscan.core.errors import GatewayError
from pbiscan.core.selectors import NameWildcardSelector, build_selector
from pbiscan.core.workspaces import list_all_workspaces

app = typer.Typer(help="Browse workspaces", no_args_is_help=True)


@app.command("list")
def list_(
    like: str | None = LikeOpt,
    tenant: str | None = TenantOpt,
    all_states: bool = typer.Option(
        False,
        "--all-states",
        help="Include personal, deleted and other non-scannable workspaces",
    ),
):
    """
    List workspaces that a scan would target.
    """
    try:
        config = ScanConfig.from_env().with_overrides(tenant_id=tenant)
        selector = (
            build_selector(like=like)
            if not all_states
            else (NameWildcardSelector(like) if like else None)
        )
    except ValueError as e:
        die(str(e), code=EXIT_USAGE)

    appctx = build_scan_context(config)

    try:
        with out.status("Loading workspaces..."):
            workspaces = list_all_workspaces(appctx.adapter)
    except GatewayError as exc:
        exit_from_exc(exc, message="Could not list workspaces.", code=1)

    total = len(workspaces)
    if selector is not None:
        workspaces = [ws for ws in workspaces if selector.matches(ws)]

    if not workspaces:
        warn_exit("No workspaces found", code=0)

    out.workspaces_table(workspaces, title="Workspaces")
    out.info(f"Shown: {len(workspaces)} | Enumerated: {total}")
