"""Common CLI options for the CLI.

Options default to None so that unset flags fall back to the PBISCAN_*
environment configuration.
"""

import typer

LikeOpt = typer.Option(
    None,
    "--like",
    help="Wildcard on workspace name (*, ?, [..]; case-insensitive)",
)

InteractiveOpt = typer.Option(
    False,
    "--interactive",
    "-i",
    help="Pick workspaces from a checkbox list (none picked = all shown)",
)

TenantOpt = typer.Option(None, "--tenant", help="Entra tenant id to sign in to")

LineageOpt = typer.Option(None, "--lineage/--no-lineage", help="Request lineage details")

DatasourceDetailsOpt = typer.Option(
    None, "--datasource-details/--no-datasource-details", help="Request datasource details"
)

DatasetSchemaOpt = typer.Option(
    None, "--dataset-schema/--no-dataset-schema", help="Request tables, columns and measures"
)

DatasetExpressionsOpt = typer.Option(
    None,
    "--dataset-expressions/--no-dataset-expressions",
    help="Request DAX/M expressions",
)

RefreshHistoryOpt = typer.Option(
    None,
    "--refresh-history/--no-refresh-history",
    help="Look up refresh history per dataset",
)

MaxRetriesOpt = typer.Option(None, "--max-retries", min=0, help="Retries per API call")

RetryDelayOpt = typer.Option(
    None, "--retry-delay", min=0, help="Seconds between retries of a failed API call"
)

PollIntervalOpt = typer.Option(
    None, "--poll-interval", min=0, help="Seconds between scan status checks"
)

MaxPollsOpt = typer.Option(
    None,
    "--max-polls",
    min=1,
    help="Give up on a batch after this many status checks (default: wait forever)",
)

OutputDirOpt = typer.Option(
    None, "--output-dir", "-o", help="Base directory for run outputs"
)

YesOpt = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt")

DryRunOpt = typer.Option(
    False,
    "--dry-run",
    help="Show which workspaces would be scanned, but don't submit anything",
)

RetrySubmitOpt = typer.Option(
    None,
    "--retry-submit/--no-retry-submit",
    help="Also retry failed scan submissions (may create duplicate scans)",
)
