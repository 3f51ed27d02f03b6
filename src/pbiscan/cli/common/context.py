"""Application context management for the CLI."""

from __future__ import annotations

from dataclasses import dataclass

from pbiscan.cli.common.exits import die
from pbiscan.core.adapters.powerbi import PowerBIAdminAdapter
from pbiscan.core.auth import sign_in
from pbiscan.core.config import ScanConfig
from pbiscan.core.errors import AuthError
from pbiscan.core.gateway import AdminApiGateway


@dataclass
class ScanAppContext:
    """Signed-in context holding the configuration, gateway and admin adapter."""

    config: ScanConfig
    gateway: AdminApiGateway
    adapter: PowerBIAdminAdapter


def build_scan_context(config: ScanConfig) -> ScanAppContext:
    """Sign in and build the admin API context.

    Args:
        config: Effective run configuration.

    Returns:
        ScanAppContext: Context with configured gateway and adapter.
    """
    try:
        token_provider = sign_in(config.tenant_id)
    except AuthError as exc:
        die(str(exc), code=1)
    gateway = AdminApiGateway(
        token_provider,
        base_url=config.api_base,
        max_retries=config.max_retries,
        retry_delay_seconds=config.retry_delay_seconds,
    )
    adapter = PowerBIAdminAdapter(gateway, retry_submit=config.retry_submit)
    return ScanAppContext(config=config, gateway=gateway, adapter=adapter)
