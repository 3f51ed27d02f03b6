from __future__ import annotations

from typing import Any, Mapping, Sequence

from pbiscan.core.gateway import AdminApiGateway
from pbiscan.core.scans import ScanOptions, ScanStatus


class PowerBIAdminAdapter:
    """Adapter around the Power BI admin scanner, workspace and refresh APIs."""

    def __init__(self, gateway: AdminApiGateway, *, retry_submit: bool = False) -> None:
        """
        Args:
            gateway: Gateway used for every call.
            retry_submit: Apply the gateway retry policy to scan submission too.
                          Off by default since a retried POST may leave a
                          duplicate scan behind on the server.
        """
        self.gateway = gateway
        self.retry_submit = retry_submit

    def list_workspaces_page(self, top: int, skip: int) -> list[Mapping[str, Any]]:
        """Return one page of the admin workspace listing."""
        payload = self.gateway.get("admin/groups", params={"$top": top, "$skip": skip})
        items = payload.get("value") if isinstance(payload, dict) else None
        return [i for i in items or [] if isinstance(i, dict)]

    def start_scan(self, workspace_ids: Sequence[str], options: ScanOptions) -> str | None:
        """Submit a scan for up to 100 workspaces and return its id."""
        payload = self.gateway.post(
            "admin/workspaces/getInfo",
            {"workspaces": list(workspace_ids)},
            params=options.as_query(),
            retry=self.retry_submit,
        )
        if isinstance(payload, dict):
            scan_id = payload.get("id") or payload.get("scanId")
            return str(scan_id) if scan_id else None
        return None

    def get_scan_status(self, scan_id: str) -> ScanStatus:
        """Return the current status of a scan."""
        payload = self.gateway.get(f"admin/workspaces/scanStatus/{scan_id}")
        status = payload.get("status") if isinstance(payload, dict) else None
        return ScanStatus.parse(status)

    def get_scan_result(self, scan_id: str) -> str:
        """Return the raw JSON text of a succeeded scan."""
        return self.gateway.get_text(f"admin/workspaces/scanResult/{scan_id}")

    def get_refresh_history(
        self, workspace_id: str, dataset_id: str, top: int
    ) -> list[Mapping[str, Any]]:
        """Return the most recent refreshes of a dataset (404 when unsupported)."""
        payload = self.gateway.get(
            f"groups/{workspace_id}/datasets/{dataset_id}/refreshes",
            params={"$top": top},
        )
        items = payload.get("value") if isinstance(payload, dict) else None
        return [i for i in items or [] if isinstance(i, dict)]
