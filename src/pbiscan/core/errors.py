"""Exception hierarchy shared by the scan pipeline.

Errors are split by the tier that handles them: gateway errors are retried
(or not) inside the gateway, scan job errors are caught per batch by the
scheduler, and auth/export errors end the run.
"""

from __future__ import annotations


class PbiScanError(Exception):
    """Base exception for all pbiscan errors."""


class AuthError(PbiScanError):
    """Raised when no bearer credential can be obtained."""


class GatewayError(PbiScanError):
    """Raised when an admin API call fails.

    Attributes:
        status: HTTP status code, or None for transport-level failures
                (connection reset, timeout, DNS).
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class NotFoundError(GatewayError):
    """Raised on HTTP 404. Never retried."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status=404)


class ScanJobError(PbiScanError):
    """Raised when a single scan batch cannot complete."""


class ScanTimeoutError(ScanJobError):
    """Raised when a scan job exceeds the optional poll ceiling."""


class ExportError(PbiScanError):
    """Raised when run outputs cannot be written."""
