"""Authentication helpers for the Power BI admin API.

Sign-in is interactive: an existing Azure CLI login is reused when present,
otherwise a browser window is opened. The resulting token is cached and
refreshed shortly before it expires.
"""

from __future__ import annotations

import time

from azure.core.credentials import AccessToken, TokenCredential
from azure.core.exceptions import ClientAuthenticationError
from azure.identity import (
    AzureCliCredential,
    ChainedTokenCredential,
    InteractiveBrowserCredential,
)

from pbiscan.core.errors import AuthError

POWERBI_SCOPE = "https://analysis.windows.net/powerbi/api/.default"
_REFRESH_MARGIN_SECONDS = 300


def _format_auth_error(message: str, tenant_id: str | None) -> str:
    """Return a user-friendly auth error message."""
    hint = "az login"
    if tenant_id:
        hint = f"{hint} --tenant {tenant_id}"
    return (
        f"Power BI authentication failed: {message}\n"
        f"Sign in again (for example:\n  $ {hint}\n) and make sure the account "
        "has the Fabric/Power BI administrator role."
    )


def get_credential(tenant_id: str | None = None) -> TokenCredential:
    """
    Create the interactive credential chain.

    Azure CLI is tried first so an existing ``az login`` session is reused;
    the browser flow is the fallback.
    """
    return ChainedTokenCredential(
        AzureCliCredential(tenant_id=tenant_id or ""),
        InteractiveBrowserCredential(tenant_id=tenant_id),
    )


class TokenProvider:
    """Callable returning a valid bearer token, refreshing it when close to expiry."""

    def __init__(
        self,
        credential: TokenCredential,
        *,
        scope: str = POWERBI_SCOPE,
        tenant_id: str | None = None,
    ) -> None:
        self.credential = credential
        self.scope = scope
        self.tenant_id = tenant_id
        self._token: AccessToken | None = None

    def __call__(self) -> str:
        if self._token is None or self._token.expires_on - _REFRESH_MARGIN_SECONDS <= time.time():
            try:
                self._token = self.credential.get_token(self.scope)
            except ClientAuthenticationError as exc:
                raise AuthError(_format_auth_error(str(exc), self.tenant_id)) from exc
        return self._token.token


def sign_in(tenant_id: str | None = None) -> TokenProvider:
    """
    Sign in interactively and return a token provider.

    A token is requested right away so a failed sign-in surfaces before any
    scan work starts.

    Raises:
        AuthError: If no credential in the chain could produce a token.
    """
    provider = TokenProvider(get_credential(tenant_id), tenant_id=tenant_id)
    provider()
    return provider
