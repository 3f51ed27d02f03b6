import time

import pytest
from azure.core.credentials import AccessToken
from azure.core.exceptions import ClientAuthenticationError

from pbiscan.core.auth import POWERBI_SCOPE, TokenProvider
from pbiscan.core.errors import AuthError


class _Credential:
    def __init__(self, lifetimes):
        self.lifetimes = list(lifetimes)
        self.scopes: list[str] = []

    def get_token(self, *scopes, **kwargs):
        self.scopes.extend(scopes)
        lifetime = self.lifetimes.pop(0)
        if isinstance(lifetime, Exception):
            raise lifetime
        return AccessToken(f"tok-{len(self.scopes)}", int(time.time()) + lifetime)


def test_token_is_cached_until_close_to_expiry():
    credential = _Credential([3600])
    provider = TokenProvider(credential)

    assert provider() == "tok-1"
    assert provider() == "tok-1"
    assert credential.scopes == [POWERBI_SCOPE]


def test_token_is_refreshed_inside_the_expiry_margin():
    credential = _Credential([60, 3600])
    provider = TokenProvider(credential)

    assert provider() == "tok-1"
    assert provider() == "tok-2"


def test_authentication_failure_is_mapped_with_tenant_hint():
    provider = TokenProvider(
        _Credential([ClientAuthenticationError("expired")]), tenant_id="contoso"
    )

    with pytest.raises(AuthError, match="az login --tenant contoso"):
        provider()
