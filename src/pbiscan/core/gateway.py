"""Thin admin REST gateway with a bounded, fixed-delay retry policy.

Every call is retried up to ``max_retries`` times with the same pause between
attempts. HTTP 404 is the one exception: it means the resource or capability
does not exist, so it is raised immediately as :class:`NotFoundError`.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping

import requests
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from pbiscan.core.errors import GatewayError, NotFoundError

log = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.powerbi.com/v1.0/myorg/"
_BODY_EXCERPT_CHARS = 300

TokenProvider = Callable[[], str]


def _is_retryable(exc: BaseException) -> bool:
    """Return True for gateway failures other than not-found."""
    return isinstance(exc, GatewayError) and not isinstance(exc, NotFoundError)


def _excerpt(text: str | None) -> str:
    """Return a single-line, length-capped excerpt of a response body."""
    flat = " ".join((text or "").split())
    if len(flat) <= _BODY_EXCERPT_CHARS:
        return flat
    return f"{flat[:_BODY_EXCERPT_CHARS]}..."


class AdminApiGateway:
    """GET/POST wrapper around a ``requests.Session`` with bearer auth."""

    def __init__(
        self,
        token_provider: TokenProvider,
        *,
        base_url: str = DEFAULT_API_BASE,
        max_retries: int = 3,
        retry_delay_seconds: float = 5,
        timeout: tuple[float, float] = (10.0, 120.0),
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds must be >= 0")
        self.token_provider = token_provider
        self.base_url = base_url.rstrip("/") + "/"
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds
        self.timeout = timeout
        self.session = session or requests.Session()
        self._sleep = sleep

    def get(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        """GET ``path`` and return the decoded JSON body."""
        return self._call("GET", path, params=params)

    def post(
        self,
        path: str,
        body: Any,
        params: Mapping[str, Any] | None = None,
        *,
        retry: bool = True,
    ) -> Any:
        """
        POST a JSON body to ``path`` and return the decoded JSON response.

        Pass ``retry=False`` for calls that must not be repeated, such as
        submitting a job that the server may have created already.
        """
        return self._call("POST", path, params=params, body=body, retry=retry)

    def get_text(self, path: str, params: Mapping[str, Any] | None = None) -> str:
        """GET ``path`` and return the raw response text without decoding it."""
        return self._call("GET", path, params=params, raw=True)

    def _retrying(self, retry: bool) -> Retrying:
        attempts = self.max_retries + 1 if retry else 1
        return Retrying(
            retry=retry_if_exception(_is_retryable),
            stop=stop_after_attempt(attempts),
            wait=wait_fixed(self.retry_delay_seconds),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )

    def _log_retry(self, state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        log.warning(
            "Attempt %d/%d failed: %s; retrying in %ss",
            state.attempt_number,
            self.max_retries + 1,
            exc,
            self.retry_delay_seconds,
        )

    def _call(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        body: Any = None,
        retry: bool = True,
        raw: bool = False,
    ) -> Any:
        return self._retrying(retry)(
            self._request, method, path, params=params, body=body, raw=raw
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None,
        body: Any,
        raw: bool,
    ) -> Any:
        url = self.base_url + path.lstrip("/")
        headers = {
            "Authorization": f"Bearer {self.token_provider()}",
            "Content-Type": "application/json",
        }
        log.debug("%s %s params=%s", method, url, dict(params or {}))
        try:
            resp = self.session.request(
                method,
                url,
                headers=headers,
                params=params,
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise GatewayError(f"{method} {path} failed: {exc}") from exc

        if resp.status_code == 404:
            raise NotFoundError(f"{method} {path} returned HTTP 404")
        if resp.status_code >= 400:
            raise GatewayError(
                f"{method} {path} returned HTTP {resp.status_code}: {_excerpt(resp.text)}",
                status=resp.status_code,
            )

        if raw:
            return resp.text
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as exc:
            raise GatewayError(
                f"{method} {path} returned invalid JSON: {_excerpt(resp.text)}",
                status=resp.status_code,
            ) from exc
