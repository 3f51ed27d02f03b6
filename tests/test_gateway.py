import json

import pytest
import requests

from pbiscan.core.errors import GatewayError, NotFoundError
from pbiscan.core.gateway import AdminApiGateway


class _Resp:
    def __init__(self, status_code: int, payload=None, text: str | None = None):
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = "" if payload is None else json.dumps(payload)
        self.text = text
        self.content = text.encode("utf-8")

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class _Session:
    """Replays a fixed list of responses (or exceptions) and records calls."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls: list[dict] = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


def _gateway(session, *, max_retries=3, sleeps=None):
    return AdminApiGateway(
        lambda: "tok",
        base_url="https://api.example.test/v1.0/myorg",
        max_retries=max_retries,
        retry_delay_seconds=7,
        session=session,
        sleep=(sleeps.append if sleeps is not None else lambda _s: None),
    )


def test_get_returns_json_and_sends_bearer_token():
    session = _Session([_Resp(200, {"value": [1]})])

    assert _gateway(session).get("admin/groups", params={"$top": 10}) == {"value": [1]}

    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "https://api.example.test/v1.0/myorg/admin/groups"
    assert call["headers"]["Authorization"] == "Bearer tok"
    assert call["params"] == {"$top": 10}


def test_not_found_is_attempted_exactly_once():
    session = _Session([_Resp(404, text="nope")])
    sleeps: list[float] = []

    with pytest.raises(NotFoundError):
        _gateway(session, max_retries=5, sleeps=sleeps).get("groups/w/datasets/d/refreshes")

    assert len(session.calls) == 1
    assert sleeps == []


@pytest.mark.parametrize("max_retries", [0, 1, 3])
def test_transient_failure_is_attempted_max_retries_plus_one(max_retries: int):
    session = _Session([_Resp(503, text="busy")])
    sleeps: list[float] = []

    with pytest.raises(GatewayError) as exc_info:
        _gateway(session, max_retries=max_retries, sleeps=sleeps).get("admin/groups")

    assert exc_info.value.status == 503
    assert len(session.calls) == max_retries + 1
    assert sleeps == [7] * max_retries


def test_transient_failure_then_success_returns_result():
    session = _Session([_Resp(500, text="oops"), _Resp(200, {"status": "Running"})])

    assert _gateway(session).get("admin/workspaces/scanStatus/s1") == {"status": "Running"}
    assert len(session.calls) == 2


def test_transport_errors_are_wrapped_and_retried():
    session = _Session([requests.ConnectionError("reset")])

    with pytest.raises(GatewayError, match="reset") as exc_info:
        _gateway(session, max_retries=2).get("admin/groups")

    assert exc_info.value.status is None
    assert len(session.calls) == 3


def test_post_without_retry_is_attempted_once():
    session = _Session([_Resp(500, text="oops")])

    with pytest.raises(GatewayError):
        _gateway(session).post("admin/workspaces/getInfo", {"workspaces": ["a"]}, retry=False)

    assert len(session.calls) == 1
    assert session.calls[0]["json"] == {"workspaces": ["a"]}


def test_get_text_returns_raw_body():
    session = _Session([_Resp(200, text='{"workspaces": []}')])

    assert _gateway(session).get_text("admin/workspaces/scanResult/s1") == '{"workspaces": []}'


def test_invalid_json_body_is_a_gateway_error():
    session = _Session([_Resp(200, text="<html>")])

    with pytest.raises(GatewayError, match="invalid JSON"):
        _gateway(session, max_retries=0).get("admin/groups")


def test_empty_body_decodes_to_empty_dict():
    session = _Session([_Resp(202, text="")])

    assert _gateway(session).get("admin/workspaces/scanStatus/s1") == {}


def test_negative_retry_settings_are_rejected():
    with pytest.raises(ValueError, match="max_retries"):
        AdminApiGateway(lambda: "t", max_retries=-1)
    with pytest.raises(ValueError, match="retry_delay_seconds"):
        AdminApiGateway(lambda: "t", retry_delay_seconds=-1)
