from __future__ import annotations

from unittest import mock

import pytest
from requests.exceptions import ConnectionError, ReadTimeout

from skyverse_terrain.config import Settings
from skyverse_terrain.core.errors import TransportError
from skyverse_terrain.providers.http import HTTPTransport


def _response(status_code: int, text: str):
    r = mock.Mock()
    r.status_code = status_code
    r.text = text
    r.content = text.encode()
    return r


def test_fetch_returns_status_and_body():
    t = HTTPTransport(user_agent="test-agent", timeout_s=7)
    with mock.patch.object(t.s, "get", return_value=_response(200, "[]")) as get:
        resp = t.fetch("https://tiles.example.com/?lat=1.0&lng=2.0", {"SKYVERSE_KEY": "k"})

    assert resp.status_code == 200
    assert resp.body == "[]"
    get.assert_called_once_with(
        "https://tiles.example.com/?lat=1.0&lng=2.0",
        headers={"SKYVERSE_KEY": "k"},
        timeout=7,
    )


def test_non_200_is_returned_not_raised():
    t = HTTPTransport(user_agent="test-agent")
    with mock.patch.object(t.s, "get", return_value=_response(401, "denied")):
        resp = t.fetch("https://tiles.example.com/?", {})
    assert resp.status_code == 401


@pytest.mark.parametrize("exc", [ConnectionError("refused"), ReadTimeout("slow")])
def test_transport_failures_are_wrapped_without_retry(exc):
    t = HTTPTransport(user_agent="test-agent")
    with mock.patch.object(t.s, "get", side_effect=exc) as get:
        with pytest.raises(TransportError):
            t.fetch("https://tiles.example.com/?", {})
    assert get.call_count == 1


def test_from_settings():
    t = HTTPTransport.from_settings(Settings(user_agent="ua/1", http_timeout_s=3))
    assert t.timeout_s == 3
    assert t.s.headers["User-Agent"] == "ua/1"
