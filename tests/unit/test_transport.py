"""Tests for HttpQueryTransport with requests stubbed out."""
import threading
from unittest.mock import Mock, patch

import pytest
import requests

from security_client.core.security import HttpQueryTransport, TransportError

DESCRIPTOR = {"controller": "security", "action": "getRole"}


def _response(payload, status_code=200, text=None):
    resp = Mock()
    resp.status_code = status_code
    resp.text = text if text is not None else str(payload)
    if isinstance(payload, Exception):
        resp.json.side_effect = payload
    else:
        resp.json.return_value = payload
    return resp


class _Waiter:
    """Callback that lets the test block until the worker reports."""

    def __init__(self):
        self.event = threading.Event()
        self.error = None
        self.result = None

    def __call__(self, error, result=None):
        self.error, self.result = error, result
        self.event.set()

    def wait(self):
        assert self.event.wait(timeout=5), "transport never completed"
        return self


@pytest.fixture()
def http_transport():
    transport = HttpQueryTransport("http://backend:7512/", token="tok", timeout=3)
    yield transport
    transport.close()


class TestEnvelope:
    def test_posts_envelope_with_token(self, http_transport):
        payload = {"status": 200, "error": None, "result": {"_id": "r1", "_source": {}}}
        with patch.object(requests, "post", return_value=_response(payload)) as post:
            waiter = _Waiter()
            http_transport.query(DESCRIPTOR, {"_id": "r1"}, None, waiter)
            waiter.wait()

        post.assert_called_once()
        args, kwargs = post.call_args
        assert args[0] == "http://backend:7512/api/_query"
        assert kwargs["json"] == {"controller": "security", "action": "getRole", "_id": "r1"}
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert kwargs["timeout"] == 3
        assert waiter.error is None
        assert waiter.result == payload

    def test_metadata_option_forwarded(self, http_transport):
        payload = {"status": 200, "error": None, "result": {}}
        with patch.object(requests, "post", return_value=_response(payload)) as post:
            waiter = _Waiter()
            http_transport.query(
                {"controller": "security", "action": "createRole"},
                {"body": {}},
                {"replaceIfExist": False, "metadata": {"origin": "cli"}},
                waiter,
            )
            waiter.wait()

        sent = post.call_args.kwargs["json"]
        assert sent["metadata"] == {"origin": "cli"}
        assert "replaceIfExist" not in sent

    def test_no_token_no_authorization_header(self):
        transport = HttpQueryTransport("http://backend:7512")
        payload = {"status": 200, "error": None, "result": {}}
        try:
            with patch.object(requests, "post", return_value=_response(payload)) as post:
                waiter = _Waiter()
                transport.query(DESCRIPTOR, {"_id": "r1"}, None, waiter)
                waiter.wait()
        finally:
            transport.close()

        assert "Authorization" not in post.call_args.kwargs["headers"]


class TestErrors:
    def test_backend_error_member(self, http_transport):
        payload = {"status": 404, "error": {"message": "Role not found", "status": 404}, "result": None}
        with patch.object(requests, "post", return_value=_response(payload, status_code=404)):
            waiter = _Waiter()
            http_transport.query(DESCRIPTOR, {"_id": "nope"}, None, waiter)
            waiter.wait()

        assert isinstance(waiter.error, TransportError)
        assert waiter.error.status_code == 404
        assert waiter.error.message == "Role not found"
        assert waiter.error.action == "getRole"
        assert waiter.result is None

    def test_http_error_without_json(self, http_transport):
        with patch.object(requests, "post", return_value=_response(ValueError("no json"), 502, "Bad Gateway")):
            waiter = _Waiter()
            http_transport.query(DESCRIPTOR, {"_id": "r1"}, None, waiter)
            waiter.wait()

        assert waiter.error.status_code == 502
        assert waiter.error.message == "Bad Gateway"

    def test_network_failure(self, http_transport):
        with patch.object(requests, "post", side_effect=requests.ConnectionError("refused")):
            waiter = _Waiter()
            http_transport.query(DESCRIPTOR, {"_id": "r1"}, None, waiter)
            waiter.wait()

        assert isinstance(waiter.error, TransportError)
        assert waiter.error.status_code is None
        assert isinstance(waiter.error.__cause__, requests.ConnectionError)

    def test_fire_and_forget_failure_is_logged(self, http_transport, caplog):
        with patch.object(requests, "post", side_effect=requests.Timeout("slow")):
            http_transport.query(DESCRIPTOR, {"_id": "r1"})
            http_transport.close()

        assert "getRole failed without a callback" in caplog.text

    def test_query_after_close_reports_transport_error(self):
        transport = HttpQueryTransport("http://backend:7512")
        transport.close()

        with patch.object(requests, "post") as post:
            waiter = _Waiter()
            transport.query(DESCRIPTOR, {"_id": "r1"}, None, waiter)
            waiter.wait()

        post.assert_not_called()
        assert isinstance(waiter.error, TransportError)
        assert waiter.error.status_code is None
        assert waiter.error.action == "getRole"
        assert waiter.result is None

    def test_fire_and_forget_after_close_is_logged(self, caplog):
        transport = HttpQueryTransport("http://backend:7512")
        transport.close()

        transport.query(DESCRIPTOR, {"_id": "r1"})

        assert "getRole failed without a callback" in caplog.text


def test_base_url_from_environment(monkeypatch):
    monkeypatch.setenv("SECURITY_API_URL", "http://from-env:9000/")
    transport = HttpQueryTransport()
    try:
        assert transport.url == "http://from-env:9000/api/_query"
    finally:
        transport.close()
