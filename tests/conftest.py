"""Pytest shared fixtures for security client tests."""
import pathlib
import sys

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests

from security_client.core.security import SecurityClient


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: test talks to a live backend")


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from reaching a real backend.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _stub_post(url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP POST in unit test: {url}")

    monkeypatch.setattr(requests, "post", _stub_post)


# ─────────────────────────────────────────────────────────────────────────────
# Recording Transport
# ─────────────────────────────────────────────────────────────────────────────
class FakeTransport:
    """In-memory query transport.

    Records every query and answers synchronously from ``responses``, keyed by
    action, or by ``(action, _id)`` when several calls share an action.
    A value may be an exception instance, delivered as the callback error.
    """

    def __init__(self):
        self.calls = []
        self.responses = {}

    def reply(self, action, result=None, _id=None, error=None):
        key = (action, _id) if _id is not None else action
        self.responses[key] = error if error is not None else {"status": 200, "error": None, "result": result}

    def query(self, descriptor, body, options=None, callback=None):
        self.calls.append({
            "controller": descriptor["controller"],
            "action": descriptor["action"],
            "body": body,
            "options": options,
            "callback": callback,
        })
        if callback is None:
            return

        action = descriptor["action"]
        key = (action, body.get("_id"))
        response = self.responses.get(key, self.responses.get(action))
        if response is None:
            raise AssertionError(f"No canned response for {key}")
        if isinstance(response, BaseException):
            callback(response, None)
        else:
            callback(None, response)

    @property
    def actions(self):
        return [call["action"] for call in self.calls]


class Recorder:
    """Callback that remembers every ``(error, result)`` it receives."""

    def __init__(self):
        self.calls = []

    def __call__(self, error, result=None):
        self.calls.append((error, result))

    @property
    def error(self):
        assert len(self.calls) == 1, self.calls
        return self.calls[0][0]

    @property
    def result(self):
        assert len(self.calls) == 1, self.calls
        assert self.calls[0][0] is None, self.calls[0][0]
        return self.calls[0][1]


@pytest.fixture()
def transport():
    return FakeTransport()


@pytest.fixture()
def security(transport):
    return SecurityClient(transport)


@pytest.fixture()
def async_security(transport):
    return SecurityClient(transport, promise_support=True)


@pytest.fixture()
def recorder():
    return Recorder()


@pytest.fixture()
def recorder_factory():
    return Recorder
