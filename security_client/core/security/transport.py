"""HTTP query transport for the security controller.

Posts query envelopes to the backend on a worker pool and reports the
outcome through a ``(error, response)`` completion callback.
"""
from __future__ import annotations
import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, Dict, Mapping, Optional

import requests

from .exceptions import TransportError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 5
DEFAULT_QUERY_PATH = "/api/_query"

Callback = Callable[[Optional[BaseException], Optional[Dict[str, Any]]], None]


class HttpQueryTransport:
    """Query transport backed by ``requests``.

    Features:
    - Non-blocking ``query``: requests run on a thread pool
    - Centralized error handling (HTTP status and backend ``error`` member)
    - Optional bearer token authentication

    Usage:
        transport = HttpQueryTransport("http://localhost:7512", token="...")
        transport.query({"controller": "security", "action": "getRole"},
                        {"_id": "admin"}, None, on_done)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        query_path: str = DEFAULT_QUERY_PATH,
        timeout: int = REQUEST_TIMEOUT,
        max_workers: int = 4,
    ):
        """Initialize the transport.

        Args:
            base_url: Backend base URL (defaults to SECURITY_API_URL env var)
            token: Bearer token sent with every query
            query_path: Path of the query endpoint
            timeout: Per-request timeout in seconds
            max_workers: Size of the worker pool running requests
        """
        self.base_url = (base_url or os.environ.get("SECURITY_API_URL", "http://localhost:7512")).rstrip("/")
        self.query_path = "/" + query_path.lstrip("/")
        self.timeout = timeout
        self._token: Optional[str] = token or None
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="security-query")

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.query_path}"

    def set_token(self, token: Optional[str]) -> None:
        """Replace the bearer token used by subsequent queries."""
        self._token = token or None

    def query(
        self,
        descriptor: Mapping[str, str],
        body: Mapping[str, Any],
        options: Optional[Mapping[str, Any]] = None,
        callback: Optional[Callback] = None,
    ) -> None:
        """Send a query and return immediately.

        Args:
            descriptor: ``{"controller": ..., "action": ...}``
            body: Request members merged into the envelope (``_id``, ``body``)
            options: Query options; ``metadata`` is forwarded to the backend
            callback: Completion handler receiving ``(error, response)``
        """
        envelope = self._build_envelope(descriptor, body, options)
        action = envelope["action"]
        try:
            future = self._executor.submit(self._send, envelope)
        except RuntimeError:
            # Pool already shut down: report through the same completion path
            future = Future()
            future.set_exception(TransportError(None, "transport is closed", action))
            self._complete(action, callback, future)
            return
        future.add_done_callback(partial(self._complete, action, callback))

    def close(self) -> None:
        """Wait for in-flight queries and release the worker pool."""
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "HttpQueryTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _build_envelope(
        self,
        descriptor: Mapping[str, str],
        body: Mapping[str, Any],
        options: Optional[Mapping[str, Any]],
    ) -> Dict[str, Any]:
        envelope: Dict[str, Any] = {
            "controller": descriptor["controller"],
            "action": descriptor["action"],
        }
        envelope.update(body or {})
        if options and options.get("metadata"):
            envelope["metadata"] = dict(options["metadata"])
        return envelope

    def _send(self, envelope: Dict[str, Any]) -> Dict[str, Any]:
        """Execute the HTTP request for one envelope.

        Raises:
            TransportError: On network failure, HTTP error or backend error
        """
        action = envelope["action"]
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        logger.debug("[transport] POST %s action=%s", self.url, action)
        try:
            resp = requests.post(self.url, json=envelope, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(None, str(exc), action) from exc

        return self._handle_response(resp, action)

    def _handle_response(self, resp: requests.Response, action: str) -> Dict[str, Any]:
        """Centralized error handling for backend responses.

        Args:
            resp: Response object to check
            action: Backend action the response belongs to

        Returns:
            Decoded response payload

        Raises:
            TransportError: If the status or payload indicates an error
        """
        try:
            payload = resp.json()
        except ValueError:
            payload = None

        if not isinstance(payload, dict):
            if resp.status_code >= 400:
                raise TransportError(resp.status_code, resp.text, action)
            raise TransportError(resp.status_code, "response body is not a JSON object", action)

        error = payload.get("error")
        if resp.status_code >= 400 or error:
            if isinstance(error, dict):
                message = error.get("message") or resp.text
                status = error.get("status", payload.get("status", resp.status_code))
            else:
                message = str(error) if error else resp.text
                status = payload.get("status", resp.status_code)
            raise TransportError(status, message, action)

        return payload

    def _complete(self, action: str, callback: Optional[Callback], future: Future) -> None:
        error = future.exception()
        if callback is None:
            if error is not None:
                logger.warning("[transport] %s failed without a callback: %s", action, error)
            return

        if error is not None:
            callback(error, None)
        else:
            callback(None, future.result())
