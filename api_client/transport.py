"""HTTP transport for the collection API.

The credential travels with each request; there is no shared default header.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from http.client import HTTPException
from typing import Any, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from shared.errors import TransientNetworkError


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ApiRequest:
    method: str
    path: str
    query: tuple[tuple[str, str], ...] = ()
    body: dict[str, Any] | None = None
    token: str | None = None

    def url_path(self) -> str:
        """Return path plus encoded query string."""
        if not self.query:
            return self.path
        return f"{self.path}?{urlencode(self.query)}"

    def headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.body is not None:
            headers["Content-Type"] = "application/json"
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers


@dataclass(slots=True)
class ApiResponse:
    status: int
    payload: Any = field(default=None)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(Protocol):
    async def send(self, request: ApiRequest) -> ApiResponse:
        """Send one request and return the decoded response, even for error statuses."""


def _decode_body(raw: bytes, status: int) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        if 200 <= status < 300:
            raise TransientNetworkError(
                "Unexpected response from server", status_code=status
            ) from exc
        return None


class UrllibTransport:
    """Blocking urllib calls run in a worker thread so the event loop stays free."""

    def __init__(self, base_url: str, *, timeout: float = 30.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def send(self, request: ApiRequest) -> ApiResponse:
        return await asyncio.to_thread(self._send_blocking, request)

    def _send_blocking(self, request: ApiRequest) -> ApiResponse:
        data = None
        if request.body is not None:
            data = json.dumps(request.body).encode("utf-8")

        http_request = Request(
            url=f"{self.base_url}{request.url_path()}",
            data=data,
            headers=request.headers(),
            method=request.method,
        )
        try:
            with urlopen(http_request, timeout=self.timeout) as response:  # noqa: S310 - URL comes from trusted env config
                return ApiResponse(
                    status=response.status,
                    payload=_decode_body(response.read(), response.status),
                )
        except HTTPError as exc:
            body = exc.read() if exc.fp is not None else b""
            return ApiResponse(status=exc.code, payload=_decode_body(body, exc.code))
        except (URLError, HTTPException, OSError) as exc:
            logger.warning("collect_api_unreachable method=%s path=%s", request.method, request.path)
            raise TransientNetworkError("Unable to reach the server") from exc
