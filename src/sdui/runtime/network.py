"""
Async HTTP client used by the callRestApi action.

Wraps httpx.AsyncClient. Transport failures raise NetworkError; any HTTP
status, including 4xx/5xx, is a normal NetworkResponse.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from sdui.errors import NetworkError
from sdui.specs.api import ApiRequest, BodyType, HttpMethod

logger = logging.getLogger(__name__)


class NetworkResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    status_code: int
    body: Any = None
    headers: dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def to_scope(self) -> dict[str, Any]:
        """The shape bound into sub-flow scopes."""
        return {"statusCode": self.status_code, "body": self.body, "headers": dict(self.headers)}


class NetworkClient:
    """
    Async client for REST resources.

    Example:
        client = NetworkClient(base_url="https://api.example.com")
        response = await client.request("GET", "/users/1")
        await client.aclose()
    """

    def __init__(
        self,
        base_url: str | None = None,
        default_headers: Mapping[str, str] | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.default_headers = dict(default_headers or {})
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url or "",
                headers=self.default_headers,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def request(
        self,
        method: str | HttpMethod,
        url: str,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        body_type: BodyType = BodyType.JSON,
    ) -> NetworkResponse:
        """Send one request.

        Raises:
            NetworkError: connection, timeout, protocol or URL failure.
        """
        method = HttpMethod(str(method).upper())
        kwargs = _body_kwargs(method, body, body_type)
        logger.debug("%s %s", method.value, url)
        try:
            response = await self._get_client().request(
                method.value, url, headers=dict(headers or {}), **kwargs
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise NetworkError(f"{method.value} {url} failed: {e}", url=url) from e

        return NetworkResponse(
            status_code=response.status_code,
            body=_decode(response),
            headers=dict(response.headers),
        )

    async def send(self, request: ApiRequest) -> NetworkResponse:
        return await self.request(
            request.method, request.url, request.headers, request.body, request.body_type
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _body_kwargs(method: HttpMethod, body: Any, body_type: BodyType) -> dict[str, Any]:
    if body is None:
        return {}
    if method == HttpMethod.GET:
        return {"params": body} if isinstance(body, Mapping) else {}
    if body_type == BodyType.FORM and isinstance(body, Mapping):
        return {"data": {k: "" if v is None else str(v) for k, v in body.items()}}
    if body_type == BodyType.MULTIPART and isinstance(body, Mapping):
        return {"files": {k: (None, "" if v is None else str(v)) for k, v in body.items()}}
    return {"json": body}


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    if "json" in response.headers.get("content-type", ""):
        try:
            return response.json()
        except ValueError:
            logger.debug("Response claimed JSON but did not parse")
    return response.text
