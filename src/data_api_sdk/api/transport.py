"""
HTTP transport for the Data API.

The transport only moves bytes: it POSTs a JSON body and returns status,
body and headers. Error interpretation happens in ``DataAPIHttpClient``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol, Self, runtime_checkable

import httpx

from ..exceptions import DataAPIConnectionError

logger = logging.getLogger(__name__)


@dataclass
class TransportResponse:
    """
    Raw HTTP response.

    Attributes:
        status: HTTP status code
        body: Response body as text
        headers: Response headers
    """

    status: int
    body: str
    headers: dict[str, str] = field(default_factory=dict)


@runtime_checkable
class Transport(Protocol):
    """Anything able to POST a body within a timeout."""

    async def send(self, url: str, body: str, headers: dict[str, str], timeout_ms: int) -> TransportResponse:
        """
        Send a request.

        Raises:
            TimeoutError: If no response arrived within ``timeout_ms``
            DataAPIConnectionError: If the server can't be reached
        """
        ...

    async def close(self) -> None: ...


class HttpxTransport:
    """
    Default transport, backed by ``httpx.AsyncClient``.

    The client is created lazily on the first request so the transport can
    be built outside of a running event loop.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, max_connections: int = 100):
        self._client = client
        self._owns_client = client is None
        self._max_connections = max_connections

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(limits=httpx.Limits(max_connections=self._max_connections))
        return self._client

    async def send(self, url: str, body: str, headers: dict[str, str], timeout_ms: int) -> TransportResponse:
        client = self._get_client()
        try:
            response = await client.post(
                url,
                content=body.encode("utf-8"),
                headers=headers,
                timeout=timeout_ms / 1000.0,
            )
        except httpx.TimeoutException as e:
            raise TimeoutError(f"Request to {url} timed out after {timeout_ms}ms") from e
        except httpx.RequestError as e:
            raise DataAPIConnectionError(f"Request failed: {e}") from e

        return TransportResponse(
            status=response.status_code,
            body=response.text,
            headers=dict(response.headers),
        )

    async def close(self) -> None:
        """Close the underlying client, if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            logger.debug("HTTP transport closed")
        self._client = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
