"""
Data API HTTP client.

Sends one command per request, applies the timeout budget, emits command
events and turns error responses into exceptions.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from ..events import (
    CommandEventEmitter,
    CommandFailedEvent,
    CommandStartedEvent,
    CommandSucceededEvent,
    CommandWarningsEvent,
    log_command,
)
from ..exceptions import DataAPIError, DataAPIHttpError, DataAPIResponseError
from ..protocol import json_codec
from ..timeouts import TimeoutManager
from ..version import __version__
from .transport import Transport

logger = logging.getLogger(__name__)

DEFAULT_API_PATH = "api/json/v1"


class DataAPIHttpClient:
    """
    Executes Data API commands over a transport.

    Args:
        endpoint: Base URL of the database (e.g. ``"https://db.example.com"``)
        token: Application token, sent in the ``Token`` header
        transport: The transport to send requests with
        emitter: Event emitter receiving the command events
        api_path: Path of the JSON API below the endpoint
        extra_headers: Headers added to every request
        log_commands: Also log every event's ``format()`` at INFO level
    """

    def __init__(
        self,
        endpoint: str,
        token: str | None,
        transport: Transport,
        emitter: CommandEventEmitter | None = None,
        api_path: str = DEFAULT_API_PATH,
        extra_headers: dict[str, str] | None = None,
        log_commands: bool = False,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.api_path = api_path.strip("/")
        self.transport = transport
        self.emitter = emitter or CommandEventEmitter()
        self.log_commands = log_commands
        self._token = token
        self._extra_headers = dict(extra_headers or {})

    @property
    def headers(self) -> dict[str, str]:
        """Build request headers."""
        h = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"data-api-sdk/{__version__}",
            **self._extra_headers,
        }
        if self._token:
            h["Token"] = self._token
        return h

    def url_for(self, keyspace: str | None = None, source: str | None = None) -> str:
        """URL of the API, a keyspace, or a collection/table within it."""
        parts = [self.endpoint, self.api_path]
        if keyspace:
            parts.append(keyspace)
            if source:
                parts.append(source)
        return "/".join(parts)

    async def execute_command(
        self,
        command: dict[str, Any],
        timeout_manager: TimeoutManager,
        keyspace: str | None = None,
        source: str | None = None,
        big_numbers: bool = False,
        parse_big_numbers: bool = False,
    ) -> dict[str, Any]:
        """
        Send a command and return the raw response.

        Args:
            command: The (serialized) command, e.g. ``{"findOne": {...}}``
            timeout_manager: Budget of the calling method
            keyspace: Target keyspace
            source: Target collection or table
            big_numbers: The command contains ``Decimal`` values to write exactly
            parse_big_numbers: Parse non-integer numbers of the response as ``Decimal``

        Returns:
            The decoded response

        Raises:
            DataAPITimeoutError: If the request or the method budget timed out
            DataAPIConnectionError: If the transport failed
            DataAPIHttpError: If the server answered with an HTTP error
            DataAPIResponseError: If the response carries an ``errors`` array
        """
        url = self.url_for(keyspace, source)
        body = json_codec.dumps(command, big_numbers=big_numbers)
        timeout_ms, categories = timeout_manager.advance()

        await self._emit(
            CommandStartedEvent(command, url, keyspace, source, timeout=timeout_manager.initial()),
            logging.DEBUG,
        )
        started = time.perf_counter()

        try:
            try:
                response = await self.transport.send(url, body, self.headers, timeout_ms)
            except TimeoutError:
                raise timeout_manager.timeout_error(categories) from None

            if response.status >= 400 and response.status != 401:
                raise DataAPIHttpError(response.status, response.body)

            try:
                data: dict[str, Any] = json_codec.loads(response.body, big_numbers=parse_big_numbers) if response.body else {}
            except json.JSONDecodeError:
                raise DataAPIHttpError(response.status, response.body) from None

            if response.status == 401 and not data.get("errors"):
                raise DataAPIHttpError(response.status, response.body)

            warnings = (data.get("status") or {}).get("warnings")
            if warnings:
                await self._emit(CommandWarningsEvent(command, url, keyspace, source, warnings=warnings), logging.WARNING)

            if data.get("errors"):
                raise DataAPIResponseError(command, data)

        except DataAPIError as e:
            duration_ms = (time.perf_counter() - started) * 1000.0
            log_command(next(iter(command), ""), source, duration_ms, succeeded=False)
            await self._emit(
                CommandFailedEvent(command, url, keyspace, source, duration_ms=duration_ms, error=e),
                logging.WARNING,
            )
            raise

        duration_ms = (time.perf_counter() - started) * 1000.0
        log_command(next(iter(command), ""), source, duration_ms, succeeded=True)
        await self._emit(
            CommandSucceededEvent(command, url, keyspace, source, duration_ms=duration_ms, response=data),
            logging.DEBUG,
        )
        return data

    async def _emit(self, event: Any, level: int) -> None:
        if self.log_commands:
            level = max(level, logging.INFO)
        if logger.isEnabledFor(level):
            logger.log(level, event.format())
        await self.emitter.emit(event)

    async def close(self) -> None:
        await self.transport.close()
