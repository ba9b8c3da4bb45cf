"""
Data API client: entry point of the SDK.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from typing import Any, Self

from .api import DataAPIHttpClient, HttpxTransport, Transport
from .config import DataAPIClientOptions
from .db import Db
from .events import CommandEventEmitter, EventHandler
from .timeouts import Timeouts

logger = logging.getLogger(__name__)


class DataAPIClient:
    """
    Spawns databases sharing one transport, one set of options and one
    command event emitter.

    Example:
        async with DataAPIClient("AstraCS:...") as client:
            db = client.db("https://<db-id>-<region>.apps.astra.datastax.com")

            @client.on("commandFailed")
            def report(event):
                print(event.format())

            users = db.collection("users")
            await users.insert_one({"name": "Alice"})

    Args:
        token: Application token sent with every request
        options: Client options, as a model or a plain mapping
        transport: Transport to send requests with; an ``httpx`` one by default
        clock: Monotonic clock used by the timeout budgets, in seconds
    """

    def __init__(
        self,
        token: str | None = None,
        options: DataAPIClientOptions | Mapping[str, Any] | None = None,
        transport: Transport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if options is None or isinstance(options, DataAPIClientOptions):
            self.options = options or DataAPIClientOptions()
        else:
            self.options = DataAPIClientOptions.model_validate(dict(options))

        self.emitter = CommandEventEmitter()
        self._token = token
        self._transport = transport or HttpxTransport()
        self._timeouts = Timeouts(self.options.timeouts, clock=clock)

    def db(self, endpoint: str, *, keyspace: str | None = None, token: str | None = None) -> Db:
        """
        Handle to the database at ``endpoint``. No request is sent.

        Args:
            endpoint: Base URL of the database
            keyspace: Default keyspace, overriding the client's
            token: Token overriding the client's
        """
        http = DataAPIHttpClient(
            endpoint,
            token or self._token,
            self._transport,
            emitter=self.emitter,
            api_path=self.options.api_path,
            extra_headers=self.options.extra_headers,
            log_commands=self.options.log_commands,
        )
        logger.debug(f"Spawned Db for {http.endpoint}")
        return Db(http, self.options, keyspace=keyspace, timeouts=self._timeouts)

    def on(self, event_name: str, handler: EventHandler | None = None) -> Any:
        """Register a command event handler; usable as a decorator. See ``CommandEventEmitter.on``."""
        return self.emitter.on(event_name, handler)

    def off(self, event_name: str, handler: EventHandler) -> bool:
        return self.emitter.off(event_name, handler)

    async def close(self) -> None:
        """Close the transport shared by every spawned database."""
        await self._transport.close()
        logger.debug("DataAPIClient closed")

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()
