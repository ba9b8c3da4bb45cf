"""
Database handle.

A ``Db`` spawns collections and tables and runs the schema (admin) commands
of its keyspace.
"""

from __future__ import annotations

import logging
from typing import Any

from .api import DataAPIHttpClient
from .collection import Collection
from .config import CollectionSerDesConfig, DataAPIClientOptions, TableSerDesConfig, validate_keyspace
from .table import Table
from .timeouts import TimeoutArg, TimeoutCategory, TimeoutOverride, Timeouts

logger = logging.getLogger(__name__)


class Db:
    """
    A Data API database, bound to a default keyspace.

    Obtained from ``DataAPIClient.db()``.

    Args:
        http: HTTP client bound to the database endpoint
        options: Client options (keyspace, timeouts, ser/des defaults)
        keyspace: Keyspace overriding ``options.keyspace``
        timeouts: Timeout factory; built from ``options`` by default
    """

    def __init__(
        self,
        http: DataAPIHttpClient,
        options: DataAPIClientOptions | None = None,
        keyspace: str | None = None,
        timeouts: Timeouts | None = None,
    ):
        self.options = options or DataAPIClientOptions()
        if keyspace is not None:
            self.options = self.options.model_copy(update={"keyspace": validate_keyspace(keyspace)})
        self._http = http
        self._timeouts = timeouts or Timeouts(self.options.timeouts)

    @property
    def keyspace(self) -> str:
        return self.options.keyspace

    @property
    def endpoint(self) -> str:
        return self._http.endpoint

    def use_keyspace(self, keyspace: str) -> None:
        """Change the default keyspace of the sources spawned from now on."""
        self.options = self.options.model_copy(update={"keyspace": validate_keyspace(keyspace)})
        logger.debug(f"Db {self.endpoint} now using keyspace {keyspace}")

    # ==================== Sources ====================

    def collection(
        self,
        name: str,
        *,
        keyspace: str | None = None,
        serdes: CollectionSerDesConfig | None = None,
        timeout_defaults: TimeoutOverride | None = None,
    ) -> Collection:
        """
        Handle to an existing collection. No request is sent.

        Args:
            name: Collection name
            keyspace: Keyspace of the collection (defaults to the database's)
            serdes: Ser/des options, merged over the client's
            timeout_defaults: Timeout overrides for this collection
        """
        config = self.options.collection_serdes.merged_with(serdes)
        return Collection(
            self,
            name,
            config.build(),
            keyspace=keyspace,
            timeouts=self._timeouts.with_overrides(timeout_defaults),
        )

    def table(
        self,
        name: str,
        *,
        keyspace: str | None = None,
        serdes: TableSerDesConfig | None = None,
        timeout_defaults: TimeoutOverride | None = None,
    ) -> Table:
        """
        Handle to an existing table. No request is sent.

        Args:
            name: Table name
            keyspace: Keyspace of the table (defaults to the database's)
            serdes: Ser/des options, merged over the client's
            timeout_defaults: Timeout overrides for this table
        """
        config = self.options.table_serdes.merged_with(serdes)
        return Table(
            self,
            name,
            config.build(),
            keyspace=keyspace,
            timeouts=self._timeouts.with_overrides(timeout_defaults),
        )

    # ==================== Collection admin ====================

    async def create_collection(
        self,
        name: str,
        *,
        definition: dict[str, Any] | None = None,
        keyspace: str | None = None,
        serdes: CollectionSerDesConfig | None = None,
        timeout: TimeoutArg = None,
    ) -> Collection:
        """
        Create a collection and return a handle to it.

        Args:
            name: Collection name
            definition: Creation options, e.g.
                ``{"vector": {"dimension": 3, "metric": "cosine"}}``
            keyspace: Keyspace to create the collection in
            serdes: Ser/des options of the returned handle
        """
        body: dict[str, Any] = {"name": name}
        if definition:
            body["options"] = definition

        await self._admin({"createCollection": body}, TimeoutCategory.COLLECTION_ADMIN, keyspace, timeout)
        logger.info(f"Created collection {keyspace or self.keyspace}.{name}")
        return self.collection(name, keyspace=keyspace, serdes=serdes)

    async def drop_collection(self, name: str, *, keyspace: str | None = None, timeout: TimeoutArg = None) -> None:
        """Drop a collection and all its documents."""
        await self._admin({"deleteCollection": {"name": name}}, TimeoutCategory.COLLECTION_ADMIN, keyspace, timeout)
        logger.info(f"Dropped collection {keyspace or self.keyspace}.{name}")

    async def list_collection_names(self, *, keyspace: str | None = None, timeout: TimeoutArg = None) -> list[str]:
        raw = await self._admin({"findCollections": {}}, TimeoutCategory.COLLECTION_ADMIN, keyspace, timeout)
        names: list[str] = (raw.get("status") or {}).get("collections") or []
        return names

    async def list_collections(
        self, *, keyspace: str | None = None, timeout: TimeoutArg = None
    ) -> list[dict[str, Any]]:
        """Name and creation options of every collection of the keyspace."""
        raw = await self._admin(
            {"findCollections": {"options": {"explain": True}}},
            TimeoutCategory.COLLECTION_ADMIN,
            keyspace,
            timeout,
        )
        descriptions: list[dict[str, Any]] = (raw.get("status") or {}).get("collections") or []
        return descriptions

    # ==================== Table admin ====================

    async def create_table(
        self,
        name: str,
        *,
        definition: dict[str, Any],
        if_not_exists: bool = False,
        keyspace: str | None = None,
        serdes: TableSerDesConfig | None = None,
        timeout: TimeoutArg = None,
    ) -> Table:
        """
        Create a table and return a handle to it.

        Args:
            name: Table name
            definition: ``{"columns": {...}, "primaryKey": ...}``
            if_not_exists: Don't fail if the table already exists
            keyspace: Keyspace to create the table in
            serdes: Ser/des options of the returned handle
        """
        body: dict[str, Any] = {"name": name, "definition": definition}
        if if_not_exists:
            body["options"] = {"ifNotExists": True}

        await self._admin({"createTable": body}, TimeoutCategory.TABLE_ADMIN, keyspace, timeout)
        logger.info(f"Created table {keyspace or self.keyspace}.{name}")
        return self.table(name, keyspace=keyspace, serdes=serdes)

    async def drop_table(
        self,
        name: str,
        *,
        if_exists: bool = False,
        keyspace: str | None = None,
        timeout: TimeoutArg = None,
    ) -> None:
        """Drop a table and all its rows."""
        body: dict[str, Any] = {"name": name}
        if if_exists:
            body["options"] = {"ifExists": True}
        await self._admin({"dropTable": body}, TimeoutCategory.TABLE_ADMIN, keyspace, timeout)
        logger.info(f"Dropped table {keyspace or self.keyspace}.{name}")

    async def list_table_names(self, *, keyspace: str | None = None, timeout: TimeoutArg = None) -> list[str]:
        raw = await self._admin({"listTables": {}}, TimeoutCategory.TABLE_ADMIN, keyspace, timeout)
        names: list[str] = (raw.get("status") or {}).get("tables") or []
        return names

    async def list_tables(self, *, keyspace: str | None = None, timeout: TimeoutArg = None) -> list[dict[str, Any]]:
        """Name and definition of every table of the keyspace."""
        raw = await self._admin(
            {"listTables": {"options": {"explain": True}}},
            TimeoutCategory.TABLE_ADMIN,
            keyspace,
            timeout,
        )
        descriptions: list[dict[str, Any]] = (raw.get("status") or {}).get("tables") or []
        return descriptions

    # ==================== Raw commands ====================

    async def command(
        self,
        command: dict[str, Any],
        *,
        keyspace: str | None = None,
        collection: str | None = None,
        table: str | None = None,
        timeout: TimeoutArg = None,
    ) -> dict[str, Any]:
        """
        Send a raw command and return the raw response.

        The command is sent as is: no serialization, no deserialization.

        Args:
            command: e.g. ``{"findCollections": {}}``
            keyspace: Target keyspace (defaults to the database's)
            collection: Target collection, if any
            table: Target table, if any

        Raises:
            ValueError: If both ``collection`` and ``table`` are given
        """
        if collection and table:
            raise ValueError("Can't target a collection and a table at the same time")

        tm = self._timeouts.single(TimeoutCategory.GENERAL_METHOD, timeout)
        return await self._http.execute_command(command, tm, keyspace=keyspace or self.keyspace, source=collection or table)

    async def _admin(
        self,
        command: dict[str, Any],
        category: TimeoutCategory,
        keyspace: str | None,
        timeout: TimeoutArg,
    ) -> dict[str, Any]:
        tm = self._timeouts.single(category, timeout)
        return await self._http.execute_command(command, tm, keyspace=keyspace or self.keyspace)

    def __repr__(self) -> str:
        return f"Db(endpoint={self.endpoint!r}, keyspace={self.keyspace!r})"
