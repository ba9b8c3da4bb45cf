"""
Base class of collections and tables.

Holds what both kinds of data source share: command building through the
source's serializer, command execution, and the record-level CRUD
operations.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from .commands import DEFAULT_CHUNK_SIZE, DEFAULT_CONCURRENCY, insert_many_ordered, insert_many_unordered
from .cursors import FindCursor
from .exceptions import ConfigurationError
from .serdes import SerDes, SerDesTarget
from .timeouts import TimeoutArg, TimeoutCategory, TimeoutManager, Timeouts
from .types import DeleteResult, InsertManyResult, InsertOneResult, UpdateResult

if TYPE_CHECKING:
    from .db import Db

logger = logging.getLogger(__name__)

_PART_TARGETS = {
    "filter": SerDesTarget.FILTER,
    "sort": SerDesTarget.SORT,
    "projection": SerDesTarget.PROJECTION,
    "document": SerDesTarget.RECORD,
    "replacement": SerDesTarget.RECORD,
}


class BaseSource:
    """
    A named collection or table of a database.

    Args:
        db: The database the source belongs to
        name: Collection or table name
        serdes: Serializer for records, filters and sorts
        keyspace: Keyspace of the source (defaults to the database's)
        timeouts: Timeout factory of the source
    """

    def __init__(
        self,
        db: Db,
        name: str,
        serdes: SerDes,
        keyspace: str | None = None,
        timeouts: Timeouts | None = None,
    ):
        if not name:
            raise ConfigurationError(f"{type(self).__name__} name must be a non-empty string")
        self.db = db
        self.name = name
        self.keyspace = keyspace or db.keyspace
        self._serdes = serdes
        self._http = db._http
        self._timeouts = timeouts or db._timeouts

    # ==================== Commands ====================

    def _build_command(self, name: str, **parts: Any) -> tuple[dict[str, Any], bool]:
        """
        Build ``{name: {...}}`` from unserialized parts.

        ``filter``, ``sort``, ``projection``, ``document``, ``replacement``,
        ``documents`` and ``update`` go through the serializer; anything else is sent as is.
        None parts are dropped.

        Returns:
            Tuple of (command, whether big numbers are present)
        """
        body: dict[str, Any] = {}
        big_numbers = False

        for key, value in parts.items():
            if value is None:
                continue

            if key in _PART_TARGETS:
                value, big = self._serdes.serialize(value, _PART_TARGETS[key])
                big_numbers |= big
            elif key == "documents":
                serialized = []
                for doc in value:
                    doc, big = self._serdes.serialize(doc)
                    big_numbers |= big
                    serialized.append(doc)
                value = serialized
            elif key == "update":
                # The operator keys stay as is; their fields are records
                update = {}
                for op, fields in value.items():
                    update[op], big = self._serdes.serialize(fields)
                    big_numbers |= big
                value = update

            body[key] = value

        return {name: body}, big_numbers

    async def _run_command(
        self,
        command: dict[str, Any],
        timeout_manager: TimeoutManager,
        big_numbers: bool = False,
    ) -> dict[str, Any]:
        return await self._http.execute_command(
            command,
            timeout_manager,
            keyspace=self.keyspace,
            source=self.name,
            big_numbers=big_numbers,
            parse_big_numbers=self._serdes.big_numbers_enabled,
        )

    def _parse_inserted_ids(self, raw: dict[str, Any]) -> list[Any]:
        ids = (raw.get("status") or {}).get("insertedIds") or []
        return [self._serdes.deserialize(id_, raw, SerDesTarget.INSERTED_ID) for id_ in ids]

    def _update_result(self, raw: dict[str, Any]) -> UpdateResult:
        status = raw.get("status") or {}
        upserted_id = status.get("upsertedId")
        if upserted_id is not None:
            upserted_id = self._serdes.deserialize(upserted_id, raw, SerDesTarget.INSERTED_ID)
        return UpdateResult.from_status(status, upserted_id)

    def _single(self, timeout: TimeoutArg) -> TimeoutManager:
        return self._timeouts.single(TimeoutCategory.GENERAL_METHOD, timeout)

    # ==================== Inserts ====================

    async def insert_one(self, document: dict[str, Any], *, timeout: TimeoutArg = None) -> InsertOneResult:
        """
        Insert a single record.

        Args:
            document: The record to insert
            timeout: Timeout override, in milliseconds or per category

        Returns:
            InsertOneResult with the id (or primary key) of the new record
        """
        command, big_numbers = self._build_command("insertOne", document=document)
        raw = await self._run_command(command, self._single(timeout), big_numbers)
        ids = self._parse_inserted_ids(raw)
        return InsertOneResult(inserted_id=ids[0] if ids else None)

    async def insert_many(
        self,
        documents: Sequence[dict[str, Any]],
        *,
        ordered: bool = False,
        chunk_size: int | None = None,
        concurrency: int | None = None,
        timeout: TimeoutArg = None,
    ) -> InsertManyResult:
        """
        Insert many records, ``chunk_size`` per request.

        Args:
            documents: The records to insert
            ordered: Insert strictly in order and stop at the first failure
            chunk_size: Records per request (default 50)
            concurrency: Requests in flight for unordered inserts (default 8)
            timeout: Overall timeout of the whole call

        Raises:
            ConfigurationError: If ``concurrency`` is set for an ordered insert
            InsertManyError: If some records could not be inserted
        """
        if ordered and concurrency is not None:
            raise ConfigurationError("concurrency can't be set for ordered inserts")

        chunk_size = chunk_size or DEFAULT_CHUNK_SIZE
        if chunk_size < 1:
            raise ConfigurationError(f"chunk_size must be positive, got {chunk_size}")

        tm = self._timeouts.multipart(TimeoutCategory.GENERAL_METHOD, timeout)

        if ordered:
            ids = await insert_many_ordered(self, list(documents), chunk_size, tm)
        else:
            ids = await insert_many_unordered(
                self, list(documents), concurrency or DEFAULT_CONCURRENCY, chunk_size, tm
            )
        return InsertManyResult(inserted_ids=ids)

    # ==================== Reads ====================

    async def find_one(
        self,
        filter: dict[str, Any] | None = None,
        *,
        sort: dict[str, Any] | None = None,
        projection: dict[str, Any] | None = None,
        include_similarity: bool | None = None,
        timeout: TimeoutArg = None,
    ) -> dict[str, Any] | None:
        """
        Return the first record matching ``filter``, or None.
        """
        options = {"includeSimilarity": include_similarity} if include_similarity is not None else None
        command, big_numbers = self._build_command(
            "findOne",
            filter=filter or {},
            sort=sort,
            projection=projection,
            options=options,
        )
        raw = await self._run_command(command, self._single(timeout), big_numbers)
        document = (raw.get("data") or {}).get("document")
        return self._serdes.deserialize(document, raw)

    def find(
        self,
        filter: dict[str, Any] | None = None,
        *,
        sort: dict[str, Any] | None = None,
        projection: dict[str, Any] | None = None,
        limit: int | None = None,
        skip: int | None = None,
        include_similarity: bool | None = None,
        include_sort_vector: bool | None = None,
        timeout: TimeoutArg = None,
    ) -> FindCursor[dict[str, Any]]:
        """
        Return a lazy cursor over the records matching ``filter``.

        No request is sent until the cursor is read.
        """
        options = {
            "sort": sort,
            "projection": projection,
            "limit": limit or None,
            "skip": skip,
            "include_similarity": include_similarity,
            "include_sort_vector": include_sort_vector,
        }
        return FindCursor(
            self,
            filter=filter,
            options={k: v for k, v in options.items() if v is not None},
            timeout=timeout,
        )

    # ==================== Writes ====================

    async def update_one(
        self,
        filter: dict[str, Any],
        update: dict[str, Any],
        *,
        sort: dict[str, Any] | None = None,
        upsert: bool | None = None,
        timeout: TimeoutArg = None,
    ) -> UpdateResult:
        """
        Update the first record matching ``filter``.

        Args:
            filter: Which record to update
            update: Update operators, e.g. ``{"$set": {"status": "done"}}``
            sort: Which record to pick when several match
            upsert: Insert a new record if none matches
        """
        options = {"upsert": upsert} if upsert is not None else None
        command, big_numbers = self._build_command(
            "updateOne",
            filter=filter,
            update=update,
            sort=sort,
            options=options,
        )
        raw = await self._run_command(command, self._single(timeout), big_numbers)
        return self._update_result(raw)

    async def delete_one(
        self,
        filter: dict[str, Any],
        *,
        sort: dict[str, Any] | None = None,
        timeout: TimeoutArg = None,
    ) -> DeleteResult:
        """Delete the first record matching ``filter``."""
        command, big_numbers = self._build_command("deleteOne", filter=filter, sort=sort)
        raw = await self._run_command(command, self._single(timeout), big_numbers)
        return DeleteResult.from_status(raw.get("status") or {})

    async def delete_many(self, filter: dict[str, Any], *, timeout: TimeoutArg = None) -> DeleteResult:
        """
        Delete every record matching ``filter``.

        The server deletes in batches; the command is repeated while it
        reports ``moreData``, all under one overall timeout.
        """
        tm = self._timeouts.multipart(TimeoutCategory.GENERAL_METHOD, timeout)
        command, big_numbers = self._build_command("deleteMany", filter=filter)

        deleted = 0
        while True:
            raw = await self._run_command(command, tm, big_numbers)
            status = raw.get("status") or {}
            count = int(status.get("deletedCount", 0))
            if count < 0:
                return DeleteResult(deleted_count=count)
            deleted += count
            if not status.get("moreData"):
                return DeleteResult(deleted_count=deleted)
            logger.debug(f"delete_many on {self.name}: {deleted} deleted so far, more to go")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, keyspace={self.keyspace!r})"
