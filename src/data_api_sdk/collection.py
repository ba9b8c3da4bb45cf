"""
Collections: schemaless JSON documents.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Literal

from .commands import extract_values, identity_key, parse_distinct_key, projection_for
from .exceptions import DataAPIError, TooManyDocumentsToCountError
from .serdes import CollectionSerDes
from .source import BaseSource
from .timeouts import TimeoutArg, TimeoutCategory, Timeouts
from .types import CountResult, UpdateResult

if TYPE_CHECKING:
    from .db import Db

logger = logging.getLogger(__name__)

ReturnDocument = Literal["before", "after"]


class Collection(BaseSource):
    """
    A Data API collection.

    Obtained from ``Db.collection()`` or ``Db.create_collection()``;
    creating one directly doesn't touch the server.

    Example:
        coll = db.collection("users")
        await coll.insert_one({"name": "Alice", "joined": datetime.now(UTC)})
        async for user in coll.find({"name": "Alice"}):
            ...
    """

    def __init__(
        self,
        db: Db,
        name: str,
        serdes: CollectionSerDes,
        keyspace: str | None = None,
        timeouts: Timeouts | None = None,
    ):
        super().__init__(db, name, serdes, keyspace, timeouts)

    async def count_documents(
        self,
        filter: dict[str, Any],
        upper_bound: int,
        *,
        timeout: TimeoutArg = None,
    ) -> int:
        """
        Count the documents matching ``filter``.

        Args:
            filter: Which documents to count
            upper_bound: Largest count the caller is willing to accept

        Returns:
            The exact count

        Raises:
            ValueError: If ``upper_bound`` is not positive
            TooManyDocumentsToCountError: If the count exceeds ``upper_bound``
                or the server's own counting limit
        """
        if upper_bound <= 0:
            raise ValueError(f"upper_bound must be positive, got {upper_bound}")

        command, big_numbers = self._build_command("countDocuments", filter=filter)
        raw = await self._run_command(command, self._single(timeout), big_numbers)
        result = CountResult.from_status(raw.get("status") or {})

        if result.more_data:
            raise TooManyDocumentsToCountError(result.count, hit_server_limit=True)
        if result.count > upper_bound:
            raise TooManyDocumentsToCountError(upper_bound, hit_server_limit=False)
        return result.count

    # ==================== Updates ====================

    async def update_many(
        self,
        filter: dict[str, Any],
        update: dict[str, Any],
        *,
        upsert: bool | None = None,
        timeout: TimeoutArg = None,
    ) -> UpdateResult:
        """
        Update every document matching ``filter``.

        The server updates in batches; the command is resent with the
        returned ``nextPageState`` until none is left, all under one overall
        timeout.

        Args:
            filter: Which documents to update
            update: Update operators, e.g. ``{"$set": {"status": "done"}}``
            upsert: Insert a new document if none matches

        Returns:
            UpdateResult with the counts summed over every batch
        """
        tm = self._timeouts.multipart(TimeoutCategory.GENERAL_METHOD, timeout)
        options = {"upsert": upsert} if upsert is not None else None
        command, big_numbers = self._build_command("updateMany", filter=filter, update=update, options=options)

        matched = modified = 0
        while True:
            raw = await self._run_command(command, tm, big_numbers)
            status = raw.get("status") or {}
            matched += int(status.get("matchedCount", 0))
            modified += int(status.get("modifiedCount", 0))

            next_page_state = status.get("nextPageState")
            if not next_page_state:
                break
            command["updateMany"].setdefault("options", {})["pageState"] = next_page_state
            logger.debug(f"update_many on {self.name}: {modified} modified so far, more to go")

        last = self._update_result(raw)
        return UpdateResult(matched_count=matched, modified_count=modified, upserted_id=last.upserted_id)

    async def replace_one(
        self,
        filter: dict[str, Any],
        replacement: dict[str, Any],
        *,
        sort: dict[str, Any] | None = None,
        upsert: bool | None = None,
        timeout: TimeoutArg = None,
    ) -> UpdateResult:
        """
        Replace the first document matching ``filter`` with ``replacement``.

        Args:
            filter: Which document to replace
            replacement: The new document; its ``_id`` may be omitted
            sort: Which document to pick when several match
            upsert: Insert ``replacement`` if no document matches
        """
        options: dict[str, Any] = {"returnDocument": "before"}
        if upsert is not None:
            options["upsert"] = upsert
        command, big_numbers = self._build_command(
            "findOneAndReplace",
            filter=filter,
            replacement=replacement,
            sort=sort,
            projection={"*": 0},
            options=options,
        )
        raw = await self._run_command(command, self._single(timeout), big_numbers)
        return self._update_result(raw)

    # ==================== Find and modify ====================

    async def find_one_and_update(
        self,
        filter: dict[str, Any],
        update: dict[str, Any],
        *,
        sort: dict[str, Any] | None = None,
        projection: dict[str, Any] | None = None,
        upsert: bool | None = None,
        return_document: ReturnDocument = "before",
        timeout: TimeoutArg = None,
    ) -> dict[str, Any] | None:
        """
        Update the first document matching ``filter`` and return it.

        Args:
            return_document: ``"before"`` for the document as it was,
                ``"after"`` for the updated one

        Returns:
            The document, or None if nothing matched (and nothing was upserted)
        """
        return await self._find_one_and(
            "findOneAndUpdate",
            timeout,
            filter=filter,
            update=update,
            sort=sort,
            projection=projection,
            options=self._find_and_modify_options(return_document, upsert),
        )

    async def find_one_and_replace(
        self,
        filter: dict[str, Any],
        replacement: dict[str, Any],
        *,
        sort: dict[str, Any] | None = None,
        projection: dict[str, Any] | None = None,
        upsert: bool | None = None,
        return_document: ReturnDocument = "before",
        timeout: TimeoutArg = None,
    ) -> dict[str, Any] | None:
        """Replace the first document matching ``filter`` and return it (see ``find_one_and_update``)."""
        return await self._find_one_and(
            "findOneAndReplace",
            timeout,
            filter=filter,
            replacement=replacement,
            sort=sort,
            projection=projection,
            options=self._find_and_modify_options(return_document, upsert),
        )

    async def find_one_and_delete(
        self,
        filter: dict[str, Any],
        *,
        sort: dict[str, Any] | None = None,
        projection: dict[str, Any] | None = None,
        timeout: TimeoutArg = None,
    ) -> dict[str, Any] | None:
        """Delete the first document matching ``filter`` and return it, or None."""
        return await self._find_one_and("findOneAndDelete", timeout, filter=filter, sort=sort, projection=projection)

    @staticmethod
    def _find_and_modify_options(return_document: ReturnDocument, upsert: bool | None) -> dict[str, Any]:
        if return_document not in ("before", "after"):
            raise ValueError(f"return_document must be 'before' or 'after', got {return_document!r}")
        options: dict[str, Any] = {"returnDocument": return_document}
        if upsert is not None:
            options["upsert"] = upsert
        return options

    async def _find_one_and(self, name: str, timeout: TimeoutArg, **parts: Any) -> dict[str, Any] | None:
        command, big_numbers = self._build_command(name, **parts)
        raw = await self._run_command(command, self._single(timeout), big_numbers)
        document = (raw.get("data") or {}).get("document")
        return self._serdes.deserialize(document, raw)

    # ==================== Distinct ====================

    async def distinct(
        self,
        key: str,
        filter: dict[str, Any] | None = None,
        *,
        timeout: TimeoutArg = None,
    ) -> list[Any]:
        """
        Unique values of ``key`` across the documents matching ``filter``.

        Computed client-side by paging through a ``find`` that projects only
        ``key``; every page shares one overall timeout.

        Args:
            key: Dotted path, e.g. ``"tags"`` or ``"address.city"``. Array
                values contribute their elements.
            filter: Which documents to look at

        Returns:
            The distinct values, in order of first appearance

        Raises:
            ValueError: If ``key`` is empty or has an empty segment
        """
        segments = parse_distinct_key(key)
        cursor = self.find(filter, projection={"_id": 0, projection_for(segments): 1}, timeout=timeout)

        seen: set[Any] = set()
        values: list[Any] = []
        for doc in await cursor.to_list():
            for value in extract_values(doc, segments):
                identity = identity_key(value)
                if identity not in seen:
                    seen.add(identity)
                    values.append(value)
        return values

    async def estimated_document_count(self, *, timeout: TimeoutArg = None) -> int:
        """Fast, approximate number of documents in the collection."""
        command, _ = self._build_command("estimatedDocumentCount")
        raw = await self._run_command(command, self._single(timeout))
        return int((raw.get("status") or {}).get("count", 0))

    async def options(self, *, timeout: TimeoutArg = None) -> dict[str, Any]:
        """
        Creation options of this collection (vector, indexing, default id).

        Raises:
            DataAPIError: If the collection doesn't exist
        """
        for description in await self.db.list_collections(keyspace=self.keyspace, timeout=timeout):
            if description.get("name") == self.name:
                options: dict[str, Any] = description.get("options") or {}
                return options
        raise DataAPIError(f"Collection {self.keyspace}.{self.name} not found")

    async def drop(self, *, timeout: TimeoutArg = None) -> None:
        """Drop this collection."""
        await self.db.drop_collection(self.name, keyspace=self.keyspace, timeout=timeout)
