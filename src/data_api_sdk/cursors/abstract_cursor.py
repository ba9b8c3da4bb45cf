"""
Base cursor: state machine, buffering and consumption.

A cursor lazily fetches pages from the Data API, buffers the records of the
current page and hands them out one by one. Subclasses only implement how a
page is fetched and how a copy is made.
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import AsyncGenerator, Awaitable, Callable
from enum import StrEnum
from typing import Any, Generic, Self, TypeVar

from ..exceptions import CursorError
from ..timeouts import TimeoutManager
from ..types import FindPage

logger = logging.getLogger(__name__)

T = TypeVar("T")

Mapping = Callable[[Any], Any]
Consumer = Callable[[Any], "bool | None | Awaitable[bool | None]"]

_END = object()


class CursorState(StrEnum):
    """Lifecycle of a cursor: ``idle -> started -> closed``, ``rewind()`` goes back to ``idle``."""

    IDLE = "idle"
    STARTED = "started"
    CLOSED = "closed"


class AbstractCursor(ABC, Generic[T]):
    """
    Lazily paginated iterator over server-delivered records.

    Records are pulled with ``next()``/``has_next()`` or pushed with
    ``async for``, ``for_each()`` and ``to_list()``. Configuration methods
    never modify a cursor: they return an idle copy.

    Leaving an ``async for`` loop early only closes the cursor once the
    loop's generator is finalized; iterate inside ``async with cursor:`` to
    close it as soon as the block exits::

        async with coll.find({}) as cursor:
            async for doc in cursor:
                if doc["done"]:
                    break

    Args:
        mapping: Function applied to each record before it is handed out
        initial_page_state: Continuation token to start from
    """

    def __init__(self, mapping: Mapping | None = None, initial_page_state: str | None = None):
        self._mapping = mapping
        self._initial_page_state = initial_page_state

        self._state = CursorState.IDLE
        self._buffer: deque[Any] = deque()
        self._consumed = 0
        self._next_page_state = initial_page_state
        self._is_next_page = True
        self._sort_vector: Any = None

    # ==================== State ====================

    @property
    def state(self) -> CursorState:
        return self._state

    def buffered(self) -> int:
        """Number of fetched records not yet handed out."""
        return len(self._buffer)

    def consumed(self) -> int:
        """Number of records handed out since creation or the last ``rewind()``."""
        return self._consumed

    def consume_buffer(self, max: int | None = None) -> list[Any]:
        """
        Take records straight out of the buffer, without fetching or mapping.

        Args:
            max: Maximum number of records to take; all of them by default

        Returns:
            The raw (deserialized but unmapped) records
        """
        count = len(self._buffer) if max is None else min(max, len(self._buffer))
        taken = [self._buffer.popleft() for _ in range(count)]
        self._consumed += len(taken)
        return taken

    def close(self) -> None:
        """Close the cursor and drop its buffer. Closing twice is harmless."""
        if self._state != CursorState.CLOSED:
            logger.debug(f"Closing {type(self).__name__} after {self._consumed} records")
        self._state = CursorState.CLOSED
        self._buffer.clear()
        self._is_next_page = True

    def rewind(self) -> None:
        """Reset the cursor to its initial idle state; the next read starts over."""
        self._state = CursorState.IDLE
        self._buffer.clear()
        self._consumed = 0
        self._next_page_state = self._initial_page_state
        self._is_next_page = True
        self._sort_vector = None

    @abstractmethod
    def clone(self) -> Self:
        """Return an idle copy of this cursor with the same configuration."""
        ...

    # ==================== Pull interface ====================

    async def next(self) -> T | None:
        """
        Return the next record, fetching a page if needed.

        Returns:
            The next (mapped) record, or None once the cursor is exhausted
        """
        doc = await self._next(peek=False)
        return None if doc is _END else doc

    async def has_next(self) -> bool:
        """Whether another record is available. May fetch a page but never consumes."""
        return await self._next(peek=True) is not _END

    # ==================== Push interface ====================

    async def __aiter__(self) -> AsyncGenerator[T, None]:
        if self._state == CursorState.CLOSED:
            return
        try:
            while (doc := await self._next(peek=False)) is not _END:
                yield doc
        finally:
            self.close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Close the cursor on leaving ``async with``, including after a ``break``."""
        self.close()

    async def for_each(self, consumer: Consumer) -> None:
        """
        Feed every remaining record to ``consumer``.

        Iteration stops early when the consumer returns ``False``. Async
        consumers are awaited. The cursor is closed afterwards in any case.
        """
        if self._state == CursorState.CLOSED:
            return
        try:
            while (doc := await self._next(peek=False)) is not _END:
                result = consumer(doc)
                if inspect.isawaitable(result):
                    result = await result
                if result is False:
                    break
        finally:
            self.close()

    async def to_list(self) -> list[T]:
        """
        Drain the cursor into a list.

        All page fetches share one overall method timeout budget.

        Raises:
            DataAPITimeoutError: If the overall budget runs out while draining
        """
        if self._state == CursorState.CLOSED:
            return []
        tm = self._multipart_timeout_manager()
        docs: list[T] = []
        try:
            while (doc := await self._next(peek=False, tm=tm)) is not _END:
                docs.append(doc)
        finally:
            self.close()
        return docs

    # ==================== Pages ====================

    async def fetch_next_page(self) -> FindPage[T]:
        """
        Fetch the next page directly, exposing its continuation token.

        Raises:
            CursorError: If records are still buffered or no page is left
        """
        if self._buffer:
            raise CursorError("Cannot fetch next page when the current page is not empty", self._state)
        if self._state == CursorState.CLOSED or not self._is_next_page:
            raise CursorError("Cannot fetch next page: the cursor is exhausted", self._state)

        try:
            self._state = CursorState.STARTED
            page = await self._fetch_and_track(None)

            self._consumed += len(page.result)
            result = [self._mapping(doc) for doc in page.result] if self._mapping else list(page.result)
        except Exception:
            self.close()
            raise
        return FindPage(result=result, next_page_state=page.next_page_state, sort_vector=page.sort_vector)

    # ==================== Internals ====================

    async def _next(self, peek: bool, tm: TimeoutManager | None = None) -> Any:
        if self._state == CursorState.CLOSED:
            return _END

        try:
            self._state = CursorState.STARTED

            while not self._buffer:
                if not self._is_next_page:
                    self.close()
                    return _END
                page = await self._fetch_and_track(tm)
                self._buffer.extend(page.result)

            if peek:
                return True

            doc = self._buffer.popleft()
            self._consumed += 1
            return self._mapping(doc) if self._mapping else doc
        except Exception:
            self.close()
            raise

    async def _fetch_and_track(self, tm: TimeoutManager | None) -> FindPage[Any]:
        page = await self._fetch_page(self._next_page_state, tm)
        self._next_page_state = page.next_page_state
        self._is_next_page = page.next_page_state is not None
        if page.sort_vector is not None:
            self._sort_vector = page.sort_vector
        logger.debug(
            f"{type(self).__name__} fetched {len(page.result)} records"
            f" (more pages: {self._is_next_page})"
        )
        return page

    def _require_idle(self, action: str) -> None:
        if self._state != CursorState.IDLE:
            raise CursorError(f"Cannot {action} on a {self._state} cursor; rewind() or clone() it first", self._state)

    @staticmethod
    def _compose(old: Mapping | None, new: Mapping) -> Mapping:
        if old is None:
            return new
        return lambda doc: new(old(doc))

    @abstractmethod
    async def _fetch_page(self, page_state: str | None, tm: TimeoutManager | None) -> FindPage[Any]:
        """
        Fetch one page of raw (deserialized, unmapped) records.

        Args:
            page_state: Continuation token, None for the first page
            tm: Timeout manager of an enclosing multi-page call, if any
        """
        ...

    @abstractmethod
    def _multipart_timeout_manager(self) -> TimeoutManager: ...
