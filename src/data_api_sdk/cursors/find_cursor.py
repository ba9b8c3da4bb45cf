"""
Cursor over the results of a ``find`` command.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Self

from ..datatypes import DataAPIVector
from ..exceptions import CursorError
from ..serdes import SerDesTarget
from ..timeouts import TimeoutArg, TimeoutCategory, TimeoutManager
from ..types import FindPage
from .abstract_cursor import AbstractCursor, CursorState, Mapping, T

if TYPE_CHECKING:
    from ..source import BaseSource


class FindCursor(AbstractCursor[T]):
    """
    Cursor over the records of a collection or table matching a filter.

    Usually obtained from ``Collection.find()``/``Table.find()``:

        cursor = collection.find({"status": "active"}).sort({"age": -1}).limit(10)
        async for doc in cursor:
            ...

    Args:
        source: Collection or table the cursor reads from
        filter: Query filter (not yet serialized)
        options: ``sort``, ``projection``, ``limit``, ``skip``,
            ``include_similarity`` and ``include_sort_vector``
        mapping: Function applied to each record
        initial_page_state: Continuation token to start from
        timeout: Timeout of each page fetch (or of the whole ``to_list()``)
    """

    def __init__(
        self,
        source: BaseSource,
        filter: dict[str, Any] | None = None,
        options: dict[str, Any] | None = None,
        mapping: Mapping | None = None,
        initial_page_state: str | None = None,
        timeout: TimeoutArg = None,
    ):
        super().__init__(mapping=mapping, initial_page_state=initial_page_state)
        self._source = source
        self._filter = dict(filter or {})
        self._options = dict(options or {})
        self._timeout = timeout

    @property
    def source(self) -> BaseSource:
        return self._source

    # ==================== Builders ====================

    def _copy(
        self,
        filter: dict[str, Any] | None = None,
        mapping: Mapping | None = None,
        initial_page_state: str | None = None,
        **options: Any,
    ) -> FindCursor[Any]:
        return FindCursor(
            self._source,
            filter=self._filter if filter is None else filter,
            options={**self._options, **options},
            mapping=self._mapping if mapping is None else mapping,
            initial_page_state=self._initial_page_state if initial_page_state is None else initial_page_state,
            timeout=self._timeout,
        )

    def clone(self) -> Self:
        return self._copy()  # type: ignore[return-value]

    def filter(self, filter: dict[str, Any] | None) -> FindCursor[T]:
        """Return a copy of this cursor with a new filter."""
        self._require_idle("set a new filter")
        return self._copy(filter=dict(filter or {}))

    def sort(self, sort: dict[str, Any] | None) -> FindCursor[T]:
        """Return a copy of this cursor with a new sort, e.g. ``{"age": -1}``."""
        self._require_idle("set a new sort")
        return self._copy(sort=sort)

    def limit(self, limit: int | None) -> FindCursor[T]:
        """Return a copy of this cursor returning at most ``limit`` records; 0 or None for no limit."""
        self._require_idle("set a new limit")
        return self._copy(limit=limit or None)

    def skip(self, skip: int | None) -> FindCursor[T]:
        """Return a copy of this cursor skipping the first ``skip`` records."""
        self._require_idle("set a new skip")
        return self._copy(skip=skip)

    def project(self, projection: dict[str, Any] | None) -> FindCursor[Any]:
        """
        Return a copy of this cursor with a new projection.

        Raises:
            CursorError: If the cursor is not idle or already has a mapping
        """
        self._require_idle("set a new projection")
        if self._mapping is not None:
            raise CursorError("Cannot set a projection after the cursor has been mapped", self._state)
        return self._copy(projection=projection)

    def include_similarity(self, include_similarity: bool = True) -> FindCursor[Any]:
        """
        Return a copy of this cursor adding ``$similarity`` to each record.

        Raises:
            CursorError: If the cursor is not idle or already has a mapping
        """
        self._require_idle("set include_similarity")
        if self._mapping is not None:
            raise CursorError("Cannot set include_similarity after the cursor has been mapped", self._state)
        return self._copy(include_similarity=include_similarity)

    def include_sort_vector(self, include_sort_vector: bool = True) -> FindCursor[T]:
        """Return a copy of this cursor that also requests the sort vector."""
        self._require_idle("set include_sort_vector")
        return self._copy(include_sort_vector=include_sort_vector)

    def initial_page_state(self, page_state: str) -> FindCursor[T]:
        """
        Return a copy of this cursor starting from a continuation token.

        Raises:
            CursorError: If the cursor is not idle or ``page_state`` is None
        """
        self._require_idle("set an initial page state")
        if page_state is None:
            raise CursorError(
                "Cannot set an initial page state to None; omit the call to start from the first page",
                self._state,
            )
        return self._copy(initial_page_state=page_state)

    def map(self, mapping: Mapping) -> FindCursor[Any]:
        """
        Return a copy of this cursor applying ``mapping`` to each record.

        Mappings compose: ``cursor.map(f).map(g)`` yields ``g(f(doc))``.
        """
        self._require_idle("set a new mapping")
        return self._copy(mapping=self._compose(self._mapping, mapping))

    # ==================== Sort vector ====================

    async def get_sort_vector(self) -> DataAPIVector | None:
        """
        Vector used for a vector sort.

        Fetches the first page if needed. Returns None unless
        ``include_sort_vector`` was set.
        """
        if self._sort_vector is None and self._options.get("include_sort_vector") and self._state == CursorState.IDLE:
            await self._next(peek=True)
        return self._sort_vector

    # ==================== Fetching ====================

    def _build_find_command(self, page_state: str | None) -> tuple[dict[str, Any], bool]:
        options = {
            "limit": self._options.get("limit"),
            "skip": self._options.get("skip"),
            "includeSimilarity": self._options.get("include_similarity"),
            "includeSortVector": self._options.get("include_sort_vector") if self._sort_vector is None else None,
            "pageState": page_state,
        }
        return self._source._build_command(
            "find",
            filter=self._filter,
            sort=self._options.get("sort"),
            projection=self._options.get("projection"),
            options={k: v for k, v in options.items() if v is not None},
        )

    async def _fetch_page(self, page_state: str | None, tm: TimeoutManager | None) -> FindPage[Any]:
        command, big_numbers = self._build_find_command(page_state)
        if tm is None:
            tm = self._source._timeouts.single(TimeoutCategory.GENERAL_METHOD, self._timeout)

        raw = await self._source._run_command(command, tm, big_numbers=big_numbers)

        data = raw.get("data") or {}
        serdes = self._source._serdes
        documents = [serdes.deserialize(doc, raw, SerDesTarget.RECORD) for doc in data.get("documents") or []]

        sort_vector = (raw.get("status") or {}).get("sortVector")
        return FindPage(
            result=documents,
            next_page_state=data.get("nextPageState"),
            sort_vector=DataAPIVector(sort_vector) if sort_vector is not None else None,
        )

    def _multipart_timeout_manager(self) -> TimeoutManager:
        return self._source._timeouts.multipart(TimeoutCategory.GENERAL_METHOD, self._timeout)

    def __repr__(self) -> str:
        return f"FindCursor(source={self._source.name!r}, state={self._state}, consumed={self._consumed})"
