"""
Chunked ``insertMany`` execution.

Documents are split into chunks of ``chunk_size``. Ordered inserts send the
chunks one after the other and stop at the first failure; unordered inserts
run ``concurrency`` workers pulling chunks from a shared index and report
every failed chunk at the end.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from ..exceptions import DataAPIResponseError, InsertManyError
from ..timeouts import TimeoutManager

if TYPE_CHECKING:
    from ..source import BaseSource

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 50
DEFAULT_CONCURRENCY = 8


async def insert_many_ordered(
    source: BaseSource,
    documents: Sequence[Any],
    chunk_size: int,
    timeout_manager: TimeoutManager,
) -> list[Any]:
    """
    Insert documents chunk by chunk, in order.

    Returns:
        Ids of the inserted documents

    Raises:
        InsertManyError: On the first failed chunk, with the ids inserted so far
    """
    inserted_ids: list[Any] = []

    for start in range(0, len(documents), chunk_size):
        ids, error = await _insert_chunk(source, documents[start : start + chunk_size], True, timeout_manager)
        inserted_ids.extend(ids)

        if error is not None:
            logger.warning(f"Ordered insert_many into {source.name} stopped at document {start + len(ids)}")
            raise InsertManyError([error], inserted_ids) from error

    return inserted_ids


async def insert_many_unordered(
    source: BaseSource,
    documents: Sequence[Any],
    concurrency: int,
    chunk_size: int,
    timeout_manager: TimeoutManager,
) -> list[Any]:
    """
    Insert documents with up to ``concurrency`` requests in flight.

    Failed chunks don't stop the other workers. Errors other than
    ``DataAPIResponseError`` (timeouts, connection errors) abort the
    whole call.

    Returns:
        Ids of the inserted documents, in completion order

    Raises:
        InsertManyError: If any chunk failed, with all the ids inserted anyway
    """
    inserted_ids: list[Any] = []
    errors: list[DataAPIResponseError] = []
    next_index = 0

    async def worker() -> None:
        nonlocal next_index
        while next_index < len(documents):
            start = next_index
            next_index += chunk_size

            ids, error = await _insert_chunk(source, documents[start : start + chunk_size], False, timeout_manager)
            inserted_ids.extend(ids)
            if error is not None:
                errors.append(error)

    workers = [asyncio.create_task(worker()) for _ in range(max(1, concurrency))]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        for task in workers:
            task.cancel()
        raise

    if errors:
        logger.warning(f"Unordered insert_many into {source.name}: {len(errors)} chunks failed")
        raise InsertManyError(list(errors), inserted_ids)

    return inserted_ids


async def _insert_chunk(
    source: BaseSource,
    chunk: Sequence[Any],
    ordered: bool,
    timeout_manager: TimeoutManager,
) -> tuple[list[Any], DataAPIResponseError | None]:
    command, big_numbers = source._build_command(
        "insertMany",
        documents=list(chunk),
        options={"ordered": ordered},
    )

    try:
        raw = await source._run_command(command, timeout_manager, big_numbers=big_numbers)
        error = None
    except DataAPIResponseError as e:
        raw = e.raw_response
        error = e

    return source._parse_inserted_ids(raw), error
