"""
Timeout budgets.

Every command runs under two limits: the per-request timeout and an overall
budget for the method issuing it (which may send several requests, e.g.
``insert_many`` or ``Cursor.to_list``). A ``TimeoutManager`` hands out the
effective timeout for each request and builds the error once it expires.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from enum import StrEnum
from typing import Any, Final, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import DataAPITimeoutError

logger = logging.getLogger(__name__)

EFFECTIVELY_INFINITY: Final = 2**31 - 1
PROVIDED: Final = "provided"


class TimeoutCategory(StrEnum):
    """Named timeout categories."""

    REQUEST = "request_timeout_ms"
    GENERAL_METHOD = "general_method_timeout_ms"
    COLLECTION_ADMIN = "collection_admin_timeout_ms"
    TABLE_ADMIN = "table_admin_timeout_ms"
    DATABASE_ADMIN = "database_admin_timeout_ms"
    KEYSPACE_ADMIN = "keyspace_admin_timeout_ms"


TimedOutCategories: TypeAlias = str | tuple[str, ...]


class TimeoutDescriptor(BaseModel):
    """
    Default timeout of every category, in milliseconds.

    ``0`` disables a category.
    """

    model_config = ConfigDict(frozen=True)

    request_timeout_ms: int = Field(default=10_000, ge=0)
    general_method_timeout_ms: int = Field(default=30_000, ge=0)
    collection_admin_timeout_ms: int = Field(default=60_000, ge=0)
    table_admin_timeout_ms: int = Field(default=30_000, ge=0)
    database_admin_timeout_ms: int = Field(default=600_000, ge=0)
    keyspace_admin_timeout_ms: int = Field(default=30_000, ge=0)

    def merge(self, override: TimeoutOverride | None) -> TimeoutDescriptor:
        """Return a copy with the categories set in ``override`` replaced."""
        if override is None:
            return self
        return self.model_copy(update=override.model_dump(exclude_none=True))


class TimeoutOverride(BaseModel):
    """Partial timeout descriptor; unset categories fall back to the defaults."""

    model_config = ConfigDict(frozen=True)

    request_timeout_ms: int | None = Field(default=None, ge=0)
    general_method_timeout_ms: int | None = Field(default=None, ge=0)
    collection_admin_timeout_ms: int | None = Field(default=None, ge=0)
    table_admin_timeout_ms: int | None = Field(default=None, ge=0)
    database_admin_timeout_ms: int | None = Field(default=None, ge=0)
    keyspace_admin_timeout_ms: int | None = Field(default=None, ge=0)


TimeoutArg: TypeAlias = int | TimeoutOverride | Mapping[str, int] | None


def _parse_override(override: TimeoutArg) -> int | TimeoutOverride | None:
    if override is None or isinstance(override, TimeoutOverride):
        return override
    if isinstance(override, bool):
        raise TypeError("timeout must be an int, a TimeoutOverride or a mapping")
    if isinstance(override, int):
        if override < 0:
            raise ValueError(f"timeout must be >= 0, got {override}")
        return override
    return TimeoutOverride.model_validate(dict(override))


def format_timeout_message(initial: Mapping[str, int], categories: TimedOutCategories) -> str:
    """Build the ``DataAPITimeoutError`` message for the expired categories."""
    if categories == PROVIDED:
        timeout = next(iter(initial.values()))
        what = "The timeout provided via `timeout=<number>` timed out"
    elif isinstance(categories, tuple):
        timeout = initial[categories[0]]
        what = " and ".join(categories) + " simultaneously timed out"
    else:
        timeout = initial[categories]
        what = f"{categories} timed out"
    return f"Command timed out after {timeout}ms ({what})"


class TimeoutManager:
    """
    Hands out per-request timeouts for one method call.

    Args:
        initial: Budget of each involved category, for error reporting
        advance: Returns the timeout for the next request and the
            categories that would be blamed if it expired
    """

    def __init__(self, initial: dict[str, int], advance: Callable[[], tuple[int, TimedOutCategories]]):
        self._initial = initial
        self._advance = advance

    def initial(self) -> dict[str, int]:
        return dict(self._initial)

    def advance(self) -> tuple[int, TimedOutCategories]:
        """
        Timeout for the next request.

        Raises:
            DataAPITimeoutError: If the overall budget is already spent
        """
        return self._advance()

    def timeout_error(self, categories: TimedOutCategories) -> DataAPITimeoutError:
        return DataAPITimeoutError(format_timeout_message(self._initial, categories), self.initial(), categories)


class Timeouts:
    """
    Factory for timeout managers.

    Args:
        base: Default timeouts (client-level options already merged in)
        clock: Monotonic clock in seconds
    """

    def __init__(self, base: TimeoutDescriptor | None = None, clock: Callable[[], float] = time.monotonic):
        self.base = base or TimeoutDescriptor()
        self._clock = clock

    def _get(self, override: TimeoutOverride | None, category: str) -> int:
        value = getattr(override, category, None) if override is not None else None
        if value is None:
            value = getattr(self.base, category)
        return value or EFFECTIVELY_INFINITY

    def single(self, key: TimeoutCategory | str, override: TimeoutArg = None) -> TimeoutManager:
        """
        Manager for a method that sends exactly one request.

        A plain number applies to both the request and the method timeout.
        Otherwise the effective timeout is the smaller of the two.
        """
        key = TimeoutCategory(key)
        parsed = _parse_override(override)

        if isinstance(parsed, int):
            timeout = parsed or EFFECTIVELY_INFINITY
            return self.custom(
                {TimeoutCategory.REQUEST: timeout, key: timeout},
                lambda: (timeout, PROVIDED),
            )

        request = self._get(parsed, TimeoutCategory.REQUEST)
        overall = self._get(parsed, key)
        effective = min(request, overall)

        categories: TimedOutCategories
        if request == overall:
            categories = (TimeoutCategory.REQUEST, key)
        elif request < overall:
            categories = TimeoutCategory.REQUEST
        else:
            categories = key

        return self.custom({TimeoutCategory.REQUEST: request, key: overall}, lambda: (effective, categories))

    def multipart(self, key: TimeoutCategory | str, override: TimeoutArg = None) -> TimeoutManager:
        """
        Manager for a method that may send several requests.

        The overall budget starts on the first ``advance()``. A plain number
        only sets the overall budget.
        """
        key = TimeoutCategory(key)
        parsed = _parse_override(override)

        if isinstance(parsed, int):
            request = self._get(None, TimeoutCategory.REQUEST)
            overall = parsed or EFFECTIVELY_INFINITY
        else:
            request = self._get(parsed, TimeoutCategory.REQUEST)
            overall = self._get(parsed, key)

        initial = {TimeoutCategory.REQUEST: request, key: overall}
        started: float | None = None

        def advance() -> tuple[int, TimedOutCategories]:
            nonlocal started
            now = self._clock()
            if started is None:
                started = now

            remaining = overall - int((now - started) * 1000)

            if remaining <= 0:
                logger.debug(f"Overall {key} budget of {overall}ms exhausted")
                raise manager.timeout_error(key)
            if remaining < request:
                return remaining, key
            if remaining > request:
                return request, TimeoutCategory.REQUEST
            return remaining, (TimeoutCategory.REQUEST, key)

        manager = self.custom(initial, advance)
        return manager

    def with_overrides(self, override: TimeoutOverride | None) -> Timeouts:
        """Return a factory whose defaults have ``override`` applied."""
        if override is None:
            return self
        return Timeouts(self.base.merge(override), clock=self._clock)

    def custom(self, initial: dict[Any, int], advance: Callable[[], tuple[int, TimedOutCategories]]) -> TimeoutManager:
        return TimeoutManager({str(k): v for k, v in initial.items()}, advance)
