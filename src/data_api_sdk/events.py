"""
Command monitoring.

Every command sent to the Data API emits ``commandStarted`` followed by
either ``commandSucceeded`` or ``commandFailed``, plus ``commandWarnings``
when the response carries warnings. Listen with ``CommandEventEmitter.on``.

``CommandLogger`` captures the commands issued inside an ``async with``
block with their durations, for profiling::

    async with CommandLogger() as log:
        await collection.insert_one({"name": "Ada"})
        await collection.find_one({"name": "Ada"})

    print(f"Total: {log.total_commands} commands, {log.total_ms:.1f}ms")
"""

from __future__ import annotations

import inspect
import logging
import threading
import time
from collections.abc import Awaitable, Callable
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, ClassVar, Self

logger = logging.getLogger(__name__)

DEFAULT_KEYSPACE = "default_keyspace"

EventHandler = Callable[["CommandEvent"], Awaitable[None] | None]

_active_logger: ContextVar[CommandLogger | None] = ContextVar("_active_command_logger", default=None)


@dataclass
class CommandEvent:
    """
    Base class of command events.

    Attributes:
        command: The command body that was sent
        url: The endpoint the command was sent to
        keyspace: Target keyspace
        source: Target collection or table, if any
    """

    event_name: ClassVar[str] = ""

    command: dict[str, Any]
    url: str
    keyspace: str | None = None
    source: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def command_name(self) -> str:
        return next(iter(self.command), "")

    def _desc(self) -> str:
        target = f"{self.keyspace or DEFAULT_KEYSPACE}{f'.{self.source}' if self.source else ''}"
        return f"({target}) {self.command_name}"

    def format(self) -> str:
        return f"{self.timestamp.isoformat()} [{self.event_name}]: {self._desc()}"


@dataclass
class CommandStartedEvent(CommandEvent):
    event_name: ClassVar[str] = "commandStarted"

    timeout: dict[str, int] = field(default_factory=dict)


@dataclass
class CommandSucceededEvent(CommandEvent):
    event_name: ClassVar[str] = "commandSucceeded"

    duration_ms: float = 0.0
    response: dict[str, Any] = field(default_factory=dict)

    def format(self) -> str:
        return f"{super().format()} (took {int(self.duration_ms)}ms)"


@dataclass
class CommandFailedEvent(CommandEvent):
    event_name: ClassVar[str] = "commandFailed"

    duration_ms: float = 0.0
    error: BaseException | None = None

    def format(self) -> str:
        return f"{super().format()} (took {int(self.duration_ms)}ms) - '{self.error}'"


@dataclass
class CommandWarningsEvent(CommandEvent):
    event_name: ClassVar[str] = "commandWarnings"

    warnings: list[dict[str, Any]] = field(default_factory=list)

    def format(self) -> str:
        joined = ", ".join(str(w.get("message", w)) for w in self.warnings)
        return f"{super().format()} '{joined}'"


EVENT_NAMES = tuple(
    cls.event_name for cls in (CommandStartedEvent, CommandSucceededEvent, CommandFailedEvent, CommandWarningsEvent)
)


@dataclass
class CommandEventEmitter:
    """
    Dispatches command events to registered handlers.

    Handlers may be plain functions or coroutines. A failing handler is
    logged and doesn't affect the command or the other handlers.

    Example:
        emitter = CommandEventEmitter()

        @emitter.on("commandFailed")
        def report(event):
            print(event.format())
    """

    _handlers: dict[str, list[EventHandler]] = field(default_factory=dict, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def on(self, event_name: str, handler: EventHandler | None = None) -> Any:
        """
        Register a handler, directly or as a decorator.

        Raises:
            ValueError: If ``event_name`` is not a known event
        """
        if event_name not in EVENT_NAMES:
            raise ValueError(f"Unknown event '{event_name}'. Must be one of: {', '.join(EVENT_NAMES)}")

        def decorator(func: EventHandler) -> EventHandler:
            with self._lock:
                handlers = self._handlers.setdefault(event_name, [])
                if func not in handlers:
                    handlers.append(func)
            return func

        if handler is not None:
            return decorator(handler)
        return decorator

    def off(self, event_name: str, handler: EventHandler) -> bool:
        """Unregister a handler. Returns True if it was registered."""
        with self._lock:
            try:
                self._handlers.get(event_name, []).remove(handler)
                return True
            except ValueError:
                return False

    def has_listeners(self, event_name: str) -> bool:
        with self._lock:
            return bool(self._handlers.get(event_name))

    async def emit(self, event: CommandEvent) -> None:
        with self._lock:
            handlers = list(self._handlers.get(event.event_name, []))

        for handler in handlers:
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.exception(f"Handler {getattr(handler, '__name__', handler)!r} for {event.event_name} raised: {e}")


@dataclass
class CommandLog:
    """A single captured command with timing information."""

    command_name: str
    source: str | None
    duration_ms: float
    succeeded: bool
    timestamp: float = field(default_factory=time.time)

    def __repr__(self) -> str:
        return f"CommandLog({self.command_name!r}, {self.duration_ms:.1f}ms)"


class CommandLogger:
    """
    Async context manager capturing every command sent within its block.

    Uses ``contextvars``, so only commands of the current task (and the tasks
    it spawns inside the block) are captured.
    """

    def __init__(self) -> None:
        self.commands: list[CommandLog] = []
        self._token: Any = None

    async def __aenter__(self) -> Self:
        self._token = _active_logger.set(self)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._token is not None:
            _active_logger.reset(self._token)
            self._token = None

    @property
    def total_commands(self) -> int:
        return len(self.commands)

    @property
    def total_ms(self) -> float:
        return sum(c.duration_ms for c in self.commands)

    @property
    def failed(self) -> list[CommandLog]:
        return [c for c in self.commands if not c.succeeded]

    def _record(self, command_name: str, source: str | None, duration_ms: float, succeeded: bool) -> None:
        self.commands.append(CommandLog(command_name, source, duration_ms, succeeded))

    def __repr__(self) -> str:
        return f"CommandLogger({self.total_commands} commands, {self.total_ms:.1f}ms)"


def log_command(command_name: str, source: str | None, duration_ms: float, succeeded: bool) -> None:
    """Record a command on the active ``CommandLogger``, if any."""
    active = _active_logger.get(None)
    if active is not None:
        active._record(command_name, source, duration_ms, succeeded)


__all__ = [
    "CommandEvent",
    "CommandStartedEvent",
    "CommandSucceededEvent",
    "CommandFailedEvent",
    "CommandWarningsEvent",
    "CommandEventEmitter",
    "CommandLog",
    "CommandLogger",
    "EVENT_NAMES",
]
