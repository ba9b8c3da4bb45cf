"""
Data API SDK Exceptions.

Custom exception hierarchy for the SDK.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .timeouts import TimedOutCategories


class DataAPIError(Exception):
    """Base exception for all Data API SDK errors."""

    def __init__(self, message: str, code: int | None = None):
        self.message = message
        self.code = code
        super().__init__(message)


class ConfigurationError(DataAPIError):
    """Raised when client, serializer or cursor options are invalid."""

    pass


class CodecConfigurationError(ConfigurationError):
    """Raised when a codec registration is invalid or contradicts another one."""

    pass


class SerDesError(DataAPIError):
    """Raised when a document cannot be serialized or deserialized."""

    def __init__(self, message: str, path: list[str | int] | None = None):
        self.path = list(path or [])
        super().__init__(message)


class NumCoercionError(SerDesError):
    """Raised when a number can't be coerced to the configured representation."""

    def __init__(self, path: list[str | int], value: Any, from_rep: str, to_rep: str):
        self.value = value
        self.from_rep = from_rep
        self.to_rep = to_rep
        joined = ".".join(str(p) for p in path)
        super().__init__(f"Failed to coerce value from {from_rep} to {to_rep} at path: {joined}", path)


class CursorError(DataAPIError):
    """Raised when a cursor operation is not allowed in the cursor's current state."""

    def __init__(self, message: str, cursor_state: str | None = None):
        self.cursor_state = cursor_state
        super().__init__(message)


class DataAPITimeoutError(DataAPIError):
    """Raised when a request or an overall method budget runs out.

    ``timed_out_categories`` is a single category name, a tuple of names when
    several categories expired at the same instant, or ``"provided"`` when
    the caller passed a plain number as the timeout.
    """

    def __init__(self, message: str, timeout: dict[str, int], timed_out_categories: TimedOutCategories):
        self.timeout = timeout
        self.timed_out_categories = timed_out_categories
        super().__init__(message)


class DataAPIConnectionError(DataAPIError):
    """Raised when the transport can't reach the Data API."""

    pass


class DataAPIHttpError(DataAPIError):
    """Raised when the Data API answers with an HTTP error status."""

    def __init__(self, status: int, body: str | None = None):
        self.status = status
        self.body = body
        super().__init__(f"HTTP error ({status}): {body or 'no response body'}", code=status)


class DataAPIResponseError(DataAPIError):
    """Raised when a successful HTTP response carries an ``errors`` array."""

    def __init__(self, command: dict[str, Any], raw_response: dict[str, Any]):
        self.command = command
        self.raw_response = raw_response

        descriptors = self.error_descriptors
        if descriptors and descriptors[0].get("message"):
            message = descriptors[0]["message"]
            if len(descriptors) > 1:
                message += f" (+ {len(descriptors) - 1} more errors)"
        else:
            message = f"Something went wrong ({len(descriptors)} errors)"

        super().__init__(message)

    @property
    def error_descriptors(self) -> list[dict[str, Any]]:
        """The raw error descriptors returned by the Data API."""
        errors: list[dict[str, Any]] = self.raw_response.get("errors") or []
        return errors

    @property
    def warnings(self) -> list[dict[str, Any]]:
        """Warnings returned alongside the errors, if any."""
        status = self.raw_response.get("status") or {}
        warnings: list[dict[str, Any]] = status.get("warnings") or []
        return warnings


class InsertManyError(DataAPIError):
    """Raised when one or more chunks of an ``insert_many`` call fail.

    ``inserted_ids`` holds the ids of every document that was inserted before
    (ordered) or despite (unordered) the failures.
    """

    def __init__(self, errors: list[DataAPIError], inserted_ids: list[Any]):
        self.errors = errors
        self.inserted_ids = inserted_ids
        first = errors[0].message if errors else "unknown error"
        more = f" (+ {len(errors) - 1} more failed chunks)" if len(errors) > 1 else ""
        super().__init__(f"insert_many failed after inserting {len(inserted_ids)} documents: {first}{more}")


class TooManyDocumentsToCountError(DataAPIError):
    """Raised when ``count_documents`` finds more documents than the given upper bound.

    ``limit`` is the upper bound passed by the caller, or the server's own
    counting limit when ``hit_server_limit`` is set.
    """

    def __init__(self, limit: int, hit_server_limit: bool):
        self.limit = limit
        self.hit_server_limit = hit_server_limit
        if hit_server_limit:
            message = f"Too many documents to count (server limit of {limit} reached)"
        else:
            message = f"Too many documents to count (provided upper bound is {limit})"
        super().__init__(message)
