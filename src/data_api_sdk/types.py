"""
Type definitions for Data API command results.

Provides typed wrappers around the ``status`` part of Data API responses.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass
class InsertOneResult:
    """
    Result of an ``insert_one`` command.

    Attributes:
        inserted_id: Id (collections) or primary key (tables) of the new record
    """

    inserted_id: Any


@dataclass
class InsertManyResult:
    """
    Result of an ``insert_many`` command.

    Attributes:
        inserted_ids: Ids of the inserted records, in insertion order per chunk
    """

    inserted_ids: list[Any] = field(default_factory=list)

    @property
    def inserted_count(self) -> int:
        return len(self.inserted_ids)


@dataclass
class UpdateResult:
    """
    Result of an ``update_one``, ``update_many`` or ``replace_one`` command.

    Attributes:
        matched_count: Number of records matching the filter
        modified_count: Number of records actually modified
        upserted_id: Id of the upserted record, if any
    """

    matched_count: int = 0
    modified_count: int = 0
    upserted_id: Any = None

    @classmethod
    def from_status(cls, status: dict[str, Any], upserted_id: Any = None) -> "UpdateResult":
        """Parse the result from a response ``status``."""
        return cls(
            matched_count=int(status.get("matchedCount", 0)),
            modified_count=int(status.get("modifiedCount", 0)),
            upserted_id=upserted_id,
        )

    @property
    def upserted_count(self) -> int:
        return 0 if self.upserted_id is None else 1


@dataclass
class DeleteResult:
    """
    Result of a ``delete_one``/``delete_many`` command.

    Attributes:
        deleted_count: Number of deleted records; ``-1`` when the server
            deleted everything without counting
    """

    deleted_count: int = 0

    @classmethod
    def from_status(cls, status: dict[str, Any]) -> "DeleteResult":
        return cls(deleted_count=int(status.get("deletedCount", 0)))


@dataclass
class FindPage(Generic[T]):
    """
    One page of ``find`` results.

    Attributes:
        result: The records of this page (mapped, if the cursor has a mapping)
        next_page_state: Continuation token of the next page, or None when done
        sort_vector: Vector used for a vector sort, when requested
    """

    result: list[T] = field(default_factory=list)
    next_page_state: str | None = None
    sort_vector: Any = None


@dataclass
class CountResult:
    """Result of a ``count_documents`` command."""

    count: int
    more_data: bool = False

    @classmethod
    def from_status(cls, status: dict[str, Any]) -> "CountResult":
        return cls(count=int(status.get("count", 0)), more_data=bool(status.get("moreData", False)))
