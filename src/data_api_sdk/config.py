"""
Configuration models for the Data API client.

All options are pydantic models, so invalid values are rejected when the
client, collection or table is created.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, InstanceOf, field_validator

from .events import DEFAULT_KEYSPACE
from .serdes.big_numbers import NumRep
from .serdes.codecs import Codec
from .serdes.collections import CollectionSerDes
from .serdes.key_transformer import KeyTransformer
from .serdes.tables import TableSerDes
from .timeouts import TimeoutDescriptor, TimeoutOverride


def validate_keyspace(value: str) -> str:
    """
    Check a keyspace name.

    Raises:
        ValueError: If the name is empty or not alphanumeric (underscores allowed)
    """
    if not value or not value.replace("_", "").isalnum():
        raise ValueError(f"keyspace must be a non-empty alphanumeric (underscores allowed) name, got {value!r}")
    return value


class _SerDesConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    codecs: list[InstanceOf[Codec]] = Field(default_factory=list)
    mutate_in_place: bool = False
    key_transformer: InstanceOf[KeyTransformer] | None = None

    def merged_with(self, override: Self | None) -> Self:
        """
        Combine with a more specific config.

        ``override``'s codecs come first; its explicitly set options win.
        """
        if override is None:
            return self
        update: dict[str, Any] = {k: getattr(override, k) for k in override.model_fields_set if k != "codecs"}
        update["codecs"] = [*override.codecs, *self.codecs]
        return self.model_copy(update=update)


class CollectionSerDesConfig(_SerDesConfig):
    """
    Ser/des options of collections.

    Attributes:
        codecs: Extra codecs, tried before the built-in ones
        mutate_in_place: Serialize documents in place instead of copying them
        key_transformer: Key renaming, e.g. ``Camel2SnakeCase()``
        enable_big_numbers: ``{"path.*": rep}`` mapping or ``path -> rep``
            function enabling exact number handling
    """

    enable_big_numbers: dict[str, NumRep] | Callable[..., Any] | None = None

    def build(self) -> CollectionSerDes:
        return CollectionSerDes(
            self.codecs,
            mutate_in_place=self.mutate_in_place,
            key_transformer=self.key_transformer,
            enable_big_numbers=self.enable_big_numbers,
        )


class TableSerDesConfig(_SerDesConfig):
    """
    Ser/des options of tables.

    Attributes:
        codecs: Extra codecs, tried before the built-in ones
        mutate_in_place: Serialize rows in place instead of copying them
        key_transformer: Key renaming, e.g. ``Camel2SnakeCase()``
        sparse_data: Don't fill columns missing from returned rows
    """

    sparse_data: bool = False

    def build(self) -> TableSerDes:
        return TableSerDes(
            self.codecs,
            mutate_in_place=self.mutate_in_place,
            key_transformer=self.key_transformer,
            sparse_data=self.sparse_data,
        )


class DataAPIClientOptions(BaseModel):
    """
    Options of a ``DataAPIClient``, inherited by its databases.

    Attributes:
        keyspace: Default keyspace of spawned databases
        api_path: Path of the JSON API below the database endpoint
        timeout_defaults: Overrides of the default timeouts
        extra_headers: Headers added to every request
        log_commands: Log every command event at INFO level
        collection_serdes: Default ser/des options of collections
        table_serdes: Default ser/des options of tables
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    keyspace: str = DEFAULT_KEYSPACE
    api_path: str = "api/json/v1"
    timeout_defaults: TimeoutOverride | None = None
    extra_headers: dict[str, str] = Field(default_factory=dict)
    log_commands: bool = False
    collection_serdes: CollectionSerDesConfig = Field(default_factory=CollectionSerDesConfig)
    table_serdes: TableSerDesConfig = Field(default_factory=TableSerDesConfig)

    @field_validator("keyspace")
    @classmethod
    def _check_keyspace(cls, value: str) -> str:
        return validate_keyspace(value)

    @property
    def timeouts(self) -> TimeoutDescriptor:
        return TimeoutDescriptor().merge(self.timeout_defaults)


__all__ = [
    "DEFAULT_KEYSPACE",
    "CollectionSerDesConfig",
    "TableSerDesConfig",
    "DataAPIClientOptions",
    "validate_keyspace",
]
