"""
Data API SDK - an async Python client for the Data API.

Talks to the Data API over HTTP/JSON and maps its documents and rows to
Python values.

Supports:
- Collections (schemaless documents) and tables (typed rows)
- Lazy, paginated cursors with async iteration
- Pluggable codecs for custom types, by name, path, type tag or class
- Exact big numbers (``Decimal``) on the wire
- Per-request and per-method timeout budgets
- Command monitoring events
"""

from .api import DataAPIHttpClient, HttpxTransport, Transport, TransportResponse
from .client import DataAPIClient
from .collection import Collection
from .config import CollectionSerDesConfig, DataAPIClientOptions, TableSerDesConfig
from .cursors import AbstractCursor, CursorState, FindCursor
from .datatypes import (
    DataAPIBlob,
    DataAPIDuration,
    DataAPIVector,
    ObjectId,
    SerializableForCollection,
    SerializableForTable,
)
from .db import Db
from .events import (
    DEFAULT_KEYSPACE,
    CommandEventEmitter,
    CommandFailedEvent,
    CommandLogger,
    CommandStartedEvent,
    CommandSucceededEvent,
    CommandWarningsEvent,
)
from .exceptions import (
    CodecConfigurationError,
    ConfigurationError,
    CursorError,
    DataAPIConnectionError,
    DataAPIError,
    DataAPIHttpError,
    DataAPIResponseError,
    DataAPITimeoutError,
    InsertManyError,
    NumCoercionError,
    SerDesError,
    TooManyDocumentsToCountError,
)
from .serdes import (
    Camel2SnakeCase,
    Codecs,
    CollectionCodecs,
    KeyTransformer,
    NumRep,
    SerDesTarget,
    TableCodecs,
)
from .table import Table
from .timeouts import TimeoutCategory, TimeoutDescriptor, TimeoutOverride
from .types import DeleteResult, FindPage, InsertManyResult, InsertOneResult, UpdateResult
from .version import __version__

__all__ = [
    # Client
    "DataAPIClient",
    "DataAPIClientOptions",
    "Db",
    "Collection",
    "Table",
    # HTTP
    "DataAPIHttpClient",
    "HttpxTransport",
    "Transport",
    "TransportResponse",
    # Cursors
    "AbstractCursor",
    "CursorState",
    "FindCursor",
    # Ser/des
    "CollectionSerDesConfig",
    "TableSerDesConfig",
    "Codecs",
    "CollectionCodecs",
    "TableCodecs",
    "SerDesTarget",
    "KeyTransformer",
    "Camel2SnakeCase",
    "NumRep",
    # Datatypes
    "DataAPIBlob",
    "DataAPIDuration",
    "DataAPIVector",
    "ObjectId",
    "SerializableForCollection",
    "SerializableForTable",
    # Events
    "DEFAULT_KEYSPACE",
    "CommandEventEmitter",
    "CommandStartedEvent",
    "CommandSucceededEvent",
    "CommandFailedEvent",
    "CommandWarningsEvent",
    "CommandLogger",
    # Timeouts
    "TimeoutCategory",
    "TimeoutDescriptor",
    "TimeoutOverride",
    # Results
    "InsertOneResult",
    "InsertManyResult",
    "UpdateResult",
    "DeleteResult",
    "FindPage",
    # Exceptions
    "DataAPIError",
    "ConfigurationError",
    "CodecConfigurationError",
    "SerDesError",
    "NumCoercionError",
    "CursorError",
    "DataAPITimeoutError",
    "DataAPIConnectionError",
    "DataAPIHttpError",
    "DataAPIResponseError",
    "InsertManyError",
    "TooManyDocumentsToCountError",
    # Version
    "__version__",
]
