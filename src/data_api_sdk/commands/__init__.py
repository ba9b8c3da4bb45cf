"""Multi-request command helpers."""

from .distinct import extract_values, identity_key, parse_distinct_key, projection_for
from .insertion import DEFAULT_CHUNK_SIZE, DEFAULT_CONCURRENCY, insert_many_ordered, insert_many_unordered

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_CONCURRENCY",
    "extract_values",
    "identity_key",
    "insert_many_ordered",
    "insert_many_unordered",
    "parse_distinct_key",
    "projection_for",
]
