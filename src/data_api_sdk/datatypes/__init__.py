"""
Datatypes understood by the Data API.

Standard library types cover the rest: ``uuid.UUID``, ``datetime``,
``date``, ``time``, ``decimal.Decimal`` and ``ipaddress`` addresses.
"""

from .base import SerializableForCollection, SerializableForTable
from .blob import DataAPIBlob
from .duration import DataAPIDuration
from .object_id import ObjectId
from .vector import DataAPIVector

__all__ = [
    "SerializableForCollection",
    "SerializableForTable",
    "DataAPIBlob",
    "DataAPIDuration",
    "ObjectId",
    "DataAPIVector",
]
