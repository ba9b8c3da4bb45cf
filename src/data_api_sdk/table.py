"""
Tables: rows with a fixed, typed column schema.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .exceptions import DataAPIError
from .serdes import TableSerDes
from .source import BaseSource
from .timeouts import TimeoutArg, Timeouts

if TYPE_CHECKING:
    from .db import Db


class Table(BaseSource):
    """
    A Data API table.

    Rows are deserialized against the schema the server sends with each
    response, so column values come back as their Python types (``UUID``,
    ``Decimal``, ``DataAPIDuration``, ``set``, ...). Columns missing from a
    row are filled with an empty value unless ``sparse_data`` is set in the
    table's ser/des options.

    Inserted ids are primary keys, returned as ``{column: value}`` dicts.
    """

    def __init__(
        self,
        db: Db,
        name: str,
        serdes: TableSerDes,
        keyspace: str | None = None,
        timeouts: Timeouts | None = None,
    ):
        super().__init__(db, name, serdes, keyspace, timeouts)

    async def definition(self, *, timeout: TimeoutArg = None) -> dict[str, Any]:
        """
        Column and primary key definition of this table.

        Raises:
            DataAPIError: If the table doesn't exist
        """
        for description in await self.db.list_tables(keyspace=self.keyspace, timeout=timeout):
            if description.get("name") == self.name:
                definition: dict[str, Any] = description.get("definition") or {}
                return definition
        raise DataAPIError(f"Table {self.keyspace}.{self.name} not found")

    async def drop(self, *, if_exists: bool = False, timeout: TimeoutArg = None) -> None:
        """Drop this table."""
        await self.db.drop_table(self.name, if_exists=if_exists, keyspace=self.keyspace, timeout=timeout)
