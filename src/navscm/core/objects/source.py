"""
Data sources yielding NAV objects from the object table.

The relational layer is reached through any DB-API 2.0 connection using the
qmark parameter style (sqlite3, pyodbc). Bracket-quoted identifiers are
understood by both SQL Server and SQLite, so the same statements serve the
live NAV database and local test databases.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Protocol

from navscm.core.exceptions import DuplicateObjectError
from navscm.core.objects.models import DatabaseObject, ObjectKey, ObjectRow

DEFAULT_TABLE = "Object"

_COLUMNS = (
    "[Type]",
    "[ID]",
    "[Company Name]",
    "[Name]",
    "[Modified]",
    "[Date]",
    "[Time]",
    "[Version List]",
)


class ObjectSource(Protocol):
    """Anything that can hand out database objects."""

    def all_objects(self) -> Iterator[DatabaseObject]:
        """Yield every supported object."""
        ...

    def modified_objects(self) -> Iterator[DatabaseObject]:
        """Yield objects whose modified flag is set."""
        ...

    def get_object(self, key: ObjectKey) -> DatabaseObject | None:
        """Return the object with the given key, or None if it does not exist."""
        ...


class SqlObjectSource:
    """
    Object source reading the NAV `Object` table.

    Every query filters out type 0 (table data entries). Rows that cannot be
    represented (unsupported types, company-bound variants) raise
    UnsupportedObjectError while the table is scanned.

    Example:
        >>> source = SqlObjectSource(sqlite3.connect("nav.db"))
        >>> for obj in source.modified_objects():
        ...     print(obj.cache_key, obj.name)
    """

    def __init__(
        self,
        connection: Any,
        table: str = DEFAULT_TABLE,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Initialize the source.

        Args:
            connection: Open DB-API connection (qmark paramstyle)
            table: Name of the object table
            logger: Logger to use instead of the module logger
        """
        if "]" in table:
            raise ValueError(f"Invalid table name '{table}'")
        self.connection = connection
        self.table = table
        self.logger = logger or logging.getLogger(__name__)

    def _select(self, where: str, params: tuple[Any, ...] = ()) -> Iterator[DatabaseObject]:
        sql = f"SELECT {', '.join(_COLUMNS)} FROM [{self.table}] WHERE {where}"
        self.logger.debug("Running query: %s %s", sql, params)

        cursor = self.connection.cursor()
        try:
            cursor.execute(sql, params)
            for record in cursor.fetchall():
                row = ObjectRow(
                    type=record[0],
                    id=record[1],
                    company_name=record[2],
                    name=record[3],
                    modified=bool(record[4]),
                    modified_date=record[5],
                    modified_time=record[6],
                    version_list=record[7],
                )
                yield DatabaseObject.from_row(row)
        finally:
            cursor.close()

    def all_objects(self) -> Iterator[DatabaseObject]:
        return self._select("[Type] > 0 ORDER BY [Type], [ID]")

    def modified_objects(self) -> Iterator[DatabaseObject]:
        return self._select("[Type] > 0 AND [Modified] = 1 ORDER BY [Type], [ID]")

    def get_object(self, key: ObjectKey) -> DatabaseObject | None:
        """
        Look up a single object.

        Raises:
            DuplicateObjectError: If more than one row matches the key
        """
        matches = list(self._select("[Type] = ? AND [ID] = ?", (int(key.type), key.id)))
        if len(matches) > 1:
            raise DuplicateObjectError(
                key.cache_key, f"{len(matches)} rows found in table {self.table}"
            )
        return matches[0] if matches else None


def open_sqlite_source(
    path: Path,
    table: str = DEFAULT_TABLE,
    logger: logging.Logger | None = None,
) -> SqlObjectSource:
    """Open a SQLite database file holding an object table."""
    if not path.exists():
        raise FileNotFoundError(f"Object database not found: {path}")
    return SqlObjectSource(sqlite3.connect(str(path)), table=table, logger=logger)
