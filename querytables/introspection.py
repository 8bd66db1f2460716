"""Introspectors that report which tables a single SQL statement reads.

Database-backed introspectors ask PostgreSQL through a set-returning function
(``CDB_QueryTables_Updated_At`` by default) and let driver errors propagate
untouched. :class:`StaticTableIntrospector` works offline from the statement
text with sqlglot and knows nothing about freshness.
"""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError

from querytables.config import QueryTablesConfig
from querytables.exceptions import IntrospectionError
from querytables.metadata import TableDescriptor
from querytables.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

__all__ = (
    "AsyncTableIntrospector",
    "AsyncpgTableIntrospector",
    "DBAPITableIntrospector",
    "StaticTableIntrospector",
    "SyncTableIntrospector",
    "descriptor_from_row",
)

logger = get_logger("introspection")

ROW_FIELDS = ("dbname", "schema_name", "table_name", "updated_at")
_MIN_ROW_LENGTH = 3


@runtime_checkable
class SyncTableIntrospector(Protocol):
    """Reports the tables a statement reads."""

    def get_affected_tables(self, statement: str) -> "list[TableDescriptor]": ...


@runtime_checkable
class AsyncTableIntrospector(Protocol):
    """Reports the tables a statement reads, asynchronously."""

    async def get_affected_tables(self, statement: str) -> "list[TableDescriptor]": ...


def descriptor_from_row(row: Any) -> TableDescriptor:
    """Build a :class:`TableDescriptor` from an introspection row.

    Args:
        row: A mapping with ``dbname``, ``schema_name``, ``table_name`` and an optional
            ``updated_at``, or a sequence of three or four values in that order.

    Raises:
        IntrospectionError: When the row has neither shape.

    Returns:
        The table descriptor.
    """
    if isinstance(row, Mapping):
        try:
            return TableDescriptor(
                dbname=row["dbname"],
                schema_name=row["schema_name"],
                table_name=row["table_name"],
                updated_at=row.get("updated_at"),
            )
        except KeyError as e:
            msg = f"Introspection row is missing field {e.args[0]!r}"
            raise IntrospectionError(msg) from e
    if isinstance(row, Sequence) and not isinstance(row, (str, bytes)):
        if not _MIN_ROW_LENGTH <= len(row) <= len(ROW_FIELDS):
            msg = f"Introspection row must have 3 or 4 values, got {len(row)}"
            raise IntrospectionError(msg)
        return TableDescriptor(*row)
    msg = f"Unsupported introspection row type: {type(row).__name__}"
    raise IntrospectionError(msg)


def _descriptors_from_rows(rows: "Iterable[Any]") -> "list[TableDescriptor]":
    return [descriptor_from_row(row) for row in rows]


class DBAPITableIntrospector:
    """Introspector over a DB-API 2 connection such as psycopg's."""

    __slots__ = ("_query", "config", "connection")

    def __init__(self, connection: Any, config: Optional[QueryTablesConfig] = None) -> None:
        self.connection = connection
        self.config = config or QueryTablesConfig()
        self._query = self.config.introspection_query("%s")

    def get_affected_tables(self, statement: str) -> "list[TableDescriptor]":
        cursor = self.connection.cursor()
        try:
            cursor.execute(self._query, (statement,))
            rows = cursor.fetchall()
        finally:
            cursor.close()
        return _descriptors_from_rows(rows)


class AsyncpgTableIntrospector:
    """Introspector over an asyncpg connection."""

    __slots__ = ("_query", "config", "connection")

    def __init__(self, connection: Any, config: Optional[QueryTablesConfig] = None) -> None:
        self.connection = connection
        self.config = config or QueryTablesConfig()
        self._query = self.config.introspection_query("$1")

    async def get_affected_tables(self, statement: str) -> "list[TableDescriptor]":
        records = await self.connection.fetch(self._query, statement)
        return _descriptors_from_rows(dict(record) for record in records)


class StaticTableIntrospector:
    """Offline introspector extracting table references with sqlglot.

    Every referenced table that is not a CTE is reported once, in order of
    appearance, under ``config.default_dbname``. Quoted identifiers keep their
    quotes so the result lines up with what the database would report.
    """

    __slots__ = ("config", "dialect")

    def __init__(self, config: Optional[QueryTablesConfig] = None, dialect: str = "postgres") -> None:
        self.config = config or QueryTablesConfig()
        self.dialect = dialect

    def get_affected_tables(self, statement: str) -> "list[TableDescriptor]":
        dbname = self.config.default_dbname
        if dbname is None:
            msg = "StaticTableIntrospector needs config.default_dbname"
            raise IntrospectionError(msg, statement)
        try:
            parsed = sqlglot.parse_one(statement, read=self.dialect)
        except ParseError as e:
            msg = f"Failed to parse statement for table extraction: {str(e)[:100]}"
            raise IntrospectionError(msg, statement) from e

        cte_names = {cte.alias_or_name for cte in parsed.find_all(exp.CTE)}
        tables: list[TableDescriptor] = []
        seen: set[tuple[str, str, str]] = set()
        for table_exp in parsed.find_all(exp.Table):
            if not isinstance(table_exp.this, exp.Identifier):
                continue
            if not table_exp.db and table_exp.name in cte_names:
                continue
            schema_name = (
                table_exp.args["db"].sql(dialect=self.dialect) if table_exp.db else self.config.default_schema
            )
            table = TableDescriptor(
                dbname=dbname,
                schema_name=schema_name,
                table_name=table_exp.this.sql(dialect=self.dialect),
            )
            if table.identity not in seen:
                seen.add(table.identity)
                tables.append(table)
        logger.debug("Extracted %d tables from statement offline", len(tables))
        return tables
