"""Query tables orchestration.

Turns raw query text into a :class:`~querytables.metadata.QueryMetadata`:
substitution tokens are replaced, the text is split into statements, each
statement is introspected, and the per-statement results are merged.

Deduplication happens here, keyed by ``(dbname, schema_name, table_name)``:
``TABLE t1; TABLE t1;`` yields a model holding ``t1`` once. The model itself
trusts its input and never deduplicates. Introspection errors propagate to the
caller unchanged; no partial model is ever returned. Records logged while a
query is resolved carry its ``query_id``.
"""

import logging
from collections.abc import Iterable
from typing import Optional

from querytables.config import QueryTablesConfig
from querytables.introspection import AsyncTableIntrospector, SyncTableIntrospector
from querytables.metadata import QueryMetadata, TableDescriptor
from querytables.splitter import split_sql_statements
from querytables.tokens import has_tokens, replace_tokens
from querytables.utils.logging import get_logger, log_with_context, query_logging_context

__all__ = ("AsyncQueryTables", "QueryTables", "get_query_statements", "merge_tables")

logger = get_logger("query_tables")


def get_query_statements(sql: str) -> "list[str]":
    """Split ``sql`` into the statements that will be introspected one by one."""
    return split_sql_statements(sql)


def merge_tables(per_statement: "Iterable[Iterable[TableDescriptor]]") -> "list[TableDescriptor]":
    """Merge per-statement results, keeping the first occurrence of every table.

    Args:
        per_statement: Tables of each statement, in statement order.

    Returns:
        Deduplicated tables in first-seen order.
    """
    merged: list[TableDescriptor] = []
    seen: set[tuple[str, str, str]] = set()
    for tables in per_statement:
        for table in tables:
            if table.identity in seen:
                continue
            seen.add(table.identity)
            merged.append(table)
    return merged


class _QueryTablesBase:
    __slots__ = ("config",)

    def __init__(self, config: Optional[QueryTablesConfig]) -> None:
        self.config = config or QueryTablesConfig()

    def prepare_statements(self, sql: str) -> "list[str]":
        """Replace substitution tokens and split ``sql`` into statements."""
        if self.config.substitute_tokens and has_tokens(sql):
            sql = replace_tokens(sql, self.config.substitution_values)
        statements = get_query_statements(sql)
        logger.debug("Query split into %d statements", len(statements))
        return statements

    def build_model(self, per_statement: "list[list[TableDescriptor]]") -> QueryMetadata:
        tables = merge_tables(per_statement)
        model = QueryMetadata(tables, key_namespace=self.config.key_namespace)
        if logger.isEnabledFor(logging.DEBUG):
            log_with_context(
                logger,
                logging.DEBUG,
                "Query tables resolved",
                statements=len(per_statement),
                tables=len(tables),
                cache_channel=model.get_cache_channel(),
            )
        return model


class QueryTables(_QueryTablesBase):
    """Builds query metadata models with a synchronous introspector.

    Example:
        >>> query_tables = QueryTables(DBAPITableIntrospector(connection))
        >>> query_tables.get_query_metadata_model("TABLE t1; TABLE t2;").get_cache_channel()
        'mydb:public.t1,public.t2'
    """

    __slots__ = ("introspector",)

    def __init__(self, introspector: SyncTableIntrospector, config: Optional[QueryTablesConfig] = None) -> None:
        super().__init__(config)
        self.introspector = introspector

    def get_affected_tables(self, statement: str) -> "list[TableDescriptor]":
        return self.introspector.get_affected_tables(statement)

    def get_query_metadata_model(self, sql: str) -> QueryMetadata:
        """Return the metadata model for every table ``sql`` reads.

        Args:
            sql: Raw query text, possibly with several statements and tile tokens.

        Returns:
            The model over the deduplicated tables.
        """
        with query_logging_context(sql):
            statements = self.prepare_statements(sql)
            return self.build_model([self.get_affected_tables(statement) for statement in statements])


class AsyncQueryTables(_QueryTablesBase):
    """Builds query metadata models with an asynchronous introspector.

    Statements are introspected one after another; a single connection cannot
    run queries concurrently.
    """

    __slots__ = ("introspector",)

    def __init__(self, introspector: AsyncTableIntrospector, config: Optional[QueryTablesConfig] = None) -> None:
        super().__init__(config)
        self.introspector = introspector

    async def get_affected_tables(self, statement: str) -> "list[TableDescriptor]":
        return await self.introspector.get_affected_tables(statement)

    async def get_query_metadata_model(self, sql: str) -> QueryMetadata:
        """Return the metadata model for every table ``sql`` reads."""
        with query_logging_context(sql):
            statements = self.prepare_statements(sql)
            return self.build_model([await self.get_affected_tables(statement) for statement in statements])
