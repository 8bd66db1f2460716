"""QueryTables: find the tables a SQL query reads and derive cache keys from them."""

from querytables import exceptions, utils
from querytables.__metadata__ import __version__
from querytables.config import QueryTablesConfig
from querytables.exceptions import ImproperConfigurationError, IntrospectionError, QueryTablesError
from querytables.introspection import (
    AsyncpgTableIntrospector,
    AsyncTableIntrospector,
    DBAPITableIntrospector,
    StaticTableIntrospector,
    SyncTableIntrospector,
    descriptor_from_row,
)
from querytables.metadata import QueryMetadata, TableDescriptor, is_analysis_table
from querytables.query_tables import AsyncQueryTables, QueryTables, get_query_statements, merge_tables
from querytables.splitter import QuoteState, StatementSplitter, split_sql_statements
from querytables.tokens import TILE_ZERO_VALUES, has_tokens, replace_tokens

__all__ = (
    "TILE_ZERO_VALUES",
    "AsyncQueryTables",
    "AsyncTableIntrospector",
    "AsyncpgTableIntrospector",
    "DBAPITableIntrospector",
    "ImproperConfigurationError",
    "IntrospectionError",
    "QueryMetadata",
    "QueryTables",
    "QueryTablesConfig",
    "QueryTablesError",
    "QuoteState",
    "StatementSplitter",
    "StaticTableIntrospector",
    "SyncTableIntrospector",
    "TableDescriptor",
    "__version__",
    "descriptor_from_row",
    "exceptions",
    "get_query_statements",
    "has_tokens",
    "is_analysis_table",
    "merge_tables",
    "replace_tokens",
    "split_sql_statements",
    "utils",
)
