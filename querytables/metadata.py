"""Table metadata for one query: cache channels, surrogate keys and freshness.

A :class:`QueryMetadata` is built once per incoming query from the tables the
query reads and then only answers questions about them. It never deduplicates;
the orchestrator hands it an already deduplicated list.
"""

import datetime
import math
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Final, Optional, Union

from mypy_extensions import mypyc_attr
from typing_extensions import TypeAlias

from querytables.utils.hashing import short_hash_key

__all__ = (
    "ANALYSIS_TABLE_PATTERN",
    "CACHE_CHANNEL_SEPARATOR",
    "DEFAULT_KEY_NAMESPACE",
    "QueryMetadata",
    "TableDescriptor",
    "UpdatedAt",
    "is_analysis_table",
    "to_epoch_millis",
)

DEFAULT_KEY_NAMESPACE: Final = "t"
CACHE_CHANNEL_SEPARATOR: Final = ";;"
ANALYSIS_TABLE_PATTERN: Final = re.compile(r"analysis_[0-9a-f]{10}_[0-9a-f]{40}")

_EPOCH: Final = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)
_ONE_MILLISECOND: Final = datetime.timedelta(milliseconds=1)

UpdatedAt: TypeAlias = Union[datetime.datetime, int, float]


@dataclass(frozen=True)
class TableDescriptor:
    """One physical table touched by a query.

    ``schema_name`` and ``table_name`` are kept exactly as introspection
    returned them, quoting characters included (e.g. ``"sch-ema"``).
    """

    dbname: str
    schema_name: str
    table_name: str
    updated_at: Optional[UpdatedAt] = None

    @property
    def identity(self) -> "tuple[str, str, str]":
        """Key under which the same table seen twice is the same table."""
        return self.dbname, self.schema_name, self.table_name

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.table_name}"


def is_analysis_table(table_name: str) -> bool:
    """Check whether a table name is a transient, content-addressed analysis table.

    Args:
        table_name: Table name as returned by introspection.

    Returns:
        True for names like ``analysis_<10 hex>_<40 hex>``.
    """
    return ANALYSIS_TABLE_PATTERN.fullmatch(table_name) is not None


def to_epoch_millis(value: UpdatedAt) -> "Union[int, float]":
    """Convert a datetime to epoch milliseconds; numbers are already epoch milliseconds.

    Naive datetimes are taken to be UTC.
    """
    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return (value - _EPOCH) // _ONE_MILLISECOND
    return value


@mypyc_attr(allow_interpreted_subclasses=True)
class QueryMetadata:
    """Immutable view over the tables one query reads."""

    __slots__ = ("_key_namespace", "_tables")

    def __init__(self, tables: "Iterable[TableDescriptor]", key_namespace: str = DEFAULT_KEY_NAMESPACE) -> None:
        """Initialize the model.

        Args:
            tables: Tables in first-seen order, already deduplicated.
            key_namespace: Prefix of every surrogate key.
        """
        self._tables: tuple[TableDescriptor, ...] = tuple(tables)
        self._key_namespace = key_namespace

    @property
    def tables(self) -> "tuple[TableDescriptor, ...]":
        return self._tables

    @property
    def key_namespace(self) -> str:
        return self._key_namespace

    def __len__(self) -> int:
        return len(self._tables)

    def __iter__(self) -> "Iterator[TableDescriptor]":
        return iter(self._tables)

    def __repr__(self) -> str:
        return f"QueryMetadata(tables={list(self._tables)!r})"

    def get_tables(
        self, skip_not_updated_at_tables: bool = False, skip_analysis_cached_tables: bool = False
    ) -> "list[TableDescriptor]":
        """Return the tables left after the requested filters, in original order.

        Args:
            skip_not_updated_at_tables: Drop tables whose ``updated_at`` is unknown.
            skip_analysis_cached_tables: Drop transient analysis tables.

        Returns:
            Filtered tables.
        """
        tables: Iterable[TableDescriptor] = self._tables
        if skip_not_updated_at_tables:
            tables = [table for table in tables if table.updated_at is not None]
        if skip_analysis_cached_tables:
            tables = [table for table in tables if not is_analysis_table(table.table_name)]
        return list(tables)

    def get_key(self, skip_not_updated_at_tables: bool = False) -> "list[str]":
        """Return the sorted surrogate keys, one per table.

        Each key is ``<namespace>:`` followed by the short hash of
        ``dbname:schema_name.table_name``, built from the raw field values.

        Args:
            skip_not_updated_at_tables: Leave out tables whose ``updated_at`` is unknown.

        Returns:
            Keys sorted ascending, duplicates kept.
        """
        return sorted(
            f"{self._key_namespace}:{short_hash_key(f'{table.dbname}:{table.qualified_name}')}"
            for table in self.get_tables(skip_not_updated_at_tables)
        )

    def get_cache_channel(self, skip_not_updated_at_tables: bool = False) -> str:
        """Return the cache channel, e.g. ``db:public.t1,public.t2;;otherdb:public.t3``.

        Tables are grouped by database in first-seen order; an empty string
        means no tables.

        Args:
            skip_not_updated_at_tables: Leave out tables whose ``updated_at`` is unknown.

        Returns:
            The cache channel string.
        """
        grouped: dict[str, list[str]] = {}
        for table in self.get_tables(skip_not_updated_at_tables):
            grouped.setdefault(table.dbname, []).append(table.qualified_name)
        return CACHE_CHANNEL_SEPARATOR.join(f"{dbname}:{','.join(names)}" for dbname, names in grouped.items())

    def get_last_updated_at(self, fallback_value: Any = 0) -> Any:
        """Return the latest ``updated_at`` over all tables, in epoch milliseconds.

        Args:
            fallback_value: Returned when there are no tables or no informative timestamp.

        Returns:
            The latest timestamp or ``fallback_value``.
        """
        if not self._tables:
            return fallback_value
        latest = max(
            (to_epoch_millis(table.updated_at) for table in self._tables if table.updated_at is not None),
            default=None,
        )
        if not latest or (isinstance(latest, float) and math.isnan(latest)):
            return fallback_value
        return latest
