"""Configuration for table introspection and cache key derivation."""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Final, Optional

from querytables.exceptions import ImproperConfigurationError
from querytables.metadata import DEFAULT_KEY_NAMESPACE
from querytables.tokens import SUBSTITUTION_TOKENS, TILE_ZERO_VALUES

__all__ = ("DEFAULT_INTROSPECTION_FUNCTION", "QueryTablesConfig")

DEFAULT_INTROSPECTION_FUNCTION: Final = "CDB_QueryTables_Updated_At"

# The function name is interpolated into SQL, so only plain identifiers are accepted
_FUNCTION_NAME_PATTERN: Final = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?")


@dataclass
class QueryTablesConfig:
    """Settings shared by the introspectors and the orchestrator.

    Args:
        introspection_function: Set-returning SQL function taking one statement and
            returning ``dbname, schema_name, table_name, updated_at`` rows.
        substitute_tokens: Replace tile substitution tokens before introspection.
        substitution_values: Replacement text for each token name.
        key_namespace: Prefix of surrogate keys.
        default_dbname: Database name reported by offline introspection.
        default_schema: Schema assumed for unqualified tables by offline introspection.
    """

    introspection_function: str = DEFAULT_INTROSPECTION_FUNCTION
    substitute_tokens: bool = True
    substitution_values: "Mapping[str, str]" = field(default_factory=lambda: dict(TILE_ZERO_VALUES))
    key_namespace: str = DEFAULT_KEY_NAMESPACE
    default_dbname: Optional[str] = None
    default_schema: str = "public"

    def __post_init__(self) -> None:
        if not _FUNCTION_NAME_PATTERN.fullmatch(self.introspection_function):
            msg = f"Invalid introspection function name: {self.introspection_function!r}"
            raise ImproperConfigurationError(msg)
        unknown = sorted(set(self.substitution_values) - set(SUBSTITUTION_TOKENS))
        if unknown:
            msg = f"Unknown substitution tokens: {', '.join(unknown)}"
            raise ImproperConfigurationError(msg)
        if not self.key_namespace or ":" in self.key_namespace:
            msg = f"Key namespace must be non-empty and contain no ':', got {self.key_namespace!r}"
            raise ImproperConfigurationError(msg)

    def introspection_query(self, placeholder: str = "%s") -> str:
        """Return the introspection SQL with the statement bound to ``placeholder``.

        Args:
            placeholder: Parameter marker of the driver (``%s`` for psycopg, ``$1`` for asyncpg).

        Returns:
            The introspection query text.
        """
        return f"SELECT dbname, schema_name, table_name, updated_at FROM {self.introspection_function}({placeholder})"

    def replace(self, **changes: Any) -> "QueryTablesConfig":
        """Return a copy with ``changes`` applied and validated."""
        return replace(self, **changes)
