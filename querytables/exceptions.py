from typing import Any, Optional

__all__ = (
    "ImproperConfigurationError",
    "IntrospectionError",
    "QueryTablesError",
)


class QueryTablesError(Exception):
    """Root of every error raised while resolving the tables of a query.

    Catching it separates configuration and introspection failures
    from driver errors, which propagate unwrapped.
    """

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Keep a one-line ``detail`` next to the positional context.

        Args:
            *args: Context values; falsy ones are dropped and the rest stringified.
                Without an explicit ``detail`` the first one becomes the detail.
            detail: Short description of what went wrong. Subclasses may set a
                class-level default that applies when neither source gives one.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class ImproperConfigurationError(QueryTablesError):
    """Improper Configuration error.

    Raised when a configuration value cannot be used as given.
    """


class IntrospectionError(QueryTablesError):
    """Table introspection produced something that cannot be turned into table metadata."""

    statement: Optional[str]

    def __init__(self, message: str, statement: Optional[str] = None) -> None:
        """Initialize with optional statement context."""
        detail_message = message
        if statement:
            detail_message = f"{message}\nSQL: {statement}"
        super().__init__(detail=detail_message)
        self.statement = statement
