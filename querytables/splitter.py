"""SQL statement splitter driven by an explicit quoting state machine.

The splitter answers one question only: where does one statement end and the
next begin. It never parses grammar, so illegal SQL still splits (into
something meaningless) instead of raising.
"""

import re
from enum import Enum
from typing import Final

from mypy_extensions import mypyc_attr

from querytables.utils.logging import get_logger

__all__ = ("QuoteState", "StatementSplitter", "split_sql_statements")


logger = get_logger("splitter")

STATEMENT_TERMINATOR: Final = ";"

# Text that can be copied to the buffer without looking at it again
_PLAIN_TEXT_PATTERN: Final = re.compile(r"[^'\"$;]+")
_DOLLAR_DELIMITER_PATTERN: Final = re.compile(r"\$(?:[^$\s\d][^$\s]*)?\$")


class QuoteState(Enum):
    """Quoting context of the scanner at the current position."""

    NORMAL = "normal"
    SINGLE_QUOTE = "single_quote"
    DOUBLE_QUOTE = "double_quote"
    DOLLAR_QUOTE = "dollar_quote"


_QUOTE_STATES: Final = {"'": QuoteState.SINGLE_QUOTE, '"': QuoteState.DOUBLE_QUOTE}
_QUOTE_CHARS: Final = {QuoteState.SINGLE_QUOTE: "'", QuoteState.DOUBLE_QUOTE: '"'}


@mypyc_attr(allow_interpreted_subclasses=True)
class StatementSplitter:
    """Splits SQL text on top-level ``;`` with a single left-to-right scan.

    Each quoting state has its own handler. A handler consumes input starting
    at ``pos``, appends what it consumed to the statement buffer and returns
    the state to continue in together with the new position. Positions only
    ever move forward, so the scan is linear and ends at end of input whatever
    state it is in.
    """

    __slots__ = ()

    def split(self, sql: str) -> "list[str]":
        """Split ``sql`` into trimmed, non-empty statements in original order.

        Args:
            sql: Zero or more ``;`` separated SQL statements.

        Returns:
            The statements without their terminating ``;``.
        """
        statements: list[str] = []
        buffer: list[str] = []
        state = QuoteState.NORMAL
        delimiter = ""
        pos = 0
        length = len(sql)

        while pos < length:
            if state is QuoteState.NORMAL:
                state, delimiter, pos = self._scan_normal(sql, pos, buffer, statements)
            elif state is QuoteState.DOLLAR_QUOTE:
                state, pos = self._scan_dollar_quote(sql, pos, delimiter, buffer)
            else:
                state, pos = self._scan_quoted(sql, pos, _QUOTE_CHARS[state], buffer)

        if state is not QuoteState.NORMAL:
            logger.debug("Unterminated %s at end of SQL input", state.value)
        self._flush(buffer, statements)
        return statements

    def _scan_normal(
        self, sql: str, pos: int, buffer: "list[str]", statements: "list[str]"
    ) -> "tuple[QuoteState, str, int]":
        char = sql[pos]

        if char == STATEMENT_TERMINATOR:
            self._flush(buffer, statements)
            return QuoteState.NORMAL, "", pos + 1

        if char in _QUOTE_STATES:
            buffer.append(char)
            return _QUOTE_STATES[char], "", pos + 1

        if char == "$":
            match = _DOLLAR_DELIMITER_PATTERN.match(sql, pos)
            if match:
                delimiter = match.group(0)
                buffer.append(delimiter)
                return QuoteState.DOLLAR_QUOTE, delimiter, match.end()
            buffer.append(char)
            return QuoteState.NORMAL, "", pos + 1

        match = _PLAIN_TEXT_PATTERN.match(sql, pos)
        end = match.end() if match else pos + 1
        buffer.append(sql[pos:end])
        return QuoteState.NORMAL, "", end

    def _scan_quoted(self, sql: str, pos: int, quote: str, buffer: "list[str]") -> "tuple[QuoteState, int]":
        """Consume a single or double quoted region, where a doubled quote is an escaped quote."""
        while True:
            end = sql.find(quote, pos)
            if end == -1:
                buffer.append(sql[pos:])
                return _QUOTE_STATES[quote], len(sql)
            if sql.startswith(quote, end + 1):
                buffer.append(sql[pos : end + 2])
                pos = end + 2
                continue
            buffer.append(sql[pos : end + 1])
            return QuoteState.NORMAL, end + 1

    def _scan_dollar_quote(
        self, sql: str, pos: int, delimiter: str, buffer: "list[str]"
    ) -> "tuple[QuoteState, int]":
        """Consume a dollar-quoted body; only the exact opening delimiter closes it."""
        end = sql.find(delimiter, pos)
        if end == -1:
            buffer.append(sql[pos:])
            return QuoteState.DOLLAR_QUOTE, len(sql)
        close = end + len(delimiter)
        buffer.append(sql[pos:close])
        return QuoteState.NORMAL, close

    @staticmethod
    def _flush(buffer: "list[str]", statements: "list[str]") -> None:
        statement = "".join(buffer).strip()
        if statement:
            statements.append(statement)
        buffer.clear()


_default_splitter: Final = StatementSplitter()


def split_sql_statements(sql: str) -> "list[str]":
    """Split a SQL script into its individual statements.

    Args:
        sql: The SQL text to split.

    Returns:
        List of trimmed, non-empty statements without terminators.
    """
    return _default_splitter.split(sql)
