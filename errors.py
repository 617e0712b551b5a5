"""
Custom exceptions for the tickets ETL pipeline.

Every failure here is fatal for the run: nothing is retried and no table is
loaded once a transform has raised.
"""

from typing import Any, List, Optional


class TicketsETLError(Exception):
    """Base exception for all tickets ETL errors."""

    pass


class ConfigError(TicketsETLError):
    """Raised when required configuration (store, database URL) is missing or invalid."""

    pass


class ParseError(TicketsETLError):
    """Raised when a date token or store identifier cannot be parsed."""

    def __init__(self, message: str, column: Optional[str] = None, values: Optional[List[Any]] = None):
        self.column = column
        self.values = values or []

        parts = [message]
        if column:
            parts.append(f"Column: {column}")
        if self.values:
            parts.append(f"Values: {', '.join(repr(v) for v in self.values)}")

        super().__init__(" | ".join(parts))


class DuplicateTicketError(ParseError):
    """Raised when a ticketId repeats across header rows."""

    pass


class FormatError(TicketsETLError):
    """Raised when one or more price fields do not match the currency format.

    ``rows`` holds one (row_number, ticket_id, raw_value) tuple per bad row.
    """

    def __init__(self, message: str, column: Optional[str] = None, rows: Optional[List[tuple]] = None):
        self.column = column
        self.rows = rows or []

        parts = [message]
        if column:
            parts.append(f"Column: {column}")
        for row_number, ticket_id, raw in self.rows[:5]:
            parts.append(f"Row {row_number} (ticket {ticket_id}): {raw!r}")
        if len(self.rows) > 5:
            parts.append(f"... and {len(self.rows) - 5} more")

        super().__init__(" | ".join(parts))


class LoadError(TicketsETLError):
    """Raised when a source file cannot be read or a database operation fails."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        if original_error:
            message = f"{message} (Original error: {original_error})"
        super().__init__(message)
