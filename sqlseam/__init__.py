"""sqlseam: a driver-neutral connection interface over DB-API drivers."""

from .core.exceptions import (
    ConnectionAttributeError,
    DriverException,
    QuoteError,
    SqlSeamException,
    SqlSeamWarning,
    StatementError,
    TransactionError,
)
from .db import (
    Attribute,
    BaseConnection,
    CaseMode,
    ConnectionInterface,
    ErrorMode,
    FetchMode,
    ParamType,
    SQLiteConnection,
    Statement,
    connect,
    get_connection,
    reset_connection,
    transaction,
)
from .models.options import ErrorInfo, FetchOptions, NO_ERROR

__version__ = "0.1.0"

__all__ = [
    "Attribute",
    "BaseConnection",
    "CaseMode",
    "ConnectionAttributeError",
    "ConnectionInterface",
    "DriverException",
    "ErrorInfo",
    "ErrorMode",
    "FetchMode",
    "FetchOptions",
    "NO_ERROR",
    "ParamType",
    "QuoteError",
    "SQLiteConnection",
    "SqlSeamException",
    "SqlSeamWarning",
    "Statement",
    "StatementError",
    "TransactionError",
    "connect",
    "get_connection",
    "reset_connection",
    "transaction",
]
