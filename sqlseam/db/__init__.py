from .attributes import Attribute, CaseMode, ErrorMode, FetchMode, ParamType
from .backend_base import ConnectionInterface
from .connection import BaseConnection
from .statement import Statement
from .sqlite_backend import SQLiteConnection
from .database import connect, get_connection, parse_dsn, reset_connection
from .transaction import transaction
# Note: postgres_backend imported on demand to avoid requiring psycopg2 for SQLite use

__all__ = [
    "Attribute",
    "BaseConnection",
    "CaseMode",
    "ConnectionInterface",
    "ErrorMode",
    "FetchMode",
    "ParamType",
    "SQLiteConnection",
    "Statement",
    "connect",
    "get_connection",
    "parse_dsn",
    "reset_connection",
    "transaction",
]
