import logging
from typing import Dict, Optional, Tuple, Union

from ..core.config import Settings, get_settings
from ..core.exceptions import DriverException
from .attributes import ErrorMode, parse_error_mode
from .connection import BaseConnection
from .sqlite_backend import SQLiteConnection

logger = logging.getLogger(__name__)

# Process-wide connection built from settings
_CONNECTION: Optional[BaseConnection] = None

_POSTGRES_PREFIXES = ("pgsql", "postgres", "postgresql")


def parse_dsn(dsn: str) -> Tuple[str, Dict[str, str]]:
    """Split a DSN into a driver name and its connection parameters

    ``sqlite:<path>`` (``sqlite::memory:`` for an in-memory database) or
    ``pgsql:host=...;port=...;dbname=...``.
    """
    prefix, separator, rest = dsn.partition(":")
    driver = prefix.strip().lower()
    if not separator or not driver:
        raise DriverException("Invalid data source name", detail=dsn)

    if driver == "sqlite":
        return "sqlite", {"db_path": rest or ":memory:"}

    if driver in _POSTGRES_PREFIXES:
        params = {}
        for part in rest.split(";"):
            if not part.strip():
                continue
            key, equals, value = part.partition("=")
            if not equals or not key.strip():
                raise DriverException("Invalid data source name", detail=f"Malformed DSN segment {part!r}")
            params[key.strip().lower()] = value.strip()
        return "pgsql", params

    raise DriverException("Could not find driver", detail=prefix)


def connect(
    dsn: str,
    user: Optional[str] = None,
    password: Optional[str] = None,
    error_mode: Union[ErrorMode, int, str] = ErrorMode.SILENT,
    timeout: float = 5.0,
) -> BaseConnection:
    """Open a connection for a DSN"""
    driver, params = parse_dsn(dsn)
    mode = parse_error_mode(error_mode)

    if driver == "sqlite":
        return SQLiteConnection(params["db_path"], timeout=timeout, error_mode=mode)

    # Imported here so SQLite-only use does not load psycopg2
    from .postgres_backend import PostgresConnection

    if user:
        params["user"] = user
    if password:
        params["password"] = password
    return PostgresConnection(error_mode=mode, **params)


def get_connection(settings: Optional[Settings] = None) -> BaseConnection:
    """Shared connection configured from settings (singleton pattern)"""
    global _CONNECTION

    try:
        if _CONNECTION is not None and not _CONNECTION.closed:
            return _CONNECTION

        settings = settings or get_settings()
        logger.info(f"Creating connection for {settings.db_dsn.partition(':')[0]} DSN")
        _CONNECTION = connect(
            settings.db_dsn,
            user=settings.db_user or None,
            password=settings.db_password or None,
            error_mode=settings.error_mode,
            timeout=settings.sqlite_timeout,
        )
        logger.info("Database connection created successfully")
        return _CONNECTION

    except Exception as e:
        logger.error(f"Failed to create database connection: {str(e)}", exc_info=True)
        raise


def reset_connection() -> None:
    """Close and forget the shared connection"""
    global _CONNECTION

    if _CONNECTION is not None:
        _CONNECTION.close()
        _CONNECTION = None
