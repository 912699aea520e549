"""SQLite connection."""
import logging
import math
import sqlite3
from typing import Any, Optional

from ..core.exceptions import SqlSeamException
from ..models.options import ErrorInfo
from .attributes import Attribute, AttributeValue, ErrorMode
from .connection import BaseConnection
from .placeholders import ParsedQuery

logger = logging.getLogger(__name__)


class SQLiteConnection(BaseConnection):
    """SQLite connection implementation.

    The sqlite3 module runs with ``isolation_level=None`` so it never
    opens transactions on its own. SQLite has no nested transactions.
    """

    driver_name = "sqlite"
    driver_errors = (sqlite3.Error,)

    writable_attributes = BaseConnection.writable_attributes | {Attribute.TIMEOUT}
    readable_attributes = BaseConnection.readable_attributes | {Attribute.TIMEOUT}

    def __init__(
        self,
        db_path: str = ":memory:",
        timeout: float = 5.0,
        error_mode: ErrorMode = ErrorMode.SILENT,
    ):
        self.db_path = db_path
        self._timeout = timeout
        try:
            raw = sqlite3.connect(db_path, timeout=timeout, isolation_level=None)
            raw.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as e:
            logger.error(f"Failed to open SQLite database {db_path}: {str(e)}")
            raise SqlSeamException(
                "Could not connect to database", detail=str(e), error_info=self._translate_error(e)
            ) from e
        super().__init__(raw, error_mode=error_mode)
        logger.info(f"SQLiteConnection opened: {self.db_path}")

    def _translate_error(self, exc: BaseException) -> ErrorInfo:
        sqlstate = "23000" if isinstance(exc, sqlite3.IntegrityError) else "HY000"
        return ErrorInfo(sqlstate, getattr(exc, "sqlite_errorcode", None), str(exc))

    def _driver_in_transaction(self) -> bool:
        return self._raw.in_transaction

    def _check_statement(self, sql: str, parsed: ParsedQuery) -> None:
        # EXPLAIN compiles the statement without running it
        if parsed.names:
            args: Any = {name: None for name in parsed.names}
        else:
            args = (None,) * parsed.positional
        self._run(f"EXPLAIN {sql}", args).close()

    def _driver_attribute(self, attr: Attribute) -> AttributeValue:
        if attr in (Attribute.SERVER_VERSION, Attribute.CLIENT_VERSION):
            return sqlite3.sqlite_version
        if attr == Attribute.TIMEOUT:
            return self._timeout
        raise ValueError(f"Unsupported attribute {attr.name}")

    def _normalize_attribute(self, attr: Attribute, value: Any) -> Any:
        if attr == Attribute.TIMEOUT:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"TIMEOUT expects a number of seconds, got {value!r}")
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"TIMEOUT expects a finite, non-negative number of seconds, got {value!r}")
            return value
        return super()._normalize_attribute(attr, value)

    def _write_driver_attribute(self, attr: Attribute, value: Any) -> None:
        self._run(f"PRAGMA busy_timeout = {int(value * 1000)}").close()
        self._timeout = value

    def _fetch_last_insert_id(self, name: Optional[str]) -> Any:
        cursor = self._run("SELECT last_insert_rowid()")
        row = cursor.fetchone()
        cursor.close()
        return row[0]
