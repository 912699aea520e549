"""PostgreSQL connection."""
import itertools
import logging
from typing import Any, Optional

import psycopg2
import psycopg2.extensions

from ..core.exceptions import SqlSeamException
from ..models.options import ErrorInfo
from . import placeholders
from .attributes import Attribute, AttributeValue, ErrorMode
from .connection import BaseConnection
from .failures import CONNECTION_CLOSED, DriverFailure
from .placeholders import ParsedQuery

logger = logging.getLogger(__name__)

# Utility statements PREPARE cannot take; they are checked when executed
_UTILITY = frozenset(
    {
        "ABORT", "ALTER", "ANALYZE", "BEGIN", "CALL", "CHECKPOINT", "CLOSE", "CLUSTER",
        "COMMENT", "COMMIT", "COPY", "CREATE", "DEALLOCATE", "DECLARE", "DISCARD", "DO",
        "DROP", "END", "EXECUTE", "EXPLAIN", "FETCH", "GRANT", "IMPORT", "LISTEN", "LOAD",
        "LOCK", "MOVE", "NOTIFY", "PREPARE", "REASSIGN", "REFRESH", "REINDEX", "RELEASE",
        "RESET", "REVOKE", "ROLLBACK", "SAVEPOINT", "SECURITY", "SET", "SHOW", "START",
        "TRUNCATE", "UNLISTEN", "VACUUM",
    }
)


def format_version(number: int) -> str:
    """Render a libpq/server version number (e.g. 150004 -> '15.4')"""
    if number >= 100000:
        return f"{number // 10000}.{number % 10000}"
    return f"{number // 10000}.{(number // 100) % 100}.{number % 100}"


class PostgresConnection(BaseConnection):
    """PostgreSQL connection implementation.

    psycopg2 runs in autocommit mode and transactions are issued
    explicitly. Statements are rewritten from ``?``/``:name`` to the
    driver's ``%s``/``%(name)s`` placeholders. Note that any failed
    statement inside a transaction aborts it until rollback().
    """

    driver_name = "pgsql"
    driver_errors = (psycopg2.Error,)

    readable_attributes = BaseConnection.readable_attributes | {Attribute.CONNECTION_STATUS}

    _check_names = itertools.count(1)

    def __init__(
        self,
        host: str = "localhost",
        port: str = "5432",
        dbname: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        error_mode: ErrorMode = ErrorMode.SILENT,
        **extra: str,
    ):
        self.conn_params = {
            "host": host,
            "port": port,
            "dbname": dbname,
            "user": user,
            "password": password,
            **extra,
        }
        self.conn_params = {key: value for key, value in self.conn_params.items() if value not in (None, "")}
        try:
            raw = psycopg2.connect(**self.conn_params)
            raw.autocommit = True
        except psycopg2.Error as e:
            logger.error(f"Failed to connect to PostgreSQL at {host}:{port}: {str(e)}")
            raise SqlSeamException(
                "Could not connect to database", detail=str(e), error_info=self._translate_error(e)
            ) from e
        super().__init__(raw, error_mode=error_mode)
        logger.info(f"PostgresConnection opened: {host}:{port}/{dbname or ''}")

    def _translate_error(self, exc: BaseException) -> ErrorInfo:
        pgcode = getattr(exc, "pgcode", None)
        message = getattr(exc, "pgerror", None) or str(exc)
        if pgcode:
            sqlstate = pgcode
        elif isinstance(exc, (psycopg2.InterfaceError, psycopg2.OperationalError)):
            sqlstate = "08006"
        else:
            sqlstate = "HY000"
        return ErrorInfo(sqlstate, pgcode, message.strip())

    def _driver_in_transaction(self) -> bool:
        status = self._raw.get_transaction_status()
        return status != psycopg2.extensions.TRANSACTION_STATUS_IDLE

    def _driver_sql(self, sql: str, parsed: ParsedQuery) -> str:
        # Without placeholders the statement is sent without parameters,
        # so percent signs must stay as written
        if not parsed.count:
            return sql
        return placeholders.to_pyformat(sql)

    def _check_statement(self, sql: str, parsed: ParsedQuery) -> None:
        if placeholders.leading_keyword(sql) in _UTILITY:
            return
        name = f"sqlseam_check_{next(self._check_names)}"
        self._run(f"PREPARE {name} AS {placeholders.to_numbered(sql)}").close()
        self._run(f"DEALLOCATE {name}").close()

    def _driver_attribute(self, attr: Attribute) -> AttributeValue:
        if self._raw is None:
            if attr == Attribute.CONNECTION_STATUS:
                return "Connection bad"
            raise DriverFailure(CONNECTION_CLOSED)
        if attr == Attribute.SERVER_VERSION:
            return format_version(self._raw.server_version)
        if attr == Attribute.CLIENT_VERSION:
            return format_version(psycopg2.extensions.libpq_version())
        if attr == Attribute.CONNECTION_STATUS:
            if self._raw.closed:
                return "Connection bad"
            return "Connection OK; waiting to send."
        raise ValueError(f"Unsupported attribute {attr.name}")

    def _fetch_last_insert_id(self, name: Optional[str]) -> Any:
        if name:
            cursor = self._run("SELECT currval(%s)", (name,))
        else:
            cursor = self._run("SELECT lastval()")
        row = cursor.fetchone()
        cursor.close()
        return row[0]

    def _mogrify(self, value: Any) -> str:
        if self._raw is None:
            raise DriverFailure(CONNECTION_CLOSED)
        try:
            cursor = self._raw.cursor()
            try:
                quoted = cursor.mogrify("%s", (value,))
            finally:
                cursor.close()
        except self.driver_errors as e:
            raise DriverFailure(self._translate_error(e)) from e
        encoding = psycopg2.extensions.encodings.get(self._raw.encoding, "utf-8")
        return quoted.decode(encoding)

    def _quote_string(self, text: str) -> str:
        return self._mogrify(text)

    def _quote_bool(self, flag: bool) -> str:
        return "TRUE" if flag else "FALSE"

    def _quote_bytes(self, data: bytes) -> str:
        return self._mogrify(psycopg2.Binary(data))
