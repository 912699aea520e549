"""Connection behaviour shared by the DB-API backed implementations."""
import logging
import warnings
from collections.abc import Mapping as MappingABC
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Type, Union

from pydantic import ValidationError

from ..core.exceptions import (
    ConnectionAttributeError,
    QuoteError,
    SqlSeamException,
    SqlSeamWarning,
    StatementError,
    TransactionError,
)
from ..models.options import NO_ERROR, ErrorInfo, FetchOptions
from . import placeholders
from .attributes import (
    STATEMENT_ATTRIBUTES,
    Attribute,
    AttributeValue,
    CaseMode,
    ErrorMode,
    FetchMode,
    ParamType,
    parse_error_mode,
)
from .backend_base import ConnectionInterface
from .failures import CONNECTION_CLOSED, DriverFailure
from .statement import Statement

logger = logging.getLogger(__name__)

_TRUE_WORDS = frozenset({"1", "true", "t", "yes", "y", "on"})
_FALSE_WORDS = frozenset({"0", "false", "f", "no", "n", "off", ""})


class BaseConnection(ConnectionInterface):
    """ConnectionInterface over a DB-API connection in driver autocommit mode.

    Transactions are driven with explicit BEGIN/COMMIT/ROLLBACK so the
    Idle/InTransaction state is owned here. Subclasses translate driver
    errors, validate statements at prepare time and supply the
    driver-specific attributes, quoting and insert ids.
    """

    driver_name = ""
    driver_errors: Tuple[Type[BaseException], ...] = ()

    writable_attributes: FrozenSet[Attribute] = frozenset(
        {
            Attribute.ERRMODE,
            Attribute.CASE,
            Attribute.STRINGIFY_FETCHES,
            Attribute.DEFAULT_FETCH_MODE,
        }
    )
    readable_attributes: FrozenSet[Attribute] = writable_attributes | {
        Attribute.AUTOCOMMIT,
        Attribute.DRIVER_NAME,
        Attribute.SERVER_VERSION,
        Attribute.CLIENT_VERSION,
    }

    def __init__(self, raw, error_mode: Union[ErrorMode, int, str] = ErrorMode.SILENT):
        self._raw = raw
        self._in_transaction = False
        self._error = NO_ERROR
        self._attributes: Dict[Attribute, Any] = {
            Attribute.ERRMODE: parse_error_mode(error_mode),
            Attribute.CASE: CaseMode.NATURAL,
            Attribute.STRINGIFY_FETCHES: False,
            Attribute.DEFAULT_FETCH_MODE: FetchMode.ASSOC,
        }

    # -- lifecycle ---------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._raw is None

    def close(self) -> None:
        """Release the driver connection, rolling back an open transaction"""
        if self._raw is None:
            return
        try:
            if self._in_transaction:
                logger.warning(f"{self.driver_name}: closing with an open transaction, rolling back")
                self._run("ROLLBACK").close()
        except DriverFailure as e:
            logger.warning(f"{self.driver_name}: rollback on close failed: {e.error_info.message}")
        finally:
            self._raw.close()
            self._raw = None
            self._in_transaction = False
            logger.info(f"{self.driver_name}: connection closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    # -- error bookkeeping -------------------------------------------------

    def _succeed(self) -> None:
        self._error = NO_ERROR

    def _fail(
        self,
        error_cls: Type[SqlSeamException],
        error_info: ErrorInfo,
        sentinel: Any,
        cause: Optional[BaseException] = None,
    ) -> Any:
        """Record a failure and signal it according to the error mode"""
        self._error = error_info
        return self._signal(error_cls, error_info, sentinel, cause)

    def _signal(
        self,
        error_cls: Type[SqlSeamException],
        error_info: ErrorInfo,
        sentinel: Any,
        cause: Optional[BaseException] = None,
    ) -> Any:
        message = f"SQLSTATE[{error_info.sqlstate}]: {error_info.message}"
        logger.warning(f"{self.driver_name}: {message}")
        mode = self._attributes[Attribute.ERRMODE]
        if mode == ErrorMode.EXCEPTION:
            raise error_cls(message, detail=error_info.message, error_info=error_info) from cause
        if mode == ErrorMode.WARNING:
            warnings.warn(message, SqlSeamWarning, stacklevel=4)
        return sentinel

    def _run(self, sql: str, args: Any = None):
        """Execute on a new driver cursor and return it; raises DriverFailure"""
        if self._raw is None:
            raise DriverFailure(CONNECTION_CLOSED)
        logger.debug(f"{self.driver_name}: {sql}")
        try:
            cursor = self._raw.cursor()
            if args is None:
                cursor.execute(sql)
            else:
                cursor.execute(sql, args)
        except self.driver_errors as e:
            raise DriverFailure(self._translate_error(e)) from e
        return cursor

    def error_code(self) -> Optional[str]:
        if not self._error.is_error:
            return None
        return self._error.sqlstate

    def error_info(self) -> ErrorInfo:
        return self._error

    # -- transactions ------------------------------------------------------

    def in_transaction(self) -> bool:
        return self._in_transaction

    def begin_transaction(self) -> bool:
        if self._in_transaction:
            return self._fail(
                TransactionError,
                ErrorInfo("25001", None, "There is already an active transaction"),
                False,
            )
        try:
            self._run("BEGIN").close()
        except DriverFailure as e:
            return self._fail(TransactionError, e.error_info, False, e.__cause__)
        self._in_transaction = True
        self._succeed()
        return True

    def commit(self) -> bool:
        return self._end_transaction("COMMIT")

    def rollback(self) -> bool:
        return self._end_transaction("ROLLBACK")

    def _end_transaction(self, command: str) -> bool:
        if not self._in_transaction:
            return self._fail(
                TransactionError,
                ErrorInfo("25P01", None, "There is no active transaction"),
                False,
            )
        try:
            self._run(command).close()
        except DriverFailure as e:
            # The server may have ended the transaction anyway
            self._in_transaction = self._raw is not None and self._driver_in_transaction()
            return self._fail(TransactionError, e.error_info, False, e.__cause__)
        self._in_transaction = False
        self._succeed()
        return True

    # -- statements --------------------------------------------------------

    def exec(self, sql: str) -> Optional[int]:
        try:
            cursor = self._run(sql)
        except DriverFailure as e:
            return self._fail(StatementError, e.error_info, None, e.__cause__)
        count = cursor.rowcount
        cursor.close()
        self._succeed()
        return count if count > 0 else 0

    def prepare(
        self, sql: str, options: Optional[Mapping[Attribute, Any]] = None
    ) -> Optional[Statement]:
        attributes = dict(self._attributes)
        for key, value in (options or {}).items():
            attribute = self._lookup_attribute(key)
            if attribute not in STATEMENT_ATTRIBUTES:
                return self._fail(
                    ConnectionAttributeError,
                    ErrorInfo("IM001", None, f"Attribute {key!r} cannot be set on a statement"),
                    None,
                )
            try:
                attributes[attribute] = self._normalize_attribute(attribute, value)
            except ValueError as e:
                return self._fail(ConnectionAttributeError, ErrorInfo("HY024", None, str(e)), None)

        try:
            parsed = placeholders.parse(sql)
        except ValueError as e:
            return self._fail(StatementError, ErrorInfo("HY093", None, str(e)), None)

        try:
            self._check_statement(sql, parsed)
        except DriverFailure as e:
            return self._fail(StatementError, e.error_info, None, e.__cause__)

        self._succeed()
        return Statement(self, sql, self._driver_sql(sql, parsed), parsed, attributes)

    def query(
        self, sql: str, fetch: Optional[Union[FetchOptions, FetchMode]] = None
    ) -> Optional[Statement]:
        try:
            fetch_options = FetchOptions.coerce(
                self._attributes[Attribute.DEFAULT_FETCH_MODE] if fetch is None else fetch
            )
        except (ValidationError, ValueError, TypeError) as e:
            return self._fail(StatementError, ErrorInfo("HY000", None, str(e)), None)
        try:
            parsed = placeholders.parse(sql)
        except ValueError as e:
            return self._fail(StatementError, ErrorInfo("HY093", None, str(e)), None)

        statement = Statement(self, sql, self._driver_sql(sql, parsed), parsed, dict(self._attributes))
        statement.set_fetch_mode(fetch_options)
        if not statement.execute():
            return None
        return statement

    def last_insert_id(self, name: Optional[str] = None) -> Optional[str]:
        try:
            value = self._fetch_last_insert_id(name)
        except DriverFailure as e:
            return self._fail(StatementError, e.error_info, None, e.__cause__)
        if value is None:
            return self._fail(
                StatementError, ErrorInfo("HY000", None, "No identifier has been generated"), None
            )
        self._succeed()
        return str(value)

    # -- quoting -----------------------------------------------------------

    def quote(self, value: Any, param_type: ParamType = ParamType.STR) -> Optional[str]:
        try:
            if isinstance(value, (list, tuple, set, frozenset)):
                if not value:
                    raise ValueError("Cannot quote an empty sequence")
                literal = ", ".join(self._quote_scalar(item, param_type) for item in value)
            else:
                literal = self._quote_scalar(value, param_type)
        except ValueError as e:
            return self._fail(QuoteError, ErrorInfo("HY105", None, str(e)), None)
        except DriverFailure as e:
            return self._fail(QuoteError, e.error_info, None, e.__cause__)
        self._succeed()
        return literal

    def _quote_scalar(self, value: Any, param_type: ParamType) -> str:
        if value is None or param_type == ParamType.NULL:
            return "NULL"
        if param_type == ParamType.INT:
            return str(self._to_int(value))
        if param_type == ParamType.BOOL:
            return self._quote_bool(self._to_bool(value))
        if param_type == ParamType.LOB or isinstance(value, (bytes, bytearray, memoryview)):
            return self._quote_bytes(self._to_bytes(value))
        if isinstance(value, bool):
            return self._quote_string(str(int(value)))
        if isinstance(value, (str, int, float, Decimal)):
            return self._quote_string(str(value))
        raise ValueError(f"Cannot quote a value of type {type(value).__name__}")

    @staticmethod
    def _to_int(value: Any) -> int:
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError(f"{value!r} is not an integer")
            return int(value)
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValueError(f"{value!r} is not an integer") from None

    @staticmethod
    def _to_bool(value: Any) -> bool:
        if isinstance(value, (bool, int)):
            return bool(value)
        if isinstance(value, str):
            word = value.strip().lower()
            if word in _TRUE_WORDS:
                return True
            if word in _FALSE_WORDS:
                return False
        raise ValueError(f"{value!r} is not a boolean")

    @staticmethod
    def _to_bytes(value: Any) -> bytes:
        if isinstance(value, str):
            return value.encode("utf-8")
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
        raise ValueError(f"Cannot quote a value of type {type(value).__name__} as a LOB")

    def _quote_string(self, text: str) -> str:
        """Standard SQL string literal"""
        if "\x00" in text:
            raise ValueError("A string literal cannot contain NUL characters")
        return "'" + text.replace("'", "''") + "'"

    def _quote_bool(self, flag: bool) -> str:
        return "1" if flag else "0"

    def _quote_bytes(self, data: bytes) -> str:
        return "X'" + data.hex().upper() + "'"

    def bind_param_value(self, value: Any, param_type: ParamType) -> Any:
        """Coerce a bound value to the Python type the driver expects"""
        if value is None or param_type == ParamType.NULL:
            return None
        if param_type == ParamType.INT:
            return self._to_int(value)
        if param_type == ParamType.BOOL:
            return self._to_bool(value)
        if param_type == ParamType.LOB:
            return self._to_bytes(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
        return value if isinstance(value, str) else str(value)

    # -- attributes --------------------------------------------------------

    @staticmethod
    def _lookup_attribute(attribute: Any) -> Optional[Attribute]:
        if isinstance(attribute, bool):
            return None
        try:
            return Attribute(attribute)
        except ValueError:
            return None

    def get_attribute(self, attribute: Union[Attribute, int]) -> AttributeValue:
        attr = self._lookup_attribute(attribute)
        if attr is None or attr not in self.readable_attributes:
            return self._fail(
                ConnectionAttributeError,
                ErrorInfo("IM001", None, f"Driver does not support attribute {attribute!r}"),
                None,
            )
        try:
            value = self._read_attribute(attr)
        except DriverFailure as e:
            return self._fail(ConnectionAttributeError, e.error_info, None, e.__cause__)
        self._succeed()
        return value

    def set_attribute(self, attribute: Union[Attribute, int], value: Any) -> bool:
        attr = self._lookup_attribute(attribute)
        if attr is None or attr not in self.readable_attributes:
            return self._fail(
                ConnectionAttributeError,
                ErrorInfo("IM001", None, f"Driver does not support attribute {attribute!r}"),
                False,
            )
        if attr not in self.writable_attributes:
            return self._fail(
                ConnectionAttributeError,
                ErrorInfo("HY000", None, f"Attribute {attr.name} is read-only"),
                False,
            )
        try:
            normalized = self._normalize_attribute(attr, value)
        except ValueError as e:
            return self._fail(ConnectionAttributeError, ErrorInfo("HY024", None, str(e)), False)
        if attr in self._attributes:
            self._attributes[attr] = normalized
        else:
            try:
                self._write_driver_attribute(attr, normalized)
            except DriverFailure as e:
                return self._fail(ConnectionAttributeError, e.error_info, False, e.__cause__)
        self._succeed()
        return True

    def _read_attribute(self, attr: Attribute) -> AttributeValue:
        if attr == Attribute.AUTOCOMMIT:
            return not self._in_transaction
        if attr == Attribute.DRIVER_NAME:
            return self.driver_name
        if attr in self._attributes:
            return self._attributes[attr]
        return self._driver_attribute(attr)

    def _normalize_attribute(self, attr: Attribute, value: Any) -> Any:
        """Validate a value for an attribute; raises ValueError"""
        if attr == Attribute.ERRMODE:
            return parse_error_mode(value)
        if attr == Attribute.CASE:
            return CaseMode(value)
        if attr == Attribute.STRINGIFY_FETCHES:
            if isinstance(value, bool) or value in (0, 1):
                return bool(value)
            raise ValueError(f"STRINGIFY_FETCHES expects a boolean, got {value!r}")
        if attr == Attribute.DEFAULT_FETCH_MODE:
            if isinstance(value, MappingABC) or isinstance(value, FetchOptions):
                raise ValueError("DEFAULT_FETCH_MODE expects a fetch mode, not options")
            mode = FetchMode(value)
            if mode == FetchMode.CLASS:
                raise ValueError("CLASS fetch mode needs a class; pass FetchOptions to query() instead")
            return mode
        raise ValueError(f"Attribute {attr.name} cannot be set")

    # -- driver hooks ------------------------------------------------------

    def _driver_sql(self, sql: str, parsed: placeholders.ParsedQuery) -> str:
        """Statement text in the driver's paramstyle"""
        return sql

    def _translate_error(self, exc: BaseException) -> ErrorInfo:
        raise NotImplementedError

    def _driver_in_transaction(self) -> bool:
        raise NotImplementedError

    def _check_statement(self, sql: str, parsed: placeholders.ParsedQuery) -> None:
        """Ask the server to validate a statement; raises DriverFailure"""
        raise NotImplementedError

    def _driver_attribute(self, attr: Attribute) -> AttributeValue:
        raise NotImplementedError

    def _write_driver_attribute(self, attr: Attribute, value: Any) -> None:
        raise NotImplementedError

    def _fetch_last_insert_id(self, name: Optional[str]) -> Any:
        raise NotImplementedError
