"""Prepared statement handle."""
import logging
from collections.abc import Mapping
from types import SimpleNamespace
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Type, Union

from ..core.exceptions import SqlSeamException, StatementError
from ..models.options import NO_ERROR, ErrorInfo, FetchOptions
from .attributes import Attribute, CaseMode, FetchMode, ParamType
from .failures import DriverFailure
from .placeholders import ParsedQuery

if TYPE_CHECKING:
    from .connection import BaseConnection

logger = logging.getLogger(__name__)

NOT_EXECUTED = ErrorInfo("HY010", None, "Statement has not been executed")


class Statement:
    """A statement prepared on, and owned by, one connection.

    The handle can be executed repeatedly. Failures follow the owning
    connection's error mode and are mirrored onto the connection's last
    error. A statement stops working once its connection is closed.
    """

    def __init__(
        self,
        connection: "BaseConnection",
        query_string: str,
        driver_sql: str,
        parsed: ParsedQuery,
        attributes: Dict[Attribute, Any],
    ):
        self._connection = connection
        self.query_string = query_string
        self._driver_sql = driver_sql
        self._parsed = parsed
        self._case = attributes[Attribute.CASE]
        self._stringify = attributes[Attribute.STRINGIFY_FETCHES]
        self._fetch = FetchOptions.coerce(attributes[Attribute.DEFAULT_FETCH_MODE])
        self._bound: Dict[Union[int, str], Any] = {}
        self._cursor = None
        self._executed = False
        self._row_count = 0
        self._error = NO_ERROR

    def __repr__(self):
        return f"<Statement {self.query_string!r}>"

    @property
    def connection(self) -> "BaseConnection":
        return self._connection

    def error_code(self) -> Optional[str]:
        if not self._error.is_error:
            return None
        return self._error.sqlstate

    def error_info(self) -> ErrorInfo:
        return self._error

    def _succeed(self) -> None:
        self._error = NO_ERROR
        self._connection._succeed()

    def _fail(
        self,
        error_cls: Type[SqlSeamException],
        error_info: ErrorInfo,
        sentinel: Any,
        cause: Optional[BaseException] = None,
    ) -> Any:
        self._error = error_info
        return self._connection._fail(error_cls, error_info, sentinel, cause)

    # -- parameters --------------------------------------------------------

    def _parameter_key(self, param: Union[int, str]) -> Optional[Union[int, str]]:
        if isinstance(param, str):
            name = param.lstrip(":")
            return name if name in self._parsed.names else None
        if isinstance(param, int) and not isinstance(param, bool):
            return param if 1 <= param <= self._parsed.positional else None
        return None

    def bind_value(
        self, param: Union[int, str], value: Any, param_type: ParamType = ParamType.STR
    ) -> bool:
        """Bind a value to a 1-based position or a ``:name`` placeholder"""
        key = self._parameter_key(param)
        if key is None:
            return self._fail(
                StatementError, ErrorInfo("HY093", None, f"Invalid parameter {param!r}"), False
            )
        try:
            self._bound[key] = self._connection.bind_param_value(value, param_type)
        except ValueError as e:
            return self._fail(StatementError, ErrorInfo("HY105", None, str(e)), False)
        self._succeed()
        return True

    def _bound_args(self) -> Any:
        if self._parsed.names:
            return dict(self._bound)
        missing = [str(i) for i in range(1, self._parsed.positional + 1) if i not in self._bound]
        if missing:
            raise ValueError(f"No value bound for parameter(s) {', '.join(missing)}")
        return tuple(self._bound[i] for i in range(1, self._parsed.positional + 1))

    def _build_args(self, params: Any) -> Any:
        if params is None:
            params = self._bound_args()

        if not self._parsed.count:
            if params:
                raise ValueError("Statement has no placeholders but parameters were given")
            return None

        if self._parsed.names:
            if not isinstance(params, Mapping):
                raise ValueError("Named placeholders need a mapping of parameters")
            values = {str(key).lstrip(":"): value for key, value in params.items()}
            missing = [name for name in self._parsed.names if name not in values]
            if missing:
                raise ValueError(f"No value bound for parameter(s) {', '.join(missing)}")
            extra = [name for name in values if name not in self._parsed.names]
            if extra:
                raise ValueError(f"Unknown parameter(s) {', '.join(extra)}")
            return values

        if isinstance(params, (Mapping, str, bytes)):
            raise ValueError("Positional placeholders need a sequence of parameters")
        values = tuple(params)
        if len(values) != self._parsed.positional:
            raise ValueError(
                f"Expected {self._parsed.positional} parameter(s), got {len(values)}"
            )
        return values

    # -- execution ---------------------------------------------------------

    def execute(self, params: Any = None) -> bool:
        """Execute with a sequence (``?``) or mapping (``:name``) of values

        Without ``params`` the values given to bind_value() are used.
        """
        try:
            args = self._build_args(params)
        except ValueError as e:
            return self._fail(StatementError, ErrorInfo("HY093", None, str(e)), False)

        self.close_cursor()
        try:
            cursor = self._connection._run(self._driver_sql, args)
        except DriverFailure as e:
            return self._fail(StatementError, e.error_info, False, e.__cause__)

        self._cursor = cursor
        self._executed = True
        self._row_count = cursor.rowcount if cursor.rowcount > 0 else 0
        self._succeed()
        return True

    def row_count(self) -> int:
        return self._row_count

    def column_count(self) -> int:
        if self._cursor is None or self._cursor.description is None:
            return 0
        return len(self._cursor.description)

    def close_cursor(self) -> bool:
        """Free the result set so the statement can be executed again"""
        if self._cursor is not None:
            try:
                self._cursor.close()
            except self._connection.driver_errors as e:
                logger.debug(f"Ignoring error closing cursor: {str(e)}")
            self._cursor = None
        return True

    # -- fetching ----------------------------------------------------------

    def set_fetch_mode(self, fetch: Union[FetchOptions, FetchMode, int]) -> bool:
        try:
            self._fetch = FetchOptions.coerce(fetch)
        except (ValueError, TypeError) as e:
            return self._fail(StatementError, ErrorInfo("HY000", None, str(e)), False)
        self._succeed()
        return True

    def _options(self, fetch: Optional[Union[FetchOptions, FetchMode, int]]) -> FetchOptions:
        return self._fetch if fetch is None else FetchOptions.coerce(fetch)

    def _column_names(self) -> List[str]:
        names = [column[0] for column in self._cursor.description]
        if self._case == CaseMode.LOWER:
            return [name.lower() for name in names]
        if self._case == CaseMode.UPPER:
            return [name.upper() for name in names]
        return names

    def _next_row(self):
        if not self._executed:
            raise DriverFailure(NOT_EXECUTED)
        if self._cursor is None or self._cursor.description is None:
            return None
        try:
            return self._cursor.fetchone()
        except self._connection.driver_errors as e:
            raise DriverFailure(self._connection._translate_error(e)) from e

    def _shape(self, row, options: FetchOptions) -> Any:
        values = tuple(row)
        if self._stringify:
            values = tuple(
                value if value is None or isinstance(value, (bytes, bytearray, memoryview)) else str(value)
                for value in values
            )

        if options.mode == FetchMode.NUM:
            return values
        if options.mode == FetchMode.COLUMN:
            if options.column >= len(values):
                raise ValueError(f"Invalid column index {options.column}")
            return values[options.column]
        if options.mode == FetchMode.KEY_PAIR:
            if len(values) != 2:
                raise ValueError("KEY_PAIR fetch mode requires exactly two columns")
            return values[0], values[1]

        row_dict = dict(zip(self._column_names(), values))
        if options.mode == FetchMode.BOTH:
            both: Dict[Union[int, str], Any] = dict(row_dict)
            both.update(enumerate(values))
            return both
        if options.mode == FetchMode.OBJ:
            return SimpleNamespace(**row_dict)
        if options.mode == FetchMode.CLASS:
            return options.cls(*options.ctor_args, **row_dict)
        return row_dict

    def fetch(self, fetch: Optional[Union[FetchOptions, FetchMode]] = None) -> Any:
        """Next row in the fetch mode, or None when the result set is exhausted"""
        try:
            options = self._options(fetch)
            row = self._next_row()
            shaped = None if row is None else self._shape(row, options)
        except DriverFailure as e:
            return self._fail(StatementError, e.error_info, None, e.__cause__)
        except (ValueError, TypeError) as e:
            return self._fail(StatementError, ErrorInfo("HY000", None, str(e)), None)
        self._succeed()
        return shaped

    def fetch_all(self, fetch: Optional[Union[FetchOptions, FetchMode]] = None) -> Any:
        """Remaining rows as a list; KEY_PAIR mode returns a dict"""
        try:
            options = self._options(fetch)
            rows = []
            while True:
                row = self._next_row()
                if row is None:
                    break
                rows.append(self._shape(row, options))
        except DriverFailure as e:
            return self._fail(StatementError, e.error_info, None, e.__cause__)
        except (ValueError, TypeError) as e:
            return self._fail(StatementError, ErrorInfo("HY000", None, str(e)), None)
        self._succeed()
        if options.mode == FetchMode.KEY_PAIR:
            return dict(rows)
        return rows

    def fetch_column(self, column: int = 0) -> Any:
        """One column of the next row; None is also returned at the end"""
        if column < 0:
            return self._fail(
                StatementError, ErrorInfo("HY000", None, f"Invalid column index {column}"), None
            )
        return self.fetch(FetchOptions(mode=FetchMode.COLUMN, column=column))

    def __iter__(self):
        while True:
            try:
                row = self._next_row()
                shaped = None if row is None else self._shape(row, self._fetch)
            except DriverFailure as e:
                self._fail(StatementError, e.error_info, None, e.__cause__)
                return
            except (ValueError, TypeError) as e:
                self._fail(StatementError, ErrorInfo("HY000", None, str(e)), None)
                return
            self._succeed()
            if row is None:
                return
            yield shaped
