"""Attribute identifiers and the enums used as attribute values."""
from enum import IntEnum
from typing import Union


class Attribute(IntEnum):
    """Connection attribute identifiers, numbered like the native constants"""

    AUTOCOMMIT = 0
    TIMEOUT = 2
    ERRMODE = 3
    SERVER_VERSION = 4
    CLIENT_VERSION = 5
    CONNECTION_STATUS = 7
    CASE = 8
    DRIVER_NAME = 16
    STRINGIFY_FETCHES = 17
    DEFAULT_FETCH_MODE = 19


class ErrorMode(IntEnum):
    SILENT = 0
    WARNING = 1
    EXCEPTION = 2


class CaseMode(IntEnum):
    NATURAL = 0
    UPPER = 1
    LOWER = 2


class FetchMode(IntEnum):
    ASSOC = 2
    NUM = 3
    BOTH = 4
    OBJ = 5
    COLUMN = 7
    CLASS = 8
    KEY_PAIR = 12


class ParamType(IntEnum):
    """Data type hints for quote() and Statement.bind_value()"""

    NULL = 0
    INT = 1
    STR = 2
    LOB = 3
    BOOL = 5


AttributeValue = Union[bool, int, str, None]

# Attributes a prepare() options mapping may override per statement
STATEMENT_ATTRIBUTES = frozenset(
    {Attribute.DEFAULT_FETCH_MODE, Attribute.CASE, Attribute.STRINGIFY_FETCHES}
)


def parse_error_mode(value: Union[str, int, ErrorMode]) -> ErrorMode:
    """Resolve an error mode from its name (as used in settings) or number"""
    if isinstance(value, str):
        try:
            return ErrorMode[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown error mode: {value!r}") from None
    return ErrorMode(value)
