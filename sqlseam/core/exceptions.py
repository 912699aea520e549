"""Custom exceptions for sqlseam"""

from typing import Any, Optional


class SqlSeamException(Exception):
    """Base exception for sqlseam"""

    def __init__(
        self,
        message: str,
        detail: Optional[str] = None,
        error_info: Optional[Any] = None,
    ):
        self.message = message
        self.detail = detail
        self.error_info = error_info
        super().__init__(self.message)

    @property
    def sqlstate(self) -> Optional[str]:
        """SQLSTATE of the failure, when one was recorded"""
        if self.error_info is None:
            return None
        return self.error_info.sqlstate


class TransactionError(SqlSeamException):
    """Invalid transaction state transition"""

    def __init__(self, message: str = "Transaction operation failed", detail: Optional[str] = None, error_info: Optional[Any] = None):
        super().__init__(message, detail=detail, error_info=error_info)


class StatementError(SqlSeamException):
    """SQL rejected by the driver during exec, prepare, query or execute"""

    def __init__(self, message: str = "Statement failed", detail: Optional[str] = None, error_info: Optional[Any] = None):
        super().__init__(message, detail=detail, error_info=error_info)


class ConnectionAttributeError(SqlSeamException):
    """Unknown, unsupported or read-only connection attribute"""

    def __init__(self, message: str = "Attribute not supported", detail: Optional[str] = None, error_info: Optional[Any] = None):
        super().__init__(message, detail=detail, error_info=error_info)


class QuoteError(SqlSeamException):
    """Value/type combination the driver cannot quote"""

    def __init__(self, message: str = "Value cannot be quoted", detail: Optional[str] = None, error_info: Optional[Any] = None):
        super().__init__(message, detail=detail, error_info=error_info)


class DriverException(SqlSeamException):
    """Unknown driver or malformed DSN"""

    def __init__(self, message: str = "Could not find driver", detail: Optional[str] = None, error_info: Optional[Any] = None):
        super().__init__(message, detail=detail, error_info=error_info)


class SqlSeamWarning(UserWarning):
    """Emitted for failed operations when the error mode is WARNING"""
