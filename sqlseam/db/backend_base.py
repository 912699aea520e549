"""Abstract connection interface."""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from ..models.options import ErrorInfo, FetchOptions
from .attributes import Attribute, AttributeValue, FetchMode, ParamType

if TYPE_CHECKING:
    from .statement import Statement


class ConnectionInterface(ABC):
    """Capability contract of a database connection.

    Calling code depends on this interface rather than on a concrete
    driver, so any implementation (including a test double) can be
    substituted. Failed operations return a sentinel (``False`` for the
    boolean operations, ``None`` otherwise) and leave a diagnostic in
    error_code()/error_info(); a connection in exception error mode raises
    instead.

    A connection is not safe for concurrent use. Use one per thread or
    serialize access.
    """

    @abstractmethod
    def begin_transaction(self) -> bool:
        """Begin a transaction and turn off autocommit mode.

        Fails when a transaction is already active.
        """
        pass

    @abstractmethod
    def commit(self) -> bool:
        """Commit the active transaction and restore autocommit mode."""
        pass

    @abstractmethod
    def rollback(self) -> bool:
        """Roll back the active transaction and restore autocommit mode."""
        pass

    @abstractmethod
    def in_transaction(self) -> bool:
        """Is a transaction currently active?"""
        pass

    @abstractmethod
    def error_code(self) -> Optional[str]:
        """SQLSTATE of the most recent operation, or None if it succeeded."""
        pass

    @abstractmethod
    def error_info(self) -> ErrorInfo:
        """(sqlstate, driver code, driver message) of the most recent operation."""
        pass

    @abstractmethod
    def exec(self, sql: str) -> Optional[int]:
        """Execute a statement immediately and return the affected row count."""
        pass

    @abstractmethod
    def prepare(
        self, sql: str, options: Optional[Mapping[Attribute, Any]] = None
    ) -> Optional["Statement"]:
        """Prepare a statement for execution.

        ``options`` sets statement-level attributes on the returned handle.
        """
        pass

    @abstractmethod
    def query(
        self, sql: str, fetch: Optional[Union[FetchOptions, FetchMode]] = None
    ) -> Optional["Statement"]:
        """Prepare and execute a statement, returning it ready to fetch."""
        pass

    @abstractmethod
    def quote(self, value: Any, param_type: ParamType = ParamType.STR) -> Optional[str]:
        """Quote a value as an SQL literal."""
        pass

    @abstractmethod
    def get_attribute(self, attribute: Union[Attribute, int]) -> AttributeValue:
        """Get a connection attribute value."""
        pass

    @abstractmethod
    def set_attribute(self, attribute: Union[Attribute, int], value: Any) -> bool:
        """Set a connection attribute value."""
        pass

    @abstractmethod
    def last_insert_id(self, name: Optional[str] = None) -> Optional[str]:
        """Return the last generated identifier.

        ``name`` is the sequence to read, for drivers that need one
        (PostgreSQL: ``<table>_<column>_seq``).
        """
        pass
