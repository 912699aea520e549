import logging
from contextlib import contextmanager
from typing import Iterator

from ..core.exceptions import SqlSeamException, TransactionError
from .backend_base import ConnectionInterface

logger = logging.getLogger(__name__)


def _rollback_quietly(connection: ConnectionInterface) -> None:
    """Roll back while another error is propagating; a rollback failure is only logged"""
    try:
        connection.rollback()
    except SqlSeamException as e:
        logger.error(f"Rollback after failed transaction also failed: {e.message}")


@contextmanager
def transaction(connection: ConnectionInterface) -> Iterator[ConnectionInterface]:
    """Run the block in a transaction: commit on success, roll back on error"""
    if not connection.begin_transaction():
        raise TransactionError("Could not begin transaction", error_info=connection.error_info())
    try:
        yield connection
    except Exception:
        _rollback_quietly(connection)
        raise

    try:
        committed = connection.commit()
    except SqlSeamException:
        if connection.in_transaction():
            _rollback_quietly(connection)
        raise
    if not committed:
        error_info = connection.error_info()
        if connection.in_transaction():
            _rollback_quietly(connection)
        raise TransactionError("Could not commit transaction", error_info=error_info)
