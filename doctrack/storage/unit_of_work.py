"""
Scoped units of work.

Every store operation runs inside ``unit_of_work``: one session, one
transaction, committed on a normal exit and rolled back on any exception.
The session is closed on every path. Driver failures are translated into the
storage error taxonomy here and nowhere else.
"""

from collections.abc import Callable, Iterator
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session

from doctrack.core.logger import doctrack_logger as logger
from doctrack.storage.errors import SerializationFailureError, StoreUnavailableError

# serialization_failure and deadlock_detected
RETRYABLE_SQLSTATES = frozenset({'40001', '40P01'})
SQLITE_LOCKED_MESSAGES = ('database is locked', 'database table is locked')
UNIQUE_VIOLATION_SQLSTATE = '23505'


def _sqlstate(error: DBAPIError) -> str | None:
    orig = error.orig
    return getattr(orig, 'sqlstate', None) or getattr(orig, 'pgcode', None)


def is_serialization_failure(error: SQLAlchemyError) -> bool:
    if not isinstance(error, DBAPIError):
        return False
    if _sqlstate(error) in RETRYABLE_SQLSTATES:
        return True
    message = str(error.orig).lower()
    return any(locked in message for locked in SQLITE_LOCKED_MESSAGES)


def is_unique_violation(error: SQLAlchemyError) -> bool:
    """Check whether a driver error is a primary key or unique constraint violation."""
    if not isinstance(error, DBAPIError):
        return False
    if _sqlstate(error) == UNIQUE_VIOLATION_SQLSTATE:
        return True
    return str(error.orig).startswith('UNIQUE constraint failed')


def translate_error(error: SQLAlchemyError, operation: str) -> Exception:
    if is_serialization_failure(error):
        logger.info(
            'Transaction aborted by a concurrent write',
            extra={'operation': operation},
        )
        return SerializationFailureError(
            f'{operation} aborted by a concurrent conflicting write'
        )
    logger.error(
        'Store operation failed',
        extra={'operation': operation, 'error': str(error)},
    )
    return StoreUnavailableError(f'{operation} failed: {type(error).__name__}')


@contextmanager
def unit_of_work(
    session_maker: Callable[[], Session],
    *,
    serializable: bool = False,
    operation: str = 'unit_of_work',
) -> Iterator[Session]:
    """Open a session and run one transaction in it.

    Args:
        session_maker: Provider of sessions, typically a ``sessionmaker``
        serializable: Run the transaction at SERIALIZABLE isolation
        operation: Name used in logs and error messages

    Yields:
        Session: A session with an open transaction

    Raises:
        SerializationFailureError: If the transaction lost a serialization
            conflict; safe to retry
        StoreUnavailableError: On any other database failure
    """
    try:
        session = session_maker()
    except SQLAlchemyError as e:
        raise translate_error(e, operation) from e

    with session:
        try:
            with session.begin():
                # SQLite transactions are already serializable
                if serializable and session.get_bind().dialect.name != 'sqlite':
                    session.connection(
                        execution_options={'isolation_level': 'SERIALIZABLE'}
                    )
                yield session
        except SQLAlchemyError as e:
            raise translate_error(e, operation) from e
