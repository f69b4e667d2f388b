"""Unit-of-work helper around an injected SQLAlchemy session."""
import logging
from typing import Callable, TypeVar
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from campus_attendance.utils.errors import AppError, ConflictError, DatabaseError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# SQLSTATE codes a backend raises when a transaction lost a serialization race.
RETRYABLE_SQLSTATES = {'40001', '40P01'}

def is_serialization_failure(error: DBAPIError) -> bool:
    orig = getattr(error, 'orig', None)
    sqlstate = getattr(orig, 'pgcode', None) or getattr(orig, 'sqlstate', None)
    return sqlstate in RETRYABLE_SQLSTATES

def run_in_transaction(db_session, work: Callable[[], T], description: str = 'transaction') -> T:
    """Run ``work`` and commit, as one atomic unit.

    A retryable serialization failure is retried exactly once; the second
    failure becomes a ConflictError. Other persistence failures become
    DatabaseError. Application errors roll back and propagate unchanged.
    """
    for attempt in (1, 2):
        try:
            result = work()
            db_session.commit()
            return result
        except AppError:
            db_session.rollback()
            raise
        except IntegrityError as e:
            db_session.rollback()
            logger.info('%s violated a constraint: %s', description, e.orig)
            raise ConflictError(f'{description} conflicts with existing data') from e
        except DBAPIError as e:
            db_session.rollback()
            if is_serialization_failure(e):
                if attempt == 1:
                    logger.warning('%s lost a serialization race, retrying once', description)
                    continue
                raise ConflictError(f'{description} could not be completed due to concurrent updates') from e
            logger.exception('%s failed', description)
            raise DatabaseError(f'{description} failed') from e
        except SQLAlchemyError as e:
            db_session.rollback()
            logger.exception('%s failed', description)
            raise DatabaseError(f'{description} failed') from e
