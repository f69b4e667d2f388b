"""Commit, rollback and retry behaviour of run_in_transaction."""
import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from campus_attendance.services.transaction import run_in_transaction
from campus_attendance.utils.errors import ConflictError, DatabaseError, NotFoundError


class RecordingSession:
    """Stands in for the SQLAlchemy session; counts commits and rollbacks."""

    def __init__(self):
        self.commits = 0
        self.rollbacks = 0

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


class DriverError(Exception):
    def __init__(self, pgcode=None):
        super().__init__(f'driver error {pgcode}')
        self.pgcode = pgcode


def failing(*errors, result='done'):
    """Work that raises each error in turn, then returns ``result``."""
    pending = list(errors)
    calls = []

    def work():
        calls.append(1)
        if pending:
            raise pending.pop(0)
        return result

    work.calls = calls
    return work


def serialization_failure(code='40001'):
    return OperationalError('UPDATE sessions', {}, DriverError(code))


def test_commits_result():
    session = RecordingSession()
    assert run_in_transaction(session, lambda: 42) == 42
    assert session.commits == 1
    assert session.rollbacks == 0


def test_serialization_failure_is_retried_once():
    session = RecordingSession()
    work = failing(serialization_failure())

    assert run_in_transaction(session, work) == 'done'
    assert len(work.calls) == 2
    assert session.rollbacks == 1
    assert session.commits == 1


def test_deadlock_is_retried_once():
    session = RecordingSession()
    work = failing(serialization_failure('40P01'))

    assert run_in_transaction(session, work) == 'done'
    assert len(work.calls) == 2


def test_second_serialization_failure_is_conflict():
    session = RecordingSession()
    work = failing(serialization_failure(), serialization_failure())

    with pytest.raises(ConflictError):
        run_in_transaction(session, work, 'QR rotation')
    assert len(work.calls) == 2
    assert session.rollbacks == 2
    assert session.commits == 0


def test_integrity_error_is_conflict():
    session = RecordingSession()
    work = failing(IntegrityError('INSERT INTO attendances', {}, DriverError('23505')))

    with pytest.raises(ConflictError):
        run_in_transaction(session, work)
    assert len(work.calls) == 1
    assert session.rollbacks == 1


def test_other_driver_errors_are_database_errors():
    session = RecordingSession()
    work = failing(OperationalError('SELECT 1', {}, DriverError()))

    with pytest.raises(DatabaseError):
        run_in_transaction(session, work)
    assert len(work.calls) == 1
    assert session.rollbacks == 1


def test_application_errors_propagate_unchanged():
    session = RecordingSession()
    work = failing(NotFoundError('Session'))

    with pytest.raises(NotFoundError):
        run_in_transaction(session, work)
    assert len(work.calls) == 1
    assert session.rollbacks == 1
    assert session.commits == 0
