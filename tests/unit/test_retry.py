"""
Unit tests for the transaction and retry helpers.
"""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from posledger.exceptions import ConflictError, NotFoundError, PersistenceError, ValidationError
from posledger.services.concurrency import run_in_transaction, run_with_retry


class FakeSession:
    """Counts commits and rollbacks; ``commit_error`` is raised by commit()."""

    def __init__(self, commit_error=None):
        self.commits = 0
        self.rollbacks = 0
        self.commit_error = commit_error

    def commit(self):
        self.commits += 1
        if self.commit_error is not None:
            raise self.commit_error

    def rollback(self):
        self.rollbacks += 1


def _lock_timeout():
    return OperationalError('UPDATE product SET stock=...', {}, Exception('lock timeout'))


def _flaky(failures, result='ok'):
    """An op that raises OperationalError ``failures`` times, then returns ``result``."""
    calls = []

    def op():
        calls.append(1)
        if len(calls) <= failures:
            raise _lock_timeout()
        return result

    return op, calls


class TestRunWithRetry:

    def test_transient_failure_succeeds_on_retry(self):
        session = FakeSession()
        op, calls = _flaky(failures=2)

        assert run_with_retry(session, op, attempts=3, backoff_base=0) == 'ok'
        assert len(calls) == 3
        assert session.rollbacks == 2

    def test_last_failure_is_reraised(self):
        session = FakeSession()
        op, calls = _flaky(failures=5)

        with pytest.raises(OperationalError):
            run_with_retry(session, op, attempts=3, backoff_base=0)
        assert len(calls) == 3


class TestRunInTransaction:

    def test_commits_once_after_retry(self):
        session = FakeSession()
        op, calls = _flaky(failures=1)

        assert run_in_transaction(session, op, attempts=3, backoff_base=0) == 'ok'
        assert len(calls) == 2
        assert session.commits == 1

    @pytest.mark.parametrize('error', [
        ValidationError('Cantidad inválida'),
        NotFoundError('Producto p1 no encontrado'),
        ConflictError('Stock insuficiente'),
    ])
    def test_domain_errors_are_not_retried(self, error):
        session = FakeSession()
        calls = []

        def op():
            calls.append(1)
            raise error

        with pytest.raises(type(error)):
            run_in_transaction(session, op, attempts=3, backoff_base=0)
        assert len(calls) == 1
        assert session.rollbacks == 1
        assert session.commits == 0

    def test_exhausted_retries_raise_persistence_error(self):
        session = FakeSession()
        op, calls = _flaky(failures=10)

        with pytest.raises(PersistenceError) as exc_info:
            run_in_transaction(session, op, attempts=3, backoff_base=0)
        assert len(calls) == 3
        assert exc_info.value.status_code == 503
        assert session.commits == 0

    def test_failed_commit_is_not_retried(self):
        session = FakeSession(commit_error=OperationalError('COMMIT', {}, Exception('connection lost')))
        op, calls = _flaky(failures=0)

        with pytest.raises(PersistenceError):
            run_in_transaction(session, op, attempts=3, backoff_base=0)
        assert len(calls) == 1
        assert session.commits == 1
        assert session.rollbacks == 1

    def test_integrity_error_passes_through(self):
        session = FakeSession()

        def op():
            raise IntegrityError('INSERT INTO sale ...', {}, Exception('UNIQUE constraint failed'))

        with pytest.raises(IntegrityError):
            run_in_transaction(session, op, attempts=3, backoff_base=0)
