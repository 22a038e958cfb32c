"""
Transaction and retry helpers shared by the stores and the coordinator.

Only transient store failures are retried. Domain errors (validation,
not found, conflicts) are raised on the first attempt.
"""
from __future__ import annotations

import logging
import time

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from posledger.exceptions import PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 3
DEFAULT_BACKOFF = 0.1


def run_with_retry(session, func, *, attempts: int = DEFAULT_ATTEMPTS, backoff_base: float = DEFAULT_BACKOFF):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, lock/busy timeouts, dropped
    connections) and StaleDataError. The session is rolled back before
    every new attempt.
    """
    attempts = max(1, attempts)
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            session.rollback()
            if attempt >= attempts - 1:
                raise
            delay = backoff_base * (2 ** attempt)
            logger.warning(f"Transient store failure (attempt {attempt + 1}/{attempts}), retrying in {delay:.2f}s: {exc}")
            time.sleep(delay)


def run_in_transaction(session, op, *, attempts: int = DEFAULT_ATTEMPTS, backoff_base: float = DEFAULT_BACKOFF):
    """
    Run ``op`` and commit, as one unit of work.

    Any exception rolls the whole unit back, so no partial effect survives.
    Only ``op`` is retried: a failed COMMIT may already have applied on the
    server, so it surfaces as PersistenceError without a second attempt.
    IntegrityError is re-raised untouched for the caller to interpret;
    other store errors surface as PersistenceError.
    """
    def _attempt():
        try:
            return op()
        except BaseException:
            session.rollback()
            raise

    try:
        result = run_with_retry(session, _attempt, attempts=attempts, backoff_base=backoff_base)
    except IntegrityError:
        raise
    except (OperationalError, StaleDataError) as exc:
        logger.error(f"Store unavailable after {attempts} attempts: {exc}")
        raise PersistenceError() from exc
    except DBAPIError as exc:
        logger.exception("Unexpected store error")
        raise PersistenceError() from exc

    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise
    except (DBAPIError, StaleDataError) as exc:
        session.rollback()
        logger.error(f"Commit failed, outcome unknown: {exc}")
        raise PersistenceError() from exc
    return result
