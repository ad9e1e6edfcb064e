# Overview: Service-layer transaction helpers; session injection, row locking and retries.

from __future__ import annotations

import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def get_session(session=None):
    """
    Resolve the session a service should use.

    Services accept an explicit session so tests (or a caller that already
    owns a unit of work) can inject one; otherwise the request-scoped
    Flask-SQLAlchemy session is used.
    """
    return session if session is not None else db.session


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The guarded UPDATE statements in the services are what keep counters
    correct on every backend.
    """
    return query.with_for_update()


@contextmanager
def transaction(session=None):
    """
    One all-or-nothing unit of work.

    Commits when the block finishes, rolls back and re-raises on any
    exception. The original exception object is re-raised unchanged so
    structured errors (e.g. InsufficientStockError) keep their detail.
    """
    session = get_session(session)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def run_with_retry(func, *, session=None, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Domain errors are never retried.
    """
    session = get_session(session)
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def commit_with_retry(*, session=None, attempts: int = 3, backoff_base: float = 0.1):
    """Commit current session with retry handling."""
    session = get_session(session)

    def _op():
        session.commit()
    return run_with_retry(_op, session=session, attempts=attempts, backoff_base=backoff_base)
