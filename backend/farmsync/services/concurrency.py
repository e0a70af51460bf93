# Overview: Retry and row-locking helpers shared by the sync coordinator and the entity store.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError

from ..extensions import db

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE query_canceled, raised when statement_timeout fires
PG_QUERY_CANCELED = "57014"


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def is_statement_timeout(exc: BaseException) -> bool:
    """True when a DBAPI error wraps a statement_timeout cancellation."""
    return getattr(getattr(exc, "orig", None), "pgcode", None) == PG_QUERY_CANCELED


def run_with_retry(func, *, session=None, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a whole unit of work with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, "database is locked"). The session
    is rolled back before every new attempt so each one starts clean. A
    statement timeout is an OperationalError too but is raised at once.
    """
    session = session if session is not None else db.session
    attempts = max(1, attempts)
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            session.rollback()
            if is_statement_timeout(exc) or attempt >= attempts - 1:
                raise
            delay = backoff_base * (2 ** attempt)
            logger.warning("Retrying unit of work after lock contention (attempt %s/%s)", attempt + 1, attempts)
            time.sleep(delay)
