# Overview: Transaction retry and row-locking helpers for stock and cart writes.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def conditional_update(query, values: dict) -> int:
    """
    Run a guarded UPDATE and return the number of rows it touched.

    The guard lives in the query's WHERE clause (e.g. stock >= qty), so the
    check and the write are one statement and cannot interleave with a
    concurrent writer. Zero means the guard failed.
    """
    return query.update(values, synchronize_session=False)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a unit of work, retrying on concurrency-related failures.

    Retries on OperationalError (deadlocks, lock timeouts) and StaleDataError
    (optimistic version_id conflicts). The session is rolled back before each
    retry, so func must redo all of its reads.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Retrying after concurrency conflict (attempt %d/%d): %s",
                attempt + 1, attempts, exc,
            )
            time.sleep(backoff_base * (2 ** attempt))
