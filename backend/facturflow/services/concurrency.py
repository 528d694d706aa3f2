# Overview: Service-layer helpers for concurrent writes; row locks on documents and retry of conflicting transactions.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """SELECT ... FOR UPDATE on the rows of query (a no-op on SQLite)."""
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func, retrying when the database reports a lock conflict or a
    document/client row changed under us (version_id mismatch).

    func is re-run from scratch after a rollback, so it must load what it
    modifies itself. Waits backoff_base, 2x, 4x ... between attempts and
    re-raises the last error once attempts are exhausted.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                raise
            current_app.logger.warning(
                "Retrying after %s (attempt %s/%s)", type(exc).__name__, attempt, attempts
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))
