# Overview: Transaction, locking and retry helpers shared by the write services.

from __future__ import annotations

import logging
import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, scoped_session
from sqlalchemy.orm.exc import StaleDataError

logger = logging.getLogger(__name__)

CONCURRENCY_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write() covers it there.
    """
    return query.with_for_update()


def begin_write(session: Session) -> None:
    """
    Take the database write lock before the first read of a write unit.

    SQLite only has a database-level lock, and a deferred transaction that
    reads first and upgrades later can lose the race, so start the unit
    with BEGIN IMMEDIATE. Other dialects rely on lock_for_update().
    """
    # db.session is a scoped_session proxy; resolve the request-local Session
    sess = session() if isinstance(session, scoped_session) else session
    if sess.in_transaction():
        return
    if sess.get_bind().dialect.name == "sqlite":
        sess.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(
    session: Session,
    func,
    *,
    attempts: int = 3,
    backoff_base: float = 0.1,
    retry_on: tuple = CONCURRENCY_ERRORS,
):
    """
    Execute one logical write unit, rolling back on any failure.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts), plus whatever the caller adds to
    `retry_on`. Every other exception, business errors included, rolls
    the unit back and propagates immediately.
    """
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            session.rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning(
                "Concurrent write conflict (%s), retrying attempt %d/%d",
                type(exc).__name__, attempt + 2, attempts,
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            session.rollback()
            raise
