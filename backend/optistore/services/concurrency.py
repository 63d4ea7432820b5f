# Overview: Row locking and retry helpers shared by every mutating service call.

from __future__ import annotations

import logging
import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Run func as one unit of work.

    OperationalError (lock timeouts, deadlocks) and StaleDataError (a
    version_id mismatch on a Sale or catalog row) roll back and retry up to
    attempts times, DB_RETRY_ATTEMPTS by default. Any other exception rolls
    back and propagates immediately, so a failed call leaves nothing behind
    in the session.
    """
    if attempts is None:
        attempts = current_app.config.get("DB_RETRY_ATTEMPTS", 3)

    for attempt in range(1, attempts + 1):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts:
                logger.error("Giving up on %s after %d attempts: %s", func.__qualname__, attempt, exc)
                raise
            logger.warning("Retrying %s after concurrency failure (attempt %d): %s",
                           func.__qualname__, attempt, exc)
            time.sleep(backoff_base * (2 ** (attempt - 1)))
        except Exception:
            db.session.rollback()
            raise
