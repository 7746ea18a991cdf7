# Overview: Transaction helpers shared by every stock-writing service.

from __future__ import annotations

import logging
import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..exceptions import TransientPersistenceError

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def _default_attempts() -> int:
    try:
        return int(current_app.config.get("DB_RETRY_ATTEMPTS", 3))
    except RuntimeError:
        return 3


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute one unit of work with retry on concurrency-related failures.

    Any exception rolls the session back before it propagates, so a failed
    unit of work never leaves partial writes in the session. Lock/deadlock
    failures (OperationalError, StaleDataError) are retried from the top and
    surface as TransientPersistenceError once attempts are exhausted.
    """
    attempts = attempts or _default_attempts()
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                logger.error("Transaction aborted after %s attempts: %s", attempts, exc)
                raise TransientPersistenceError(
                    "Transaction aborted by the database; retry the request",
                    details={"attempts": attempts},
                ) from exc
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
