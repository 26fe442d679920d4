# Overview: Transaction runner for pipelines; one atomic attempt per call with conflict retry.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import TransientStoreError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Version counters still catch the conflict at flush time on SQLite.
    """
    return query.with_for_update()


def run_in_transaction(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute ``func`` and commit it as one database transaction.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). ``func`` is re-executed from the top on
    each attempt, so it must do all of its reads itself and never rely on
    state loaded by a previous attempt.

    Any other exception rolls back and propagates unchanged. Exhausting the
    attempts raises TransientStoreError; nothing is committed in that case.
    """
    if attempts is None:
        attempts = current_app.config.get("TRANSACTION_MAX_ATTEMPTS", 5)
    if backoff_base is None:
        backoff_base = current_app.config.get("TRANSACTION_BACKOFF_BASE", 0.05)
    attempts = max(1, int(attempts))

    for attempt in range(attempts):
        db.session.expire_all()
        try:
            result = func()
            db.session.commit()
            return result
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.warning(
                    "Transaction gave up after %d attempts: %s", attempts, exc
                )
                raise TransientStoreError(
                    "The store is busy; nothing was changed, retry the operation",
                    details={"attempts": attempts},
                ) from exc
            current_app.logger.info(
                "Write conflict on attempt %d/%d, retrying", attempt + 1, attempts
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
