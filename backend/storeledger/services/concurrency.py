# Overview: Transaction helpers shared by every ledger service.

from __future__ import annotations

import time

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError, InternalError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a unit of work as one transaction, with retry on concurrency failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Any other failure rolls the session back
    before it propagates, so nothing flushed by a failed attempt survives.
    IntegrityError surfaces as ConflictError; other storage errors as
    InternalError.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise InternalError("Storage is busy, please retry") from exc
            time.sleep(backoff_base * (2 ** attempt))
        except IntegrityError as exc:
            db.session.rollback()
            raise ConflictError("Conflicting record already exists", details={"reason": str(exc.orig)}) from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise InternalError("Unexpected storage failure") from exc
        except Exception:
            db.session.rollback()
            raise
