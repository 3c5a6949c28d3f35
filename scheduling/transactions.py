import time

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError

from models import db
from scheduling.errors import BookingError, TransientStoreFailure


def run_in_transaction(work, max_attempts: int = None):
    """
    Runs ``work(session)`` and commits it as one unit.

    A unique-key collision (another writer committed the same slot first) or a
    lock/serialization failure rolls back and re-runs the whole read-check-write
    cycle, so the retry sees the winner's rows and ``work`` can raise SlotTaken.
    Domain errors roll back and propagate immediately. When every attempt fails
    on the store, TransientStoreFailure is raised.
    """
    if max_attempts is None:
        max_attempts = current_app.config.get("TRANSACTION_MAX_ATTEMPTS", 5)
    backoff = current_app.config.get("TRANSACTION_RETRY_BACKOFF_SECONDS", 0.05)

    session = db.session
    last_error = None
    for attempt in range(1, max_attempts + 1):
        try:
            result = work(session)
            session.commit()
            return result
        except BookingError:
            session.rollback()
            raise
        except (IntegrityError, OperationalError) as exc:
            session.rollback()
            last_error = exc
            current_app.logger.warning(
                "Transaction conflict (attempt %s/%s): %s", attempt, max_attempts, exc.__class__.__name__
            )
            if backoff and attempt < max_attempts:
                time.sleep(backoff * attempt)
        except Exception:
            session.rollback()
            raise

    current_app.logger.error("Transaction failed after %s attempts: %s", max_attempts, last_error)
    raise TransientStoreFailure() from last_error
