"""
Retention: every reservation carries ``expire_at`` (its day + the retention
window). The cleanup job removes expired reservations together with their
slot index rows, in bounded batches.
"""
from datetime import datetime, timedelta
from typing import NamedTuple, Optional

from flask import current_app

from models import db
from models.reservation import Reservation
from models.slot import SlotEntry
from scheduling.working_hours import parse_date

DEFAULT_RETENTION_DAYS = 90
DEFAULT_BATCH_SIZE = 450


class CleanupResult(NamedTuple):
    count: int
    dry_run: bool
    delete_all: bool


def retention_days() -> int:
    return int(current_app.config.get("RETENTION_DAYS", DEFAULT_RETENTION_DAYS))


def expire_at_for(date: str, days: Optional[int] = None) -> datetime:
    if days is None:
        days = retention_days()
    day = parse_date(date)
    if day is None:
        raise ValueError(f"Invalid date: {date!r}")
    return datetime(day.year, day.month, day.day) + timedelta(days=days)


def cleanup_reservations(now: datetime, dry_run: bool = False, delete_all: bool = False,
                         limit: Optional[int] = None, batch_size: Optional[int] = None) -> CleanupResult:
    """
    Deletes reservations whose ``expire_at`` is at or before ``now`` (every
    reservation with ``delete_all``) and their paired slot entries.

    Deletions are committed every ``batch_size`` reservations. With
    ``dry_run`` nothing is written and the count is what would be deleted.
    Safe to re-run: already deleted rows are simply no longer selected.
    """
    if batch_size is None:
        batch_size = current_app.config.get("CLEANUP_BATCH_SIZE", DEFAULT_BATCH_SIZE)
    batch_size = max(1, int(batch_size))

    q = Reservation.query.order_by(Reservation.id.asc())
    if not delete_all:
        q = q.filter(Reservation.expire_at <= now)
    if limit:
        q = q.limit(limit)

    targets = [r.id for r in q.all()]
    if dry_run:
        return CleanupResult(count=len(targets), dry_run=True, delete_all=delete_all)

    deleted = 0
    pending = 0
    for reservation_id in targets:
        Reservation.query.filter_by(id=reservation_id).delete(synchronize_session=False)
        # matched by owner so an entry moved after selection goes too
        SlotEntry.query.filter_by(reservation_id=reservation_id).delete(synchronize_session=False)
        deleted += 1
        pending += 1

        if pending >= batch_size:
            db.session.commit()
            current_app.logger.info("Cleanup committed batch of %s (total %s)", pending, deleted)
            pending = 0

    if pending:
        db.session.commit()

    return CleanupResult(count=deleted, dry_run=False, delete_all=delete_all)
