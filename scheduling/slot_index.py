"""
Slot index: one ``slots`` row per occupied (date, start_time) start instant.

The row id is the composite key itself, so the database primary key is the
mutual-exclusion primitive for identical start times. It does not cover two
reservations with different start times whose intervals overlap; the
protocol guards that case with the in-transaction ``fits`` check under the
per-day lock (``lock_day``).
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import update

from models.slot import ReservationDay, SlotEntry


def slot_key(date: str, start_time: str) -> str:
    return f"{date}_{start_time}"


def slot_key_for(reservation) -> Optional[str]:
    date = getattr(reservation, "date", None)
    start_time = getattr(reservation, "start_time", None)
    if not date or not start_time:
        return None
    return slot_key(date, start_time)


def get_entry(session, key: str) -> Optional[SlotEntry]:
    return session.get(SlotEntry, key, populate_existing=True)


def is_taken(session, key: str, ignore_reservation_id=None) -> bool:
    entry = get_entry(session, key)
    if entry is None:
        return False
    return ignore_reservation_id is None or entry.reservation_id != ignore_reservation_id


def claim(session, date: str, start_time: str, reservation_id: int) -> SlotEntry:
    """
    Adds the index row for (date, start_time). Flushed immediately so a
    concurrent claim of the same key surfaces as IntegrityError here, inside
    the transaction runner's retry loop.
    """
    now = datetime.utcnow()
    entry = SlotEntry(
        id=slot_key(date, start_time),
        date=date,
        start_time=start_time,
        reservation_id=reservation_id,
        created_at=now,
        updated_at=now,
    )
    session.add(entry)
    session.flush()
    return entry


def release(session, key: Optional[str], reservation_id=None) -> bool:
    if not key:
        return False
    entry = get_entry(session, key)
    if entry is None:
        return False
    # never drop an entry that another reservation owns
    if reservation_id is not None and entry.reservation_id != reservation_id:
        return False
    session.delete(entry)
    return True


def lock_day(session, date: str) -> None:
    """
    Takes the per-day write lock by bumping (or creating) the date's
    ``reservation_days`` row. Must run before any read in the transaction.
    """
    result = session.execute(
        update(ReservationDay)
        .where(ReservationDay.date == date)
        .values(version=ReservationDay.version + 1, updated_at=datetime.utcnow())
    )
    if result.rowcount == 0:
        session.add(ReservationDay(date=date, version=1))
        session.flush()
