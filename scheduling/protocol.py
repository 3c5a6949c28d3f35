"""
Create / move / cancel for reservations.

These three functions are the only write paths for ``reservations`` and
``slots``. Each runs as one transaction through ``run_in_transaction``:

1. lock the day(s) touched (``lock_day``),
2. read the slot index and the day's reservations,
3. raise SlotTaken if the start instant is claimed or the interval overlaps,
4. write the reservation and its slot entry together.

Working-hours checks run before the transaction and raise OutOfPolicy.
"""
from typing import Optional

from models import db
from models.reservation import Reservation
from scheduling.availability import find_conflicts, fits
from scheduling.errors import NotFound, OutOfPolicy, SlotTaken
from scheduling.retention import expire_at_for
from scheduling.slot_index import claim, is_taken, lock_day, release, slot_key, slot_key_for
from scheduling.transactions import run_in_transaction
from scheduling.types import KIND_GUEST, KIND_USER, ReservationRequest
from scheduling.working_hours import (
    WorkingHours,
    day_config,
    end_time_for,
    is_on_vacation,
    is_within_working_hours,
    parse_date,
    time_to_minutes,
)

MIN_DURATION_MINUTES = 30


def _reservations_on(session, date: str, exclude_id=None):
    q = (
        session.query(Reservation)
        .filter(Reservation.date == date)
        .execution_options(populate_existing=True)
    )
    if exclude_id is not None:
        q = q.filter(Reservation.id != exclude_id)
    return q.all()


def check_policy(date: str, start_time: str, duration_minutes: int, hours: WorkingHours) -> None:
    day = parse_date(date)
    if day is None:
        raise OutOfPolicy("Invalid date")
    if duration_minutes <= 0:
        raise OutOfPolicy("Duration must be positive")
    if is_on_vacation(day, hours):
        raise OutOfPolicy("The shop is on vacation on the selected date")
    if not is_within_working_hours(day_config(day, hours), start_time, duration_minutes):
        raise OutOfPolicy("The selected time is outside working hours")


def _check_subject(subject) -> None:
    if subject.kind == KIND_USER and not subject.user_id:
        raise OutOfPolicy("A user reservation needs a user")
    if subject.kind == KIND_GUEST and not (subject.name or "").strip():
        raise OutOfPolicy("A guest reservation needs a guest name")


def create_reservation(req: ReservationRequest, hours: WorkingHours,
                       retention_days: Optional[int] = None) -> int:
    """
    Books ``req`` and returns the new reservation id.

    Raises OutOfPolicy before touching the store, SlotTaken when the slot is
    claimed or the interval overlaps at commit time.
    """
    _check_subject(req.subject)
    check_policy(req.date, req.start_time, req.duration_minutes, hours)

    end_time = end_time_for(req.start_time, req.duration_minutes)
    expire_at = expire_at_for(req.date, retention_days)
    key = slot_key(req.date, req.start_time)

    def work(session):
        lock_day(session, req.date)
        if is_taken(session, key):
            raise SlotTaken()
        if find_conflicts(req.start_time, req.duration_minutes, _reservations_on(session, req.date)):
            raise SlotTaken()

        reservation = Reservation(
            date=req.date,
            start_time=req.start_time,
            end_time=end_time,
            duration_minutes=req.duration_minutes,
            card_color=req.card_color,
            expire_at=expire_at,
        )
        reservation.apply_subject(req.subject)
        session.add(reservation)
        session.flush()

        claim(session, req.date, req.start_time, reservation.id)
        return reservation.id

    return run_in_transaction(work)


def move_reservation(reservation_id: int, next_date: str, next_start: str, next_end: Optional[str],
                     hours: WorkingHours, retention_days: Optional[int] = None) -> Reservation:
    """
    Moves a reservation to (next_date, next_start). The duration is
    ``next_end - next_start`` (at least 30 minutes), or the current duration
    when ``next_end`` is not given. Either everything moves (reservation
    fields, new slot entry, old slot entry removed) or nothing changes.
    """
    current = db.session.get(Reservation, reservation_id)
    if current is None:
        raise NotFound()

    if next_end:
        duration = max(MIN_DURATION_MINUTES, time_to_minutes(next_end) - time_to_minutes(next_start))
    else:
        duration = current.duration_minutes

    check_policy(next_date, next_start, duration, hours)
    # stale pre-check so obvious overlaps never open a transaction
    others = _reservations_on(db.session, next_date, exclude_id=current.id)
    if not fits(next_start, duration, others, day_config(parse_date(next_date), hours)):
        raise OutOfPolicy("The selected time overlaps another reservation")

    end_time = end_time_for(next_start, duration)
    expire_at = expire_at_for(next_date, retention_days)
    new_key = slot_key(next_date, next_start)
    days = sorted({current.date, next_date})

    def work(session):
        for day in days:
            lock_day(session, day)

        reservation = session.get(Reservation, reservation_id, populate_existing=True)
        if reservation is None:
            raise NotFound()
        old_key = slot_key_for(reservation)

        if old_key != new_key and is_taken(session, new_key, ignore_reservation_id=reservation.id):
            raise SlotTaken()
        if find_conflicts(next_start, duration, _reservations_on(session, next_date, exclude_id=reservation.id)):
            raise SlotTaken()

        if old_key != new_key:
            release(session, old_key, reservation.id)
            claim(session, next_date, next_start, reservation.id)

        reservation.date = next_date
        reservation.start_time = next_start
        reservation.end_time = end_time
        reservation.duration_minutes = duration
        reservation.expire_at = expire_at
        return reservation

    return run_in_transaction(work)


def cancel_reservation(reservation_id: int) -> dict:
    """Deletes the reservation and its slot entry; returns the deleted row as a dict."""
    current = db.session.get(Reservation, reservation_id)
    if current is None:
        raise NotFound()
    date = current.date

    def work(session):
        if date:
            lock_day(session, date)
        reservation = session.get(Reservation, reservation_id, populate_existing=True)
        if reservation is None:
            raise NotFound()
        snapshot = reservation.to_dict()
        release(session, slot_key_for(reservation), reservation.id)
        session.delete(reservation)
        return snapshot

    return run_in_transaction(work)
