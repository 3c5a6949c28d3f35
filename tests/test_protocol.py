import random
import threading

import pytest
from sqlalchemy.exc import OperationalError

import scheduling.protocol as protocol
from models import db
from models.reservation import Reservation
from models.slot import SlotEntry
from scheduling.availability import interval_of, overlaps
from scheduling.errors import NotFound, OutOfPolicy, SlotTaken, TransientStoreFailure
from scheduling.protocol import cancel_reservation, create_reservation, move_reservation
from scheduling.types import BreakBlock, GuestBooking, ReservationRequest, UserBooking
from scheduling.working_hours import DEFAULT_WORKING_HOURS, Vacation, WorkingHours

DAY = "2025-06-10"  # Tuesday, 09:00-19:00
HOURS = DEFAULT_WORKING_HOURS


def _guest(date=DAY, start="10:00", duration=30, name="Marko"):
    return ReservationRequest(date=date, start_time=start, duration_minutes=duration,
                              subject=GuestBooking(name=name, service_id=None))


def _slot_keys():
    return {e.id: e.reservation_id for e in SlotEntry.query.all()}


class TestCreate:
    def test_writes_reservation_and_slot_entry(self, app):
        rid = create_reservation(_guest(start="10:00", duration=60), HOURS)

        r = db.session.get(Reservation, rid)
        assert (r.date, r.start_time, r.end_time, r.duration_minutes) == (DAY, "10:00", "11:00", 60)
        assert r.kind == "guest" and r.guest_name == "Marko"
        assert _slot_keys() == {"2025-06-10_10:00": rid}

    def test_user_and_break_subjects(self, app, make_user):
        user = make_user()
        rid = create_reservation(ReservationRequest(DAY, "09:00", 30, UserBooking(user_id=user.id, service_id=None)),
                                 HOURS)
        bid = create_reservation(ReservationRequest(DAY, "13:00", 60, BreakBlock()), HOURS)

        assert db.session.get(Reservation, rid).subject == UserBooking(user_id=user.id, service_id=None)
        brk = db.session.get(Reservation, bid)
        assert brk.kind == "break" and brk.user_id is None and brk.guest_name is None

    def test_same_start_is_taken(self, app):
        create_reservation(_guest(start="10:00"), HOURS)
        with pytest.raises(SlotTaken):
            create_reservation(_guest(start="10:00", name="Jovan"), HOURS)
        assert Reservation.query.count() == 1

    def test_overlap_with_different_start_is_taken(self, app):
        create_reservation(_guest(start="10:00", duration=60), HOURS)

        with pytest.raises(SlotTaken):
            create_reservation(_guest(start="10:00"), HOURS)
        with pytest.raises(SlotTaken):
            create_reservation(_guest(start="10:30"), HOURS)
        with pytest.raises(SlotTaken):
            create_reservation(_guest(start="09:30", duration=60), HOURS)

        create_reservation(_guest(start="09:30"), HOURS)
        create_reservation(_guest(start="11:00"), HOURS)
        assert Reservation.query.count() == 3
        assert len(_slot_keys()) == 3

    def test_outside_hours_is_out_of_policy(self, app):
        with pytest.raises(OutOfPolicy):
            create_reservation(_guest(start="18:30", duration=60), HOURS)
        with pytest.raises(OutOfPolicy):
            create_reservation(_guest(start="08:30"), HOURS)
        assert Reservation.query.count() == 0

    def test_vacation_is_out_of_policy(self, app):
        hours = WorkingHours(days=HOURS.days, vacation=Vacation(True, "2025-06-09", "2025-06-15"))
        with pytest.raises(OutOfPolicy):
            create_reservation(_guest(), hours)

    def test_guest_without_name_is_out_of_policy(self, app):
        with pytest.raises(OutOfPolicy):
            create_reservation(_guest(name="  "), HOURS)

    def test_lost_race_retries_and_reports_taken(self, app, monkeypatch):
        create_reservation(_guest(start="10:00"), HOURS)
        db.session.remove()

        real_is_taken = protocol.is_taken
        real_find_conflicts = protocol.find_conflicts
        calls = {"is_taken": 0, "find_conflicts": 0}

        # the first attempt reads a stale view and only fails on the unique key
        def stale_is_taken(session, key, **kwargs):
            calls["is_taken"] += 1
            if calls["is_taken"] == 1:
                return False
            return real_is_taken(session, key, **kwargs)

        def stale_find_conflicts(*args):
            calls["find_conflicts"] += 1
            if calls["find_conflicts"] == 1:
                return []
            return real_find_conflicts(*args)

        monkeypatch.setattr(protocol, "is_taken", stale_is_taken)
        monkeypatch.setattr(protocol, "find_conflicts", stale_find_conflicts)

        with pytest.raises(SlotTaken):
            create_reservation(_guest(start="10:00", name="Jovan"), HOURS)

        assert calls["is_taken"] == 2
        assert Reservation.query.count() == 1
        assert len(_slot_keys()) == 1

    def test_store_failures_exhaust_into_transient_failure(self, app, monkeypatch):
        attempts = []

        def locked(session, date):
            attempts.append(date)
            raise OperationalError("UPDATE reservation_days", {}, Exception("database is locked"))

        monkeypatch.setattr(protocol, "lock_day", locked)

        with pytest.raises(TransientStoreFailure):
            create_reservation(_guest(), HOURS)
        assert len(attempts) == app.config["TRANSACTION_MAX_ATTEMPTS"]
        assert Reservation.query.count() == 0

    def test_random_bookings_never_overlap(self, app):
        rng = random.Random(20250610)
        starts = [f"{h:02d}:{m:02d}" for h in range(9, 19) for m in (0, 15, 30, 45)]
        for i in range(60):
            req = _guest(start=rng.choice(starts), duration=rng.choice((30, 60)), name=f"Guest {i}")
            try:
                create_reservation(req, HOURS)
            except (SlotTaken, OutOfPolicy):
                pass

        rows = Reservation.query.filter_by(date=DAY).all()
        assert rows
        for i, a in enumerate(rows):
            for b in rows[i + 1:]:
                assert not overlaps(interval_of(a), interval_of(b)), (a.start_time, b.start_time)
        assert _slot_keys() == {f"{r.date}_{r.start_time}": r.id for r in rows}


class TestMove:
    def test_moves_within_day(self, app):
        rid = create_reservation(_guest(start="10:00"), HOURS)

        moved = move_reservation(rid, DAY, "14:00", None, HOURS)

        assert (moved.start_time, moved.end_time, moved.duration_minutes) == ("14:00", "14:30", 30)
        assert _slot_keys() == {"2025-06-10_14:00": rid}

    def test_moves_across_dates(self, app):
        rid = create_reservation(_guest(start="10:00"), HOURS)

        moved = move_reservation(rid, "2025-06-11", "10:00", None, HOURS)

        assert moved.date == "2025-06-11"
        assert moved.expire_at.date().isoformat() == "2025-09-09"
        assert _slot_keys() == {"2025-06-11_10:00": rid}

    def test_resize_in_place_keeps_slot_entry(self, app):
        rid = create_reservation(_guest(start="10:00"), HOURS)

        moved = move_reservation(rid, DAY, "10:00", "11:00", HOURS)

        assert (moved.end_time, moved.duration_minutes) == ("11:00", 60)
        assert _slot_keys() == {"2025-06-10_10:00": rid}

    def test_duration_has_a_floor(self, app):
        rid = create_reservation(_guest(start="10:00"), HOURS)
        moved = move_reservation(rid, DAY, "12:00", "12:00", HOURS)
        assert moved.duration_minutes == 30

    def test_overlapping_target_is_rejected_before_transaction(self, app):
        create_reservation(_guest(start="10:00", duration=60), HOURS)
        rid = create_reservation(_guest(start="12:00", name="Jovan"), HOURS)

        with pytest.raises(OutOfPolicy):
            move_reservation(rid, DAY, "10:30", None, HOURS)
        assert db.session.get(Reservation, rid).start_time == "12:00"

    def test_conflict_at_commit_time_changes_nothing(self, app, monkeypatch):
        other = create_reservation(_guest(start="10:00"), HOURS)
        rid = create_reservation(_guest(start="12:00", name="Jovan"), HOURS)
        # the pre-check saw a free day; the slot was taken before the transaction
        monkeypatch.setattr(protocol, "fits", lambda *args: True)

        with pytest.raises(SlotTaken):
            move_reservation(rid, DAY, "10:00", None, HOURS)

        db.session.expire_all()
        assert db.session.get(Reservation, rid).start_time == "12:00"
        assert _slot_keys() == {"2025-06-10_10:00": other, "2025-06-10_12:00": rid}

    def test_outside_hours_or_vacation_is_out_of_policy(self, app):
        rid = create_reservation(_guest(start="10:00"), HOURS)
        with pytest.raises(OutOfPolicy):
            move_reservation(rid, DAY, "18:45", None, HOURS)

        hours = WorkingHours(days=HOURS.days, vacation=Vacation(True, "2025-06-11", "2025-06-11"))
        with pytest.raises(OutOfPolicy):
            move_reservation(rid, "2025-06-11", "10:00", None, hours)
        assert _slot_keys() == {"2025-06-10_10:00": rid}

    def test_missing_reservation(self, app):
        with pytest.raises(NotFound):
            move_reservation(404, DAY, "10:00", None, HOURS)


class TestCancel:
    def test_removes_reservation_and_slot_entry(self, app):
        rid = create_reservation(_guest(start="10:00"), HOURS)

        deleted = cancel_reservation(rid)

        assert deleted["id"] == rid and deleted["start_time"] == "10:00"
        assert Reservation.query.count() == 0
        assert _slot_keys() == {}

    def test_frees_the_slot(self, app):
        rid = create_reservation(_guest(start="10:00"), HOURS)
        cancel_reservation(rid)
        create_reservation(_guest(start="10:00", name="Jovan"), HOURS)

    def test_twice_is_not_found(self, app):
        rid = create_reservation(_guest(start="10:00"), HOURS)
        cancel_reservation(rid)
        with pytest.raises(NotFound):
            cancel_reservation(rid)


def _race(app, date, starts, duration=60):
    """Fires one create per start at the same instant, each on its own app context and session."""
    barrier = threading.Barrier(len(starts))
    outcomes = []
    guard = threading.Lock()

    def book(i, start):
        with app.app_context():
            try:
                barrier.wait()
                rid = create_reservation(_guest(date=date, start=start, duration=duration, name=f"Guest {i}"), HOURS)
                result = ("ok", start, rid)
            except SlotTaken:
                result = ("taken", start, None)
            except Exception as exc:
                result = ("error", start, repr(exc))
            finally:
                db.session.remove()
        with guard:
            outcomes.append(result)

    threads = [threading.Thread(target=book, args=(i, s)) for i, s in enumerate(starts)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return outcomes


class TestConcurrentCreate:
    def test_same_start_has_one_winner(self, app):
        outcomes = _race(app, DAY, ["10:00"] * 4, duration=30)

        assert sorted(o[0] for o in outcomes) == ["ok", "taken", "taken", "taken"], outcomes
        assert Reservation.query.filter_by(date=DAY).count() == 1
        assert len(_slot_keys()) == 1

    @pytest.mark.parametrize("date", ["2025-06-10", "2025-06-11", "2025-06-12", "2025-06-13", "2025-06-16"])
    def test_overlapping_starts_have_one_winner(self, app, date):
        # every pair of these 60 minute intervals overlaps, yet no two share a slot key
        outcomes = _race(app, date, ["09:45", "10:00", "10:15", "10:30"])

        assert [o[0] for o in outcomes].count("ok") == 1, outcomes
        assert all(o[0] in ("ok", "taken") for o in outcomes), outcomes

        db.session.expire_all()
        rows = Reservation.query.filter_by(date=date).all()
        assert len(rows) == 1
        for i, a in enumerate(rows):
            for b in rows[i + 1:]:
                assert not overlaps(interval_of(a), interval_of(b))
        assert _slot_keys() == {f"{r.date}_{r.start_time}": r.id for r in rows}
