import pytest
from sqlalchemy.exc import IntegrityError

from models import db
from models.slot import ReservationDay, SlotEntry
from scheduling.slot_index import claim, get_entry, is_taken, lock_day, release, slot_key, slot_key_for
from scheduling.types import BookedInterval


def test_slot_key_format():
    assert slot_key("2025-06-10", "10:00") == "2025-06-10_10:00"


def test_slot_key_for_needs_date_and_start():
    class Row:
        date = "2025-06-10"
        start_time = "09:30"

    assert slot_key_for(Row()) == "2025-06-10_09:30"
    assert slot_key_for(BookedInterval("09:30", "10:00")) is None


def test_claim_then_taken(app):
    claim(db.session, "2025-06-10", "10:00", 7)
    db.session.commit()

    assert is_taken(db.session, "2025-06-10_10:00")
    assert not is_taken(db.session, "2025-06-10_10:30")
    # the owner does not block itself
    assert not is_taken(db.session, "2025-06-10_10:00", ignore_reservation_id=7)
    assert is_taken(db.session, "2025-06-10_10:00", ignore_reservation_id=8)


def test_second_claim_of_same_key_fails(app):
    claim(db.session, "2025-06-10", "10:00", 1)
    db.session.commit()
    db.session.expunge_all()

    with pytest.raises(IntegrityError):
        claim(db.session, "2025-06-10", "10:00", 2)
    db.session.rollback()

    assert get_entry(db.session, "2025-06-10_10:00").reservation_id == 1


def test_release_only_drops_owned_entry(app):
    claim(db.session, "2025-06-10", "10:00", 1)
    db.session.commit()

    assert release(db.session, "2025-06-10_10:00", reservation_id=2) is False
    db.session.commit()
    assert is_taken(db.session, "2025-06-10_10:00")

    assert release(db.session, "2025-06-10_10:00", reservation_id=1) is True
    db.session.commit()
    assert SlotEntry.query.count() == 0


def test_release_missing_entry(app):
    assert release(db.session, "2025-06-10_10:00") is False
    assert release(db.session, None) is False


def test_lock_day_creates_then_bumps(app):
    lock_day(db.session, "2025-06-10")
    db.session.commit()
    assert db.session.get(ReservationDay, "2025-06-10", populate_existing=True).version == 1

    lock_day(db.session, "2025-06-10")
    db.session.commit()
    assert db.session.get(ReservationDay, "2025-06-10", populate_existing=True).version == 2
    assert ReservationDay.query.count() == 1
