from datetime import datetime

import pytest

from models import db
from models.audit_log import AuditLog
from models.reservation import Reservation
from models.service import Service
from models.slot import SlotEntry
from tests.conftest import login

DAY = "2025-06-10"


@pytest.fixture
def services(app):
    haircut = Service(name="Haircut", price=1200, duration_minutes=30)
    combo = Service(name="Haircut and beard", price=1800, duration_minutes=60)
    db.session.add_all([haircut, combo])
    db.session.commit()
    return {"short": haircut.id, "long": combo.id}


def _book(client, service_id, date=DAY, start_time="10:00"):
    return client.post("/reservations", json={"service_id": service_id, "date": date, "start_time": start_time})


class TestAvailability:
    def test_lists_every_step_of_an_open_day(self, app, frozen_now):
        data = app.test_client().get(f"/availability?date={DAY}").get_json()

        assert data["is_open"] and not data["on_vacation"]
        assert (data["open"], data["close"]) == ("09:00", "19:00")
        assert data["slots"][0] == "09:00" and data["slots"][-1] == "18:30"
        assert len(data["slots"]) == 20

    def test_booked_start_instants_disappear(self, app, frozen_now, services, user_client):
        assert _book(user_client, services["long"]).status_code == 201

        slots = user_client.get(f"/availability?date={DAY}").get_json()["slots"]
        assert "10:00" not in slots and "10:30" not in slots
        assert "09:30" in slots and "11:00" in slots

    def test_today_hides_started_slots(self, app, frozen_now):
        frozen_now(datetime(2025, 6, 9, 14, 5))
        slots = app.test_client().get("/availability?date=2025-06-09").get_json()["slots"]
        assert slots[0] == "14:30"

    def test_rejects_bad_date(self, app):
        assert app.test_client().get("/availability?date=10.06.2025").status_code == 400

    def test_services_that_fit(self, app, frozen_now, services, user_client):
        _book(user_client, services["short"], start_time="11:00")

        rows = user_client.get(f"/availability/services?date={DAY}&time=10:30").get_json()
        assert [s["id"] for s in rows] == [services["short"]]

        rows = user_client.get(f"/availability/services?date={DAY}&time=09:00").get_json()
        assert {s["id"] for s in rows} == {services["short"], services["long"]}


class TestCreateBooking:
    def test_books_a_service(self, frozen_now, services, user_client):
        resp = _book(user_client, services["long"])

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["user_id"] == user_client.user_id
        assert (body["start_time"], body["end_time"], body["kind"]) == ("10:00", "11:00", "user")
        assert db.session.get(SlotEntry, f"{DAY}_10:00").reservation_id == body["id"]

    def test_taken_slot_is_conflict(self, app, frozen_now, services, user_client, make_user):
        assert _book(user_client, services["long"]).status_code == 201

        other = make_user(email="jovan@example.com", full_name="Jovan Jovanovic")
        client = app.test_client()
        login(client, other.email)

        for start in ("10:00", "10:30"):
            resp = _book(client, services["short"], start_time=start)
            assert resp.status_code == 409
            assert resp.get_json()["code"] == "SlotTaken"

        assert Reservation.query.count() == 1
        assert AuditLog.query.filter_by(action="BOOKING_FAIL_SLOT_TAKEN").count() == 2

    def test_requires_login_and_verification(self, app, frozen_now, services, make_user):
        assert _book(app.test_client(), services["short"]).status_code == 401

        pending = make_user(email="pending@example.com", verified=False)
        client = app.test_client()
        login(client, pending.email)
        resp = _book(client, services["short"])
        assert resp.status_code == 403

    def test_rejects_past_and_far_future(self, frozen_now, services, user_client):
        assert _book(user_client, services["short"], date="2025-06-09", start_time="07:30").status_code == 400
        assert _book(user_client, services["short"], date="2025-06-24").status_code == 400
        assert _book(user_client, services["short"], date="2025-06-23").status_code == 201

    def test_outside_working_hours(self, frozen_now, services, user_client):
        resp = _book(user_client, services["long"], start_time="18:30")
        assert resp.status_code == 422
        assert resp.get_json()["code"] == "OutOfPolicy"

    def test_bad_input(self, frozen_now, services, user_client):
        assert _book(user_client, 999).status_code == 404
        assert _book(user_client, services["short"], start_time="10am").status_code == 400
        assert user_client.post("/reservations", json={}).status_code == 400


class TestMyReservations:
    def test_lists_upcoming_with_service(self, frozen_now, services, user_client):
        _book(user_client, services["short"], start_time="12:00")
        _book(user_client, services["long"], start_time="09:00")

        rows = user_client.get("/reservations/me").get_json()
        assert [r["start_time"] for r in rows] == ["09:00", "12:00"]
        assert rows[0]["service"]["name"] == "Haircut and beard"

    def test_cancel_frees_slot(self, frozen_now, services, user_client):
        rid = _book(user_client, services["short"]).get_json()["id"]

        assert user_client.delete(f"/reservations/{rid}").status_code == 200
        assert Reservation.query.count() == 0
        assert SlotEntry.query.count() == 0
        assert _book(user_client, services["short"]).status_code == 201

    def test_cannot_cancel_someone_elses(self, app, frozen_now, services, user_client, make_user):
        rid = _book(user_client, services["short"]).get_json()["id"]

        other = make_user(email="jovan@example.com", full_name="Jovan Jovanovic")
        client = app.test_client()
        login(client, other.email)
        assert client.delete(f"/reservations/{rid}").status_code == 404
        assert Reservation.query.count() == 1

    def test_cannot_cancel_started(self, frozen_now, services, user_client):
        rid = _book(user_client, services["short"]).get_json()["id"]
        frozen_now(datetime(2025, 6, 10, 10, 0))
        assert user_client.delete(f"/reservations/{rid}").status_code == 400
