import threading

import pytest

from errors import CapacityError, ValidationError
from database import SessionLocal
from models.Profile import ProfileRole
from models.Trip import Trip, TripStatus
from models.TripRequest import TripRequest, RequestStatus
from services import request_ledger
from services.auth import AuthContext

from conftest import auth, make_profile


def request_seat(client, trip_id, uid):
    resp = client.post(f"/trips/{trip_id}/requests", headers=auth(uid))
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_request_starts_pending_with_name_snapshot(client, passenger, publish, pushes):
    trip = publish()
    req = request_seat(client, trip["id"], "p1")
    assert req["status"] == "pending"
    assert req["passenger_name"] == "Pasajera Uno"
    assert any(p["token"] == "token-driver" and "Pasajera Uno" in p["body"] for p in pushes)


def test_requests_queue_beyond_available_seats(client, passenger, passenger2, publish):
    trip = publish(seats=1)
    request_seat(client, trip["id"], "p1")
    request_seat(client, trip["id"], "p2")
    assert len(client.get("/trip-requests/driver", headers=auth("driver")).json()) == 2


def test_duplicate_request_is_rejected(client, passenger, publish):
    trip = publish()
    request_seat(client, trip["id"], "p1")
    resp = client.post(f"/trips/{trip['id']}/requests", headers=auth("p1"))
    assert resp.status_code == 409
    assert resp.json()["error"] == "DuplicateError"


def test_driver_cannot_request_own_trip(client, publish):
    trip = publish()
    assert client.post(f"/trips/{trip['id']}/requests", headers=auth("driver")).status_code == 400


def test_create_request_needs_authenticated_passenger(db, driver):
    with pytest.raises(ValidationError):
        request_ledger.create_request(db, None, 1)


def test_accept_decrements_seats(client, db, passenger, publish, pushes):
    trip = publish(seats=3)
    req = request_seat(client, trip["id"], "p1")

    resp = client.post(f"/trip-requests/{req['id']}/accept", headers=auth("driver"))
    assert resp.status_code == 200
    assert resp.json()["status"] == "accepted"
    assert client.get(f"/trips/{trip['id']}").json()["seats_available"] == 2
    assert any(p["token"] == "token-p1" and p["title"] == "Solicitud aceptada" for p in pushes)


def test_last_seat_goes_to_exactly_one_request(client, db, passenger, passenger2, publish):
    trip = publish(seats=1)
    r1 = request_seat(client, trip["id"], "p1")
    r2 = request_seat(client, trip["id"], "p2")

    assert client.post(f"/trip-requests/{r1['id']}/accept", headers=auth("driver")).status_code == 200
    resp = client.post(f"/trip-requests/{r2['id']}/accept", headers=auth("driver"))
    assert resp.status_code == 409
    assert resp.json()["error"] == "CapacityError"

    db.expire_all()
    stored = db.get(Trip, trip["id"])
    assert stored.seats_available == 0
    assert stored.status == TripStatus.FULL
    # the losing request rolled back to pending
    assert db.get(TripRequest, r2["id"]).status == RequestStatus.PENDING


def test_accepts_from_separate_sessions_respect_capacity(client, passenger, passenger2, publish):
    trip = publish(seats=1)
    r1 = request_seat(client, trip["id"], "p1")
    r2 = request_seat(client, trip["id"], "p2")
    driver_ctx = AuthContext(user_id="driver")

    # two driver tabs, each with its own session loaded before either accepts
    tab_a, tab_b = SessionLocal(), SessionLocal()
    try:
        assert tab_a.get(Trip, trip["id"]).seats_available == 1
        assert tab_b.get(Trip, trip["id"]).seats_available == 1

        request_ledger.accept_request(tab_a, driver_ctx, r1["id"])
        with pytest.raises(CapacityError):
            request_ledger.accept_request(tab_b, driver_ctx, r2["id"])

        tab_b.expire_all()
        assert tab_b.get(Trip, trip["id"]).seats_available == 0
    finally:
        tab_a.close()
        tab_b.close()


def test_concurrent_accepts_on_last_seat(client, passenger, passenger2, publish):
    trip = publish(seats=1)
    pending = [request_seat(client, trip["id"], uid)["id"] for uid in ("p1", "p2")]
    driver_ctx = AuthContext(user_id="driver")
    barrier = threading.Barrier(len(pending), timeout=10)
    results = []

    def accept(request_id):
        db = SessionLocal()
        try:
            barrier.wait()
            request_ledger.accept_request(db, driver_ctx, request_id)
            results.append("ok")
        except CapacityError:
            results.append("CapacityError")
        finally:
            db.close()

    workers = [threading.Thread(target=accept, args=(request_id,)) for request_id in pending]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join(timeout=30)

    assert sorted(results) == ["CapacityError", "ok"]
    assert client.get(f"/trips/{trip['id']}").json()["seats_available"] == 0


def test_full_trip_leaves_the_open_listing(client, passenger, publish):
    trip = publish(seats=1)
    req = request_seat(client, trip["id"], "p1")
    assert len(client.get("/trips/").json()) == 1
    client.post(f"/trip-requests/{req['id']}/accept", headers=auth("driver"))
    assert client.get("/trips/").json() == []


def test_answered_requests_cannot_change_again(client, passenger, passenger2, publish):
    trip = publish()
    accepted = request_seat(client, trip["id"], "p1")
    rejected = request_seat(client, trip["id"], "p2")
    client.post(f"/trip-requests/{accepted['id']}/accept", headers=auth("driver"))
    client.post(f"/trip-requests/{rejected['id']}/reject", headers=auth("driver"))

    for req_id in (accepted["id"], rejected["id"]):
        for action in ("accept", "reject"):
            resp = client.post(f"/trip-requests/{req_id}/{action}", headers=auth("driver"))
            assert resp.status_code == 409
            assert resp.json()["error"] == "StateError"


def test_only_trip_owner_answers_requests(client, db, passenger, publish):
    trip = publish()
    req = request_seat(client, trip["id"], "p1")
    make_profile(db, "intruder", role=ProfileRole.DRIVER)
    for action in ("accept", "reject"):
        resp = client.post(f"/trip-requests/{req['id']}/{action}", headers=auth("intruder"))
        assert resp.status_code == 403


def test_reject_keeps_seats_and_hides_request(client, passenger, publish, pushes):
    trip = publish(seats=2)
    req = request_seat(client, trip["id"], "p1")

    resp = client.post(f"/trip-requests/{req['id']}/reject", headers=auth("driver"))
    assert resp.json()["status"] == "rejected"
    assert client.get(f"/trips/{trip['id']}").json()["seats_available"] == 2
    assert client.get("/trip-requests/driver", headers=auth("driver")).json() == []
    assert any(p["token"] == "token-p1" and p["title"] == "Solicitud rechazada" for p in pushes)


def test_driver_sees_passenger_phone_only_after_accepting(client, passenger, passenger2, publish):
    trip = publish()
    r1 = request_seat(client, trip["id"], "p1")
    request_seat(client, trip["id"], "p2")
    client.post(f"/trip-requests/{r1['id']}/accept", headers=auth("driver"))

    listing = client.get("/trip-requests/driver", headers=auth("driver")).json()
    phones = {r["passenger_id"]: r["passenger_phone"] for r in listing}
    assert phones == {"p1": "912345678", "p2": None}
    # newest first
    assert listing[0]["passenger_id"] == "p2"


def test_passenger_requests_show_driver_contact_once_accepted(client, passenger, publish):
    first = publish(to_loc="Ica")
    second = publish(to_loc="Cusco")
    r1 = request_seat(client, first["id"], "p1")
    request_seat(client, second["id"], "p1")
    client.post(f"/trip-requests/{r1['id']}/accept", headers=auth("driver"))

    mine = client.get("/trip-requests/mine", headers=auth("p1")).json()
    assert [r["trip"]["to_loc"] for r in mine] == ["Cusco", "Ica"]
    assert mine[0]["driver"]["phone"] is None
    assert mine[1]["driver"]["phone"] == "987654321"
    assert mine[1]["driver"]["car_plate"] == "ABC-123"


def test_ticket_only_for_accepted_request(client, passenger, publish):
    trip = publish()
    req = request_seat(client, trip["id"], "p1")
    assert client.get(f"/trip-requests/{req['id']}/ticket", headers=auth("p1")).status_code == 409

    client.post(f"/trip-requests/{req['id']}/accept", headers=auth("driver"))
    ticket = client.get(f"/trip-requests/{req['id']}/ticket", headers=auth("p1")).json()
    assert ticket["from_loc"] == "Lima"
    assert ticket["driver"]["phone"] == "987654321"
    assert client.get(f"/trip-requests/{req['id']}/ticket", headers=auth("driver")).status_code == 403


def test_requests_on_closed_trip_are_refused(client, passenger, publish):
    trip = publish()
    client.post(f"/trips/{trip['id']}/complete", headers=auth("driver"))
    resp = client.post(f"/trips/{trip['id']}/requests", headers=auth("p1"))
    assert resp.status_code == 409
