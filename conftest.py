import os
import tempfile
from datetime import date, time, timedelta

# Must be set before the app modules read their configuration
_tmp_dir = tempfile.mkdtemp(prefix="halador-test-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp_dir, 'test.db')}"
os.environ["LOG_PATH"] = os.path.join(_tmp_dir, "api.log")

import pytest
from fastapi import Header
from fastapi.testclient import TestClient

import main
from database import Base, SessionLocal, engine
from errors import AuthenticationError
from models.Profile import Profile, ProfileRole, SubscriptionStatus
from models.Trip import Trip, TripStatus
from services import fcm_service
from services.auth import AuthContext, get_auth_context
from services.notifications import register_notification_relay, unregister_notification_relay
from services.trip_catalog import open_trips_cache, utcnow


def _token_as_uid(authorization: str = Header(None)) -> AuthContext:
    # tests send "Bearer <uid>" instead of a signed Firebase token
    if not authorization:
        raise AuthenticationError("Falta el token de autenticación")
    return AuthContext(user_id=authorization.partition(" ")[2])


def auth(uid: str) -> dict:
    return {"Authorization": f"Bearer {uid}"}


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    open_trips_cache.invalidate()
    yield


@pytest.fixture(autouse=True)
def pushes(monkeypatch):
    """Record push notifications instead of calling FCM."""
    sent = []

    def fake_send(fcm_token, title, body, data=None):
        sent.append({"token": fcm_token, "title": title, "body": body, "data": data or {}})
        return True

    def fake_send_multiple(fcm_tokens, title, body, data=None):
        for token in fcm_tokens:
            sent.append({"token": token, "title": title, "body": body, "data": data or {}})
        return {"success": len(fcm_tokens), "failure": 0}

    monkeypatch.setattr(fcm_service, "send_notification", fake_send)
    monkeypatch.setattr(fcm_service, "send_notification_to_multiple", fake_send_multiple)
    return sent


@pytest.fixture
def client():
    main.app.dependency_overrides[get_auth_context] = _token_as_uid
    register_notification_relay()
    with TestClient(main.app) as c:
        yield c
    unregister_notification_relay()
    main.app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def make_profile(db, uid, role=ProfileRole.PASSENGER, subscription=SubscriptionStatus.INACTIVE,
                 end_date=None, **fields):
    profile = Profile(
        id=uid,
        full_name=fields.pop("full_name", uid.capitalize()),
        role=role,
        subscription_status=subscription,
        subscription_end_date=end_date,
        fcm_token=fields.pop("fcm_token", f"token-{uid}"),
        **fields,
    )
    db.add(profile)
    db.commit()
    return profile


@pytest.fixture
def driver(db):
    return make_profile(
        db, "driver", role=ProfileRole.DRIVER,
        subscription=SubscriptionStatus.ACTIVE,
        end_date=utcnow() + timedelta(days=10),
        phone="987654321", car_brand="Toyota", car_model="Yaris", car_plate="ABC-123",
    )


@pytest.fixture
def passenger(db):
    return make_profile(db, "p1", full_name="Pasajera Uno", phone="912345678")


@pytest.fixture
def passenger2(db):
    return make_profile(db, "p2", full_name="Pasajero Dos", phone="923456789")


@pytest.fixture
def admin(db):
    return make_profile(db, "admin", role=ProfileRole.ADMIN)


def future(days=7) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


def trip_payload(**overrides) -> dict:
    payload = {
        "from_loc": "Lima",
        "to_loc": "Arequipa",
        "date": future(),
        "time": "08:00",
        "price": 30,
        "seats": 3,
        "features": ["ac", "music"],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def publish(client, driver):
    def _publish(**overrides):
        resp = client.post("/trips/", json=trip_payload(**overrides), headers=auth("driver"))
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _publish


def insert_trip(db, driver_id="driver", **fields) -> Trip:
    values = {
        "from_loc": "Lima",
        "to_loc": "Ica",
        "date": date.today() + timedelta(days=3),
        "time": time(9, 0),
        "price": 25.0,
        "seats_total": 2,
        "seats_available": 2,
        "status": TripStatus.OPEN,
        "features": [],
    }
    values.update(fields)
    trip = Trip(driver_id=driver_id, **values)
    db.add(trip)
    db.commit()
    return trip
