from models.Profile import Profile, ProfileRole

from conftest import auth, make_profile


def test_register_profile_as_driver(client):
    resp = client.post("/profiles/", json={"full_name": "Carlos Ruiz", "role": "driver"}, headers=auth("u1"))
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["id"] == "u1"
    assert body["role"] == "driver"
    assert body["subscription_status"] == "inactive"
    assert body["rating_count"] == 0


def test_admin_role_cannot_be_self_assigned(client):
    resp = client.post("/profiles/", json={"full_name": "Eve", "role": "admin"}, headers=auth("u1"))
    assert resp.status_code == 400
    assert resp.json()["error"] == "ValidationError"


def test_register_twice_is_duplicate(client):
    client.post("/profiles/", json={"full_name": "Ana"}, headers=auth("u1"))
    resp = client.post("/profiles/", json={"full_name": "Ana"}, headers=auth("u1"))
    assert resp.status_code == 409
    assert resp.json()["error"] == "DuplicateError"


def test_missing_token_is_rejected(client):
    resp = client.get("/profiles/me")
    assert resp.status_code == 401


def test_session_recreates_missing_profile(client, db):
    resp = client.post("/session/", headers=auth("ghost"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["repaired"] is True
    assert body["profile"]["role"] == "passenger"
    assert body["profile"]["full_name"] == "Usuario"
    assert body["profile"]["avatar_url"] is None
    assert db.query(Profile).filter(Profile.id == "ghost").count() == 1

    again = client.post("/session/", headers=auth("ghost")).json()
    assert again["repaired"] is False


def test_session_keeps_existing_profile(client, driver):
    body = client.post("/session/", headers=auth("driver")).json()
    assert body["repaired"] is False
    assert body["profile"]["role"] == "driver"


def test_update_phone_and_vehicle(client, driver):
    resp = client.patch(
        "/profiles/me",
        json={"phone": "999111222", "car_color": "Rojo"},
        headers=auth("driver"),
    )
    assert resp.status_code == 200
    assert resp.json()["phone"] == "999111222"
    assert resp.json()["car_color"] == "Rojo"
    assert resp.json()["car_brand"] == "Toyota"


def test_role_and_subscription_are_not_editable(client, passenger):
    resp = client.patch("/profiles/me", json={"role": "driver"}, headers=auth("p1"))
    assert resp.status_code == 422
    resp = client.patch("/profiles/me", json={"subscription_status": "active"}, headers=auth("p1"))
    assert resp.status_code == 422


def test_passenger_cannot_register_vehicle(client, passenger):
    resp = client.patch("/profiles/me", json={"car_plate": "XYZ-999"}, headers=auth("p1"))
    assert resp.status_code == 400


def test_public_profile_hides_contact(client, driver, passenger):
    resp = client.get("/profiles/driver", headers=auth("p1"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["car_plate"] == "ABC-123"
    assert "phone" not in body
    assert "subscription_status" not in body


def test_fcm_token_update(client, db, passenger):
    resp = client.put("/profiles/me/fcm-token", json={"fcm_token": "new-token"}, headers=auth("p1"))
    assert resp.status_code == 200
    db.expire_all()
    assert db.get(Profile, "p1").fcm_token == "new-token"


def test_profile_without_row_is_not_found(client):
    resp = client.get("/profiles/me", headers=auth("nobody"))
    assert resp.status_code == 404


def test_unknown_public_profile(client, db):
    make_profile(db, "viewer", role=ProfileRole.PASSENGER)
    assert client.get("/profiles/missing", headers=auth("viewer")).status_code == 404
