"""Self-service profile, password and address book endpoints."""

from pathlib import Path

from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from shop.core.config import settings
from shop.db import session as db_session
from shop.db.base import Base
from shop.db.session import build_engine
from shop.main import app
from shop.models import User

ADDRESS = {
    "title": "Office",
    "recipientName": "Ana",
    "recipientPhone": "555-0101",
    "country": "PT",
    "province": "Lisboa",
    "city": "Lisbon",
    "streetAddress": "Rua Augusta 10",
    "postalCode": "1100-053",
}


def _setup_db(tmp_path: Path, monkeypatch) -> sessionmaker:
    engine = build_engine(f"sqlite:///{tmp_path / 'profile.db'}")
    session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", session_local)
    monkeypatch.setattr("shop.main.engine", engine)
    monkeypatch.setattr("shop.main.SessionLocal", session_local)
    monkeypatch.setattr(settings, "media_root", str(tmp_path / "media"))
    return session_local


def _register(client: TestClient, email: str) -> dict[str, str]:
    response = client.post("/api/auth/register", json={"email": email, "password": "password123"})
    return {"Authorization": f"Bearer {response.json()['token']}"}


def test_profile_update_is_partial(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        headers = _register(client, "p@x.com")
        first = client.put("/api/profile", json={"firstName": "Pat", "gender": "other"}, headers=headers)
        second = client.put("/api/profile", json={"phone": "555-0199"}, headers=headers)
        invalid = client.put("/api/profile", json={"gender": "robot"}, headers=headers)
        fetched = client.get("/api/profile", headers=headers)

    assert first.status_code == 200
    assert second.json()["profile"] == {
        "firstName": "Pat",
        "lastName": None,
        "phone": "555-0199",
        "gender": "other",
        "avatar": None,
    }
    assert invalid.status_code == 400
    assert fetched.json()["profile"]["firstName"] == "Pat"


def test_change_password_checks_current_password(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        headers = _register(client, "pw@x.com")
        wrong = client.put(
            "/api/profile/change-password",
            json={"currentPassword": "nope", "newPassword": "newpassword1"},
            headers=headers,
        )
        too_short = client.put(
            "/api/profile/change-password",
            json={"currentPassword": "password123", "newPassword": "short"},
            headers=headers,
        )
        changed = client.put(
            "/api/profile/change-password",
            json={"currentPassword": "password123", "newPassword": "newpassword1"},
            headers=headers,
        )
        login = client.post("/api/auth/login", json={"email": "pw@x.com", "password": "newpassword1"})

    assert wrong.status_code == 400
    assert wrong.json()["code"] == "invalid_credentials"
    assert too_short.status_code == 400
    assert changed.status_code == 200
    assert login.status_code == 200


def test_delete_own_account_is_soft(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        headers = _register(client, "bye@x.com")
        user_id = client.get("/api/auth/me", headers=headers).json()["user"]["id"]
        deleted = client.delete("/api/profile", headers=headers)
        after = client.get("/api/auth/me", headers=headers)

    assert deleted.status_code == 200
    assert after.status_code == 401

    with session_local() as db:
        assert db.get(User, user_id).status == "deleted"


def test_address_book_keeps_a_single_default(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        headers = _register(client, "addr@x.com")
        first = client.post("/api/addresses", json=ADDRESS, headers=headers).json()
        second = client.post("/api/addresses", json={**ADDRESS, "title": "Home"}, headers=headers).json()
        third = client.post("/api/addresses", json={**ADDRESS, "title": "Cabin", "isDefault": True}, headers=headers)
        after_third = client.get("/api/addresses", headers=headers).json()
        client.post(f"/api/addresses/{second['id']}/default", headers=headers)
        after_switch = client.get("/api/addresses", headers=headers).json()

    assert first["isDefault"] is True
    assert second["isDefault"] is False
    assert third.status_code == 201
    assert [address["title"] for address in after_third if address["isDefault"]] == ["Cabin"]
    assert [address["title"] for address in after_switch if address["isDefault"]] == ["Home"]
    assert after_switch[0]["title"] == "Home"


def test_addresses_are_scoped_to_their_owner(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        owner = _register(client, "own@x.com")
        other = _register(client, "oth@x.com")
        address_id = client.post("/api/addresses", json=ADDRESS, headers=owner).json()["id"]
        foreign_update = client.put(f"/api/addresses/{address_id}", json={"city": "Porto"}, headers=other)
        foreign_delete = client.delete(f"/api/addresses/{address_id}", headers=other)
        own_update = client.put(f"/api/addresses/{address_id}", json={"city": "Porto"}, headers=owner)
        own_delete = client.delete(f"/api/addresses/{address_id}", headers=owner)
        listing = client.get("/api/addresses", headers=owner).json()
        missing_field = client.post("/api/addresses", json={"title": "Incomplete"}, headers=owner)

    assert foreign_update.status_code == 404
    assert foreign_delete.status_code == 404
    assert own_update.json()["city"] == "Porto"
    assert own_delete.status_code == 200
    assert listing == []
    assert missing_field.status_code == 400
