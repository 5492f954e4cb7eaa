"""Google sign-in: ID token verification and account linking."""

import time
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient
from jose import jwk, jwt
from sqlalchemy.orm import sessionmaker

from shop.core.config import settings
from shop.core.security import verify_token
from shop.db import session as db_session
from shop.db.base import Base
from shop.db.session import build_engine
from shop.main import app
from shop.models import User
from shop.services.user_service import create_user

CLIENT_ID = "shop-web.apps.googleusercontent.com"


def _rsa_key_pair() -> tuple[str, dict]:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    public_jwk = jwk.construct(public_pem, "RS256").to_dict()
    public_jwk["kid"] = "google-test-key"
    return private_pem, public_jwk


GOOGLE_PRIVATE_KEY, GOOGLE_PUBLIC_JWK = _rsa_key_pair()
FORGED_PRIVATE_KEY, _ = _rsa_key_pair()


def _id_token(private_key: str = GOOGLE_PRIVATE_KEY, **overrides) -> str:
    now = int(time.time())
    claims = {
        "iss": "https://accounts.google.com",
        "aud": CLIENT_ID,
        "sub": "google-123",
        "email": "g@x.com",
        "email_verified": True,
        "given_name": "Gia",
        "picture": "https://img/p.png",
        "iat": now,
        "exp": now + 600,
    }
    claims.update(overrides)
    return jwt.encode(claims, private_key, algorithm="RS256", headers={"kid": "google-test-key"})


def _setup_db(tmp_path: Path, monkeypatch) -> sessionmaker:
    engine = build_engine(f"sqlite:///{tmp_path / 'oauth.db'}")
    session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", session_local)
    monkeypatch.setattr("shop.main.engine", engine)
    monkeypatch.setattr("shop.main.SessionLocal", session_local)
    monkeypatch.setattr(settings, "media_root", str(tmp_path / "media"))
    monkeypatch.setattr(settings, "google_client_id", CLIENT_ID)
    monkeypatch.setattr("shop.core.oauth.fetch_google_keys", lambda: {"keys": [GOOGLE_PUBLIC_JWK]})
    return session_local


def test_verified_google_token_links_existing_customer(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        registered = client.post("/api/auth/register", json={"email": "g@x.com", "password": "password123"}).json()
        first = client.post("/api/auth/oauth/google", json={"credential": _id_token()})
        again = client.post("/api/auth/oauth/google", json={"credential": _id_token()})

    assert first.status_code == 200
    assert first.json()["user"]["id"] == registered["user"]["id"]
    claims = verify_token(first.json()["token"])
    assert claims["authMethod"] == "oauth"
    assert claims["oauthProvider"] == "google"
    assert again.json()["user"]["id"] == registered["user"]["id"]

    with session_local() as db:
        user = db.get(User, registered["user"]["id"])
        assert user.google_id == "google-123"
        assert user.email_verified is True
        assert user.picture == "https://img/p.png"
        assert user.profile.first_name == "Gia"


def test_unknown_google_identity_creates_customer(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        response = client.post(
            "/api/auth/oauth/google",
            json={"credential": _id_token(sub="google-new", email="New@X.com")},
        )

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "new@x.com"
    assert response.json()["user"]["role"] == "user"


def test_forged_google_token_cannot_take_over_super_admin(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)
    with session_local() as db:
        root_id = create_user(db, "root@x.com", "password123", role="super_admin").id

    with TestClient(app) as client:
        unsigned_claims = client.post(
            "/api/auth/oauth/google",
            json={"googleId": "attacker", "email": "root@x.com"},
        )
        forged = client.post(
            "/api/auth/oauth/google",
            json={"credential": _id_token(FORGED_PRIVATE_KEY, sub="attacker", email="root@x.com")},
        )
        genuine_for_admin = client.post(
            "/api/auth/oauth/google",
            json={"credential": _id_token(sub="attacker", email="root@x.com")},
        )

    assert unsigned_claims.status_code == 400
    assert unsigned_claims.json()["code"] == "validation_error"
    assert forged.status_code == 400
    assert forged.json()["code"] == "invalid_credentials"
    assert "token" not in forged.json()
    assert genuine_for_admin.status_code == 400
    assert genuine_for_admin.json()["code"] == "invalid_credentials"

    with session_local() as db:
        root = db.get(User, root_id)
        assert root.google_id is None
        assert root.auth_method == "email"


def test_google_token_claims_are_enforced(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        wrong_audience = client.post("/api/auth/oauth/google", json={"credential": _id_token(aud="other-client")})
        wrong_issuer = client.post("/api/auth/oauth/google", json={"credential": _id_token(iss="https://evil.example")})
        expired = client.post(
            "/api/auth/oauth/google",
            json={"credential": _id_token(iat=int(time.time()) - 7200, exp=int(time.time()) - 3600)},
        )
        unverified = client.post("/api/auth/oauth/google", json={"credential": _id_token(email_verified=False)})
        garbage = client.post("/api/auth/oauth/google", json={"credential": "not-a-jwt"})

    for response in (wrong_audience, wrong_issuer, expired, unverified, garbage):
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_credentials"


def test_google_sign_in_refused_without_client_id(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)
    monkeypatch.setattr(settings, "google_client_id", "")

    with TestClient(app) as client:
        response = client.post("/api/auth/oauth/google", json={"credential": _id_token()})

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_credentials"


def test_second_google_identity_cannot_relink_account(tmp_path: Path, monkeypatch) -> None:
    _setup_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        client.post("/api/auth/oauth/google", json={"credential": _id_token()})
        other = client.post("/api/auth/oauth/google", json={"credential": _id_token(sub="google-999")})

    assert other.status_code == 400
    assert other.json()["code"] == "invalid_credentials"
