"""Server-side verification of Google sign-in credentials."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

import requests
from jose import JWTError, jwt

from shop.core.config import settings
from shop.core.errors import InternalError, InvalidCredentials

logger = logging.getLogger(__name__)

GOOGLE_ISSUERS: tuple[str, ...] = ("accounts.google.com", "https://accounts.google.com")

_key_cache: dict[str, Any] = {"keys": None, "fetched_at": 0.0}


@dataclass(frozen=True)
class GoogleIdentity:
    """Claims taken from a verified Google ID token."""

    subject: str
    email: str
    picture: str | None = None
    first_name: str | None = None
    last_name: str | None = None


def fetch_google_keys() -> dict[str, Any]:
    """Return Google's JWKS document, cached for ``GOOGLE_CERTS_TTL_SECONDS``."""
    now = time.monotonic()
    if _key_cache["keys"] is None or now - _key_cache["fetched_at"] > settings.google_certs_ttl_seconds:
        response = requests.get(settings.google_certs_url, timeout=10)
        response.raise_for_status()
        _key_cache["keys"] = response.json()
        _key_cache["fetched_at"] = now
    return _key_cache["keys"]


def verify_google_credential(credential: str) -> GoogleIdentity:
    """Validate a Google ID token and return the identity it asserts.

    The signature is checked against Google's published keys, the audience
    against ``GOOGLE_CLIENT_ID`` and the issuer against Google's issuers.
    Only tokens carrying a verified email are accepted.
    """
    if not settings.google_client_id:
        logger.warning("[AUTH] Google sign-in attempted but GOOGLE_CLIENT_ID is not set")
        raise InvalidCredentials("Google sign-in is not configured")

    try:
        keys = fetch_google_keys()
    except requests.RequestException as exc:
        logger.exception("[AUTH] Could not fetch Google signing keys")
        raise InternalError("Could not verify Google credential") from exc

    try:
        claims = jwt.decode(
            credential,
            keys,
            algorithms=["RS256"],
            audience=settings.google_client_id,
            issuer=GOOGLE_ISSUERS,
        )
    except JWTError as exc:
        logger.warning("[AUTH] Rejected Google credential: %s", exc)
        raise InvalidCredentials("Invalid Google credential") from exc

    if not claims.get("sub") or not claims.get("email") or claims.get("email_verified") not in (True, "true"):
        raise InvalidCredentials("Google account email is not verified")

    return GoogleIdentity(
        subject=str(claims["sub"]),
        email=str(claims["email"]).strip().lower(),
        picture=claims.get("picture"),
        first_name=claims.get("given_name"),
        last_name=claims.get("family_name"),
    )
