"""
auth/tokens.py -- JWT session tokens and the cookie that carries them.

Security design decisions:
  JWT: python-jose with HS256, signed with Settings.jwt_secret. Claims are
       sub/user_id, is_admin, iat and exp, with exp = iat + token_ttl_seconds.
       decode_access_token() raises InvalidTokenError or TokenExpiredError;
       the session middleware treats both as "log in again".

  Expiry: jose's own exp check reads the wall clock, so it is switched off
       and exp is compared against an injectable `now`. This keeps the TTL
       boundary testable without patching time.

  Cookie: "token", httpOnly (no script access), samesite=lax, Secure only
       when ENVIRONMENT=production, max_age aligned with the token TTL.

Layer rule: no imports from api/ or web/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.errors import InvalidTokenError, TokenExpiredError
from core.config import Settings

logger = logging.getLogger("oak.auth")

COOKIE_NAME = "token"
_ALGORITHM = "HS256"


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    is_admin: bool
    issued_at: datetime
    expires_at: datetime


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(settings: Settings, user_id: int, is_admin: bool, now: datetime | None = None) -> str:
    """Encode a signed JWT for the given user.

    Args:
        settings: Supplies jwt_secret and token_ttl_seconds.
        user_id:  Store ID of the user.
        is_admin: Admin flag at issue time. Informational only; the role gate
                  reads the flag from the store, not from the token.
        now:      Issue time. Defaults to the current UTC time.
    """
    issued = now or datetime.now(timezone.utc)
    expires = issued + timedelta(seconds=settings.token_ttl_seconds)
    payload = {
        "sub": str(user_id),
        "user_id": user_id,
        "is_admin": is_admin,
        "iat": int(issued.timestamp()),
        "exp": int(expires.timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=_ALGORITHM)


def decode_access_token(settings: Settings, token: str, now: datetime | None = None) -> TokenClaims:
    """Verify a JWT's signature and expiry and return its claims.

    Raises:
        InvalidTokenError: bad signature, malformed token, or missing claims.
        TokenExpiredError: signature valid but now >= exp.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[_ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError as exc:
        raise InvalidTokenError("Session expired or invalid. Please log in again.") from exc

    try:
        user_id = int(payload["user_id"])
        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
    except (KeyError, TypeError, ValueError) as exc:
        logger.debug("Token verified but claims are malformed: %s", exc)
        raise InvalidTokenError("Session expired or invalid. Please log in again.") from exc

    current = now or datetime.now(timezone.utc)
    if current >= expires_at:
        raise TokenExpiredError("Session expired or invalid. Please log in again.")

    return TokenClaims(
        user_id=user_id,
        is_admin=bool(payload.get("is_admin", False)),
        issued_at=issued_at,
        expires_at=expires_at,
    )


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, settings: Settings) -> None:
    """Write the JWT as an httpOnly cookie on a Starlette response."""
    response.set_cookie(
        COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=settings.token_ttl_seconds,
    )


def clear_auth_cookie(response) -> None:
    response.delete_cookie(COOKIE_NAME)
