"""
auth/dependencies.py -- Per-request session resolution and the admin gate.

resolve_session() walks one request through the session states:

  NO_TOKEN       no "token" cookie on the request
  TOKEN_INVALID  decode_access_token() raised (bad signature, malformed, expired)
  USER_MISSING   token verified but the store has no user with that id
  AUTHENTICATED  token verified and user loaded; principal attached

The principal is always re-read from the store, never trusted from the token
claims, so deleted accounts and admin-flag changes take effect on the next
request rather than at token expiry. The cost is one store lookup per request.

resolve_session() never raises; the web layer decides how each state is
reported (redirect, flash message, cookie clearing). require_admin() runs
strictly after it and raises NotAuthorizedError for anything but an
authenticated admin.

Layer rule: no imports from api/ or web/. fastapi is allowed for Request.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from fastapi import Request

from auth.errors import AuthenticationError, NotAuthorizedError
from auth.models import Principal
from auth.store import UserStore
from auth.tokens import COOKIE_NAME, decode_access_token
from core.config import Settings

logger = logging.getLogger("oak.auth")


class SessionState(str, enum.Enum):
    NO_TOKEN = "no_token"
    TOKEN_INVALID = "token_invalid"
    USER_MISSING = "user_missing"
    AUTHENTICATED = "authenticated"


# User-facing message for each rejecting state.
SESSION_MESSAGES: dict[SessionState, str] = {
    SessionState.NO_TOKEN: "Please log in to view this page.",
    SessionState.TOKEN_INVALID: "Session expired or invalid. Please log in again.",
    SessionState.USER_MISSING: "User not found. Please log in again.",
}


@dataclass(frozen=True)
class SessionResult:
    state: SessionState
    principal: Principal | None = None

    @property
    def authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    @property
    def message(self) -> str | None:
        return SESSION_MESSAGES.get(self.state)


def resolve_session(request: Request) -> SessionResult:
    """Resolve the request's token cookie to a Principal.

    On AUTHENTICATED the principal is also stored on request.state.principal
    for the rest of the request.
    """
    settings: Settings = request.app.state.settings
    user_store: UserStore = request.app.state.user_store

    token = request.cookies.get(COOKIE_NAME)
    if not token:
        return SessionResult(SessionState.NO_TOKEN)

    try:
        claims = decode_access_token(settings, token)
    except AuthenticationError as exc:
        logger.info("Rejected session token: %s", type(exc).__name__)
        return SessionResult(SessionState.TOKEN_INVALID)

    user = user_store.get_by_id(claims.user_id)
    if user is None:
        logger.info("Session token names missing user id=%s", claims.user_id)
        return SessionResult(SessionState.USER_MISSING)

    principal = user.to_principal()
    request.state.principal = principal
    return SessionResult(SessionState.AUTHENTICATED, principal)


def require_admin(session: SessionResult) -> Principal:
    """Return the principal if it is an authenticated admin.

    Raises NotAuthorizedError otherwise, including when called on a session
    that never authenticated.
    """
    if not session.authenticated or session.principal is None or not session.principal.is_admin:
        raise NotAuthorizedError("You are not authorized to view this page.")
    return session.principal
