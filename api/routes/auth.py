"""
api/routes/auth.py -- Signup and login form endpoints.

Routes:
  POST /api/auth/signup  -- create an account; 302 /login on success
  POST /api/auth/login   -- check credentials, set token cookie; 302 by role

Both endpoints take urlencoded form bodies posted by the pages in web/ and
answer with redirects, never with error bodies. Every AuthError becomes a
flashed message plus a redirect back to the form. An unexpected database
error is logged and reported with a generic message.

Security:
  The login response is the same for an unknown email and a wrong password.
  Cache-Control: no-store on login responses so the Set-Cookie is not cached.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Form, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from auth.errors import AuthError
from auth.models import SignupRequest
from auth.service import authenticate_user, register_user
from auth.store import UserStore
from auth.tokens import create_access_token, set_auth_cookie
from core.config import Settings
from core.flash import ERROR, SUCCESS, flash

logger = logging.getLogger("oak.api.auth")

router = APIRouter()


def _back_to(request: Request, path: str, message: str) -> RedirectResponse:
    flash(request, message, ERROR)
    return RedirectResponse(path, status_code=302)


@router.post("/auth/signup")
def signup(
    request: Request,
    username: str = Form(default=""),
    email: str = Form(default=""),
    password: str = Form(default=""),
    confirm_password: str = Form(default="", alias="confirmPassword"),
    phone_for_withdrawal: str = Form(default="", alias="phoneForWithdrawal"),
) -> RedirectResponse:
    """Register a new account. Does not log the user in."""
    settings: Settings = request.app.state.settings
    user_store: UserStore = request.app.state.user_store
    form = SignupRequest(
        username=username,
        email=email,
        password=password,
        confirm_password=confirm_password,
        phone_for_withdrawal=phone_for_withdrawal,
    )
    try:
        register_user(user_store, form, rounds=settings.bcrypt_rounds)
    except AuthError as exc:
        return _back_to(request, "/signup", exc.message)
    except SQLAlchemyError:
        logger.exception("Signup failed on a database error")
        return _back_to(request, "/signup", "An error occurred during sign up. Please try again.")

    flash(request, "Sign up successful! Please log in.", SUCCESS)
    return RedirectResponse("/login", status_code=302)


@router.post("/auth/login")
def login(
    request: Request,
    email: str = Form(default=""),
    password: str = Form(default=""),
) -> RedirectResponse:
    """Check credentials, set the token cookie, and route by admin flag."""
    settings: Settings = request.app.state.settings
    user_store: UserStore = request.app.state.user_store
    try:
        user = authenticate_user(user_store, email, password, rounds=settings.bcrypt_rounds)
    except AuthError as exc:
        resp = _back_to(request, "/login", exc.message)
        resp.headers["Cache-Control"] = "no-store"
        return resp
    except SQLAlchemyError:
        logger.exception("Login failed on a database error")
        return _back_to(request, "/login", "An error occurred during login. Please try again.")

    token = create_access_token(settings, user.id, user.is_admin)
    flash(request, "Login successful!", SUCCESS)
    resp = RedirectResponse("/adminDashboard" if user.is_admin else "/dashboard", status_code=302)
    set_auth_cookie(resp, token, settings)
    resp.headers["Cache-Control"] = "no-store"
    return resp
