"""
web/routes.py -- Jinja2 page routes for the OAK portal.

These routes serve server-rendered HTML and share app.state (settings, user
store) with the form endpoints in api/routes/auth.py.

Routes:
  GET /                -- plain-text liveness banner
  GET /login           -- login form
  GET /signup          -- signup form
  GET /dashboard       -- investor dashboard (session required)
  GET /adminDashboard  -- admin dashboard (session + admin required)
  GET /logout          -- clear cookie, redirect /login

Protected handlers start with:
    session = resolve_session(request)
    if redirect := _reject_session(request, session):
        return redirect
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from auth.dependencies import SessionResult, resolve_session, require_admin
from auth.errors import NotAuthorizedError
from auth.tokens import clear_auth_cookie
from core.flash import ERROR, SUCCESS, flash, pop_flashes

logger = logging.getLogger("oak.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()

# ---------------------------------------------------------------------------
# Session helpers
# ---------------------------------------------------------------------------


def _reject_session(request: Request, session: SessionResult) -> Optional[RedirectResponse]:
    """Return a redirect to /login for any non-authenticated session, else None.

    The token cookie is cleared on every rejection so a stale or forged value
    is not replayed on the next request.
    """
    if session.authenticated:
        return None
    flash(request, session.message or "Please log in to view this page.", ERROR)
    resp = RedirectResponse("/login", status_code=302)
    clear_auth_cookie(resp)
    return resp


def _render(request: Request, template: str, **context) -> HTMLResponse:
    context["messages"] = pop_flashes(request)
    return templates.TemplateResponse(request, template, context)


# ---------------------------------------------------------------------------
# Public pages
# ---------------------------------------------------------------------------


@router.get("/", response_class=PlainTextResponse)
def index() -> str:
    return "OAK Investment Backend API is running..."


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    """Render the email/password login form."""
    return _render(request, "login.html")


@router.get("/signup", response_class=HTMLResponse)
def signup_form(request: Request) -> HTMLResponse:
    """Render the account registration form."""
    return _render(request, "signup.html")


# ---------------------------------------------------------------------------
# Protected pages
# ---------------------------------------------------------------------------


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request) -> HTMLResponse:
    session = resolve_session(request)
    if redirect := _reject_session(request, session):
        return redirect
    return _render(request, "dashboard.html", user=session.principal)


@router.get("/adminDashboard", response_class=HTMLResponse)
def admin_dashboard(request: Request) -> HTMLResponse:
    """Admin landing page. Non-admins are sent to /dashboard."""
    session = resolve_session(request)
    if redirect := _reject_session(request, session):
        return redirect
    try:
        principal = require_admin(session)
    except NotAuthorizedError as exc:
        logger.info("Non-admin user id=%s denied /adminDashboard", session.principal.id)
        flash(request, exc.message, ERROR)
        return RedirectResponse("/dashboard", status_code=302)
    return _render(request, "adminDashboard.html", user=principal)


# ---------------------------------------------------------------------------
# Logout
# ---------------------------------------------------------------------------


@router.get("/logout")
def logout(request: Request) -> RedirectResponse:
    """Clear the token cookie and redirect to the login page."""
    flash(request, "You have been logged out.", SUCCESS)
    resp = RedirectResponse("/login", status_code=302)
    clear_auth_cookie(resp)
    return resp
