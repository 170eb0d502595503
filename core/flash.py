"""
core/flash.py -- One-shot flash messages stored in the signed session cookie.

Starlette's SessionMiddleware (keyed by SESSION_SECRET) signs request.session
with itsdangerous, so a client can read but not forge queued messages.
Messages survive exactly one redirect: pop_flashes() empties the queue.

Shared by api/ (form endpoints) and web/ (pages), which do not import each
other.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from starlette.requests import Request

_SESSION_KEY = "_flashes"

# Categories the templates know how to style.
SUCCESS = "success"
ERROR = "error"


def flash(request: Request, message: str, category: str = ERROR) -> None:
    request.session.setdefault(_SESSION_KEY, []).append({"category": category, "message": message})


def pop_flashes(request: Request) -> dict[str, list[str]]:
    """Remove and return queued messages grouped by category."""
    grouped: dict[str, list[str]] = {}
    for item in request.session.pop(_SESSION_KEY, []):
        grouped.setdefault(item["category"], []).append(item["message"])
    return grouped
