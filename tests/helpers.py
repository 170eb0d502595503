"""
tests/helpers.py -- Builders and header assertions shared by the test modules.
"""

from __future__ import annotations

import uuid

from auth.models import User
from core.config import Settings

TEST_ROUNDS = 4
TEST_PASSWORD = "hunter22"


def make_settings(**overrides) -> Settings:
    """Settings with fixed secrets and the cheapest bcrypt cost, ignoring any .env file."""
    values = {
        "jwt_secret": "j" * 32,
        "session_secret": "s" * 32,
        "database_url": "sqlite:///:memory:",
        "bcrypt_rounds": TEST_ROUNDS,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_user(password: str = TEST_PASSWORD, is_admin: bool = False, **fields) -> User:
    """Build an unsaved User with unique username, email and phone unless given."""
    tag = uuid.uuid4().hex[:10]
    return User.new(
        fields.get("username", f"user_{tag}"),
        fields.get("email", f"{tag}@example.com"),
        password,
        fields.get("phone_for_withdrawal", f"+1-555-{tag}"),
        is_admin=is_admin,
        rounds=TEST_ROUNDS,
    )


def set_cookie_headers(resp) -> list[str]:
    return [v for k, v in resp.headers.multi_items() if k.lower() == "set-cookie"]


def token_cookie(resp) -> str | None:
    """The Set-Cookie header for "token", or None."""
    for header in set_cookie_headers(resp):
        if header.startswith("token="):
            return header
    return None


def token_cookie_cleared(resp) -> bool:
    """True if the response deletes the "token" cookie (Max-Age=0)."""
    header = token_cookie(resp)
    return header is not None and "max-age=0" in header.lower()
