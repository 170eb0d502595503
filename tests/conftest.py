"""
tests/conftest.py -- Shared test fixtures for the OAK portal.

This module provides:
  - portal: module-scoped app + TestClient wired to an isolated in-memory DB,
            pre-loaded with one admin and one regular investor
  - web:    the same portal with the client's cookie jar emptied per test
  - store:  a private in-memory UserStore for unit tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the process.
"""

from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient
from helpers import make_settings, make_user

from api.main import create_app
from auth.models import User
from auth.store import UserStore
from auth.tokens import create_access_token
from core.config import Settings
from web.routes import router as web_router


@dataclass
class Portal:
    client: TestClient
    settings: Settings
    store: UserStore
    admin: User
    member: User

    def token_for(self, user: User, **kwargs) -> str:
        return create_access_token(self.settings, user.id, user.is_admin, **kwargs)

    def login_as(self, user: User) -> None:
        self.client.cookies.set("token", self.token_for(user))


@pytest.fixture(scope="module")
def portal(request) -> Generator[Portal, None, None]:
    """Yield a Portal for route integration tests.

    follow_redirects=False is essential: the tests assert on redirect
    Location and Set-Cookie headers, which disappear once a redirect is
    followed.
    """
    db_name = request.module.__name__.rsplit(".", 1)[-1]
    db_url = f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true"
    settings = make_settings(database_url=db_url)
    store = UserStore(db_url)

    admin = make_user(is_admin=True, username="rootadmin", email="root@example.com")
    member = make_user(username="investor", email="investor@example.com")
    store.create_user(admin)
    store.create_user(member)

    app = create_app(settings, user_store=store)
    app.include_router(web_router, tags=["Web UI"])

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield Portal(client=client, settings=settings, store=store, admin=admin, member=member)

    store.close()


@pytest.fixture
def web(portal: Portal) -> Portal:
    """The module's Portal with no cookies left over from earlier tests."""
    portal.client.cookies.clear()
    return portal


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    """A fresh private in-memory store for unit tests."""
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()
