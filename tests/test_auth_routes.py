"""
tests/test_auth_routes.py -- Integration tests for POST /api/auth/signup and /api/auth/login.

Runs through the real ASGI stack with follow_redirects=False so the tests can
assert on Location and Set-Cookie, then follows up with GET /login or
GET /signup to read the flashed message the redirect carried.
"""

from __future__ import annotations

import uuid

from helpers import TEST_PASSWORD, token_cookie, token_cookie_cleared

from auth.passwords import verify_password
from auth.tokens import decode_access_token


def _signup_form(**overrides) -> dict:
    tag = uuid.uuid4().hex[:8]
    form = {
        "username": f"new_{tag}",
        "email": f"new_{tag}@example.com",
        "password": "secret1",
        "confirmPassword": "secret1",
        "phoneForWithdrawal": f"555-{tag}",
    }
    form.update(overrides)
    return form


class TestSignup:
    def test_success_redirects_to_login_without_session(self, web) -> None:
        form = _signup_form()
        resp = web.client.post("/api/auth/signup", data=form)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"
        assert token_cookie(resp) is None

        page = web.client.get("/login")
        assert "Sign up successful! Please log in." in page.text

        stored = web.store.get_by_email(form["email"])
        assert stored is not None
        assert stored.password_hash != "secret1"
        assert verify_password("secret1", stored.password_hash)
        assert stored.is_admin is False

    def test_missing_field_redirects_back_with_message(self, web) -> None:
        resp = web.client.post("/api/auth/signup", data=_signup_form(phoneForWithdrawal=""))
        assert resp.status_code == 302
        assert resp.headers["location"] == "/signup"
        assert "Please fill in all fields." in web.client.get("/signup").text

    def test_password_mismatch(self, web) -> None:
        resp = web.client.post("/api/auth/signup", data=_signup_form(confirmPassword="secret2"))
        assert resp.headers["location"] == "/signup"
        assert "Passwords do not match." in web.client.get("/signup").text

    def test_short_password(self, web) -> None:
        resp = web.client.post("/api/auth/signup", data=_signup_form(password="abc", confirmPassword="abc"))
        assert resp.headers["location"] == "/signup"
        assert "Password must be at least 6 characters long." in web.client.get("/signup").text

    def test_overlong_password_redirects_with_message(self, web) -> None:
        form = _signup_form(password="a" * 80, confirmPassword="a" * 80)
        resp = web.client.post("/api/auth/signup", data=form)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/signup"
        assert "Password must be at most 72 bytes." in web.client.get("/signup").text
        assert web.store.get_by_email(form["email"]) is None

    def test_overlong_password_login_is_invalid_credentials(self, web) -> None:
        resp = web.client.post("/api/auth/login", data={"email": web.member.email, "password": "a" * 80})
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"
        assert "Invalid Credentials." in web.client.get("/login").text

    def test_duplicate_email_is_a_conflict(self, web) -> None:
        resp = web.client.post("/api/auth/signup", data=_signup_form(email="Investor@Example.com"))
        assert resp.status_code == 302
        assert resp.headers["location"] == "/signup"
        assert "User with that email already exists." in web.client.get("/signup").text

    def test_duplicate_username_is_a_conflict(self, web) -> None:
        web.client.post("/api/auth/signup", data=_signup_form(username=web.member.username))
        assert "User with that username already exists." in web.client.get("/signup").text

    def test_duplicate_phone_is_a_conflict(self, web) -> None:
        web.client.post("/api/auth/signup", data=_signup_form(phoneForWithdrawal=web.member.phone_for_withdrawal))
        assert "User with that phone number already exists." in web.client.get("/signup").text

    def test_flash_is_shown_once(self, web) -> None:
        web.client.post("/api/auth/signup", data=_signup_form(confirmPassword="nope123"))
        assert "Passwords do not match." in web.client.get("/signup").text
        assert "Passwords do not match." not in web.client.get("/signup").text


class TestLogin:
    def test_member_login_sets_cookie_and_goes_to_dashboard(self, web) -> None:
        resp = web.client.post("/api/auth/login", data={"email": web.member.email, "password": TEST_PASSWORD})
        assert resp.status_code == 302
        assert resp.headers["location"] == "/dashboard"
        assert resp.headers["cache-control"] == "no-store"

        header = token_cookie(resp)
        assert header is not None
        assert "; httponly" in header.lower()
        assert "; secure" not in header.lower()

        claims = decode_access_token(web.settings, web.client.cookies["token"])
        assert claims.user_id == web.member.id
        assert claims.is_admin is False

    def test_admin_login_goes_to_admin_dashboard(self, web) -> None:
        resp = web.client.post("/api/auth/login", data={"email": web.admin.email, "password": TEST_PASSWORD})
        assert resp.status_code == 302
        assert resp.headers["location"] == "/adminDashboard"
        assert decode_access_token(web.settings, web.client.cookies["token"]).is_admin is True

    def test_login_then_dashboard_renders(self, web) -> None:
        web.client.post("/api/auth/login", data={"email": "  INVESTOR@example.com", "password": TEST_PASSWORD})
        page = web.client.get("/dashboard")
        assert page.status_code == 200
        assert "Login successful!" in page.text
        assert "Welcome, investor" in page.text

    def test_wrong_password_and_unknown_email_look_the_same(self, web) -> None:
        wrong = web.client.post("/api/auth/login", data={"email": web.member.email, "password": "wrongpass"})
        wrong_page = web.client.get("/login").text
        unknown = web.client.post("/api/auth/login", data={"email": "nonexistent@example.com", "password": "anything"})
        unknown_page = web.client.get("/login").text

        assert wrong.status_code == unknown.status_code == 302
        assert wrong.headers["location"] == unknown.headers["location"] == "/login"
        assert token_cookie(wrong) is None and token_cookie(unknown) is None
        assert "Invalid Credentials." in wrong_page
        assert wrong_page == unknown_page

    def test_missing_fields(self, web) -> None:
        resp = web.client.post("/api/auth/login", data={"email": web.member.email})
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"
        assert "Please fill in all fields." in web.client.get("/login").text

    def test_signed_up_user_can_log_in(self, web) -> None:
        form = _signup_form()
        web.client.post("/api/auth/signup", data=form)
        resp = web.client.post("/api/auth/login", data={"email": form["email"], "password": form["password"]})
        assert resp.headers["location"] == "/dashboard"


class TestLogout:
    def test_logout_clears_cookie_and_redirects(self, web) -> None:
        web.login_as(web.member)
        resp = web.client.get("/logout")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"
        assert token_cookie_cleared(resp)
        assert "You have been logged out." in web.client.get("/login").text


def test_forms_render(web) -> None:
    login = web.client.get("/login")
    signup = web.client.get("/signup")
    assert login.status_code == signup.status_code == 200
    assert 'action="/api/auth/login"' in login.text
    assert 'name="confirmPassword"' in signup.text
    assert 'name="phoneForWithdrawal"' in signup.text
