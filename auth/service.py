"""
auth/service.py -- Signup and login flows.

Both functions raise the AuthError family on any user-facing failure and let
SQLAlchemy errors propagate. Route handlers map the former to a flash
message and log the latter.

Login security:
  Only the email identifies an account. An unknown email and a wrong password
  raise the same AuthenticationError with the same message, and both run one
  bcrypt verification, so neither the response nor its timing reveals which
  accounts exist.
"""

from __future__ import annotations

import logging

from auth.errors import AuthenticationError, ConflictError, ValidationError
from auth.models import SignupRequest, User, normalize_email
from auth.passwords import DEFAULT_ROUNDS, dummy_hash, verify_password
from auth.store import DuplicateKeyError, UserStore

logger = logging.getLogger("oak.auth")

INVALID_CREDENTIALS = "Invalid Credentials."

_CONFLICT_MESSAGES: dict[str, str] = {
    "email": "User with that email already exists.",
    "username": "User with that username already exists.",
    "phone_for_withdrawal": "User with that phone number already exists.",
}


def _conflict(field: str | None) -> ConflictError:
    if field is None:
        return ConflictError("unknown", "User already exists.")
    return ConflictError(field, _CONFLICT_MESSAGES[field])


def register_user(store: UserStore, form: SignupRequest, rounds: int = DEFAULT_ROUNDS) -> User:
    """Validate a signup form and persist the new account.

    Checks run in a fixed order and the first failure wins: required fields,
    password confirmation, password length and email format, then email,
    username and phone uniqueness.

    Returns the stored User (id assigned). Does not log the user in.

    Raises:
        ValidationError: a field is missing or malformed.
        ConflictError:   email, username, or phone already registered, either
                         found by the pre-check or reported by the store when
                         a concurrent signup won the insert.
    """
    if not all(
        (form.username.strip(), form.email.strip(), form.password, form.confirm_password, form.phone_for_withdrawal.strip())
    ):
        raise ValidationError("Please fill in all fields.")
    if form.password != form.confirm_password:
        raise ValidationError("Passwords do not match.")

    # Normalization, format checks and hashing all happen in the factory.
    user = User.new(
        form.username,
        form.email,
        form.password,
        form.phone_for_withdrawal,
        rounds=rounds,
    )

    if store.get_by_email(user.email) is not None:
        raise _conflict("email")
    if store.get_by_username(user.username) is not None:
        raise _conflict("username")
    if store.get_by_phone(user.phone_for_withdrawal) is not None:
        raise _conflict("phone_for_withdrawal")

    try:
        store.create_user(user)
    except DuplicateKeyError as exc:
        logger.info("Signup for %s lost a uniqueness race on %s", user.email, exc.field)
        raise _conflict(exc.field) from exc

    logger.info("Registered user id=%s", user.id)
    return user


def authenticate_user(store: UserStore, email: str, password: str, rounds: int = DEFAULT_ROUNDS) -> User:
    """Check an email/password pair and return the matching User.

    rounds must match the cost of stored hashes so the unknown-email path
    does the same bcrypt work as a wrong password.

    Raises:
        ValidationError:     email or password is empty.
        AuthenticationError: unknown email or wrong password (same message).
    """
    if not email.strip() or not password:
        raise ValidationError("Please fill in all fields.")

    user = store.get_by_email(normalize_email(email))
    if user is None:
        # Do not return before bcrypt runs; keeps timing equal.
        verify_password(password, dummy_hash(rounds))
        raise AuthenticationError(INVALID_CREDENTIALS)
    if not verify_password(password, user.password_hash):
        raise AuthenticationError(INVALID_CREDENTIALS)
    return user
