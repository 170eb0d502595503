"""
auth/errors.py -- Exception taxonomy for the auth layer.

Every error carries a human-readable message that is safe to show the user.
Route handlers turn any AuthError into a redirect plus a flashed message;
none of these reach the client as a raw error.

Layer rule: stdlib only.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base exception for all user-facing auth failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AuthError):
    """Raised when submitted form fields are missing or malformed."""


class ConflictError(AuthError):
    """Raised when an email, username, or phone number is already registered."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class AuthenticationError(AuthError):
    """Raised for bad credentials, bad or expired tokens, and missing users."""


class InvalidTokenError(AuthenticationError):
    """Token signature, structure, or claims failed verification."""


class TokenExpiredError(AuthenticationError):
    """Token signature is valid but its expiry has passed."""


class NotAuthorizedError(AuthenticationError):
    """Authenticated principal lacks the admin flag a page requires."""
