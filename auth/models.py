"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: data classes own domain shape; the store and the routes do the work.
The one exception is User.new(), the factory that normalizes signup input and
hashes the password before the record exists. There is no other code path
that builds a User for insertion, so a persisted password is always a hash.

Layer rule: no imports from api/, web/, or core/.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from auth.errors import ValidationError
from auth.passwords import DEFAULT_ROUNDS, MAX_PASSWORD_BYTES, PasswordHash, hash_password, password_too_long

EMAIL_PATTERN = re.compile(r".+@.+\..+")
MIN_PASSWORD_LENGTH = 6


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass
class SignupRequest:
    """Raw signup form fields, as submitted. confirm_password is never stored."""

    username: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = ""
    phone_for_withdrawal: str = ""


@dataclass
class Principal:
    """The authenticated user attached to a request. Carries no password hash."""

    id: int
    username: str
    email: str
    phone_for_withdrawal: str
    wallet_balance: float = 0
    bonuses: float = 0
    total_referrals: int = 0
    total_referral_bonuses: float = 0
    is_admin: bool = False
    created_at: str | None = None


@dataclass
class User:
    """A persisted investor account.

    id and created_at are None until the store assigns them on insert.
    """

    username: str
    email: str
    password_hash: PasswordHash = field(repr=False)
    phone_for_withdrawal: str
    wallet_balance: float = 0
    bonuses: float = 0
    total_referrals: int = 0
    total_referral_bonuses: float = 0
    is_admin: bool = False
    id: int | None = None
    created_at: str | None = None

    @classmethod
    def new(
        cls,
        username: str,
        email: str,
        password: str,
        phone_for_withdrawal: str,
        *,
        is_admin: bool = False,
        rounds: int = DEFAULT_ROUNDS,
    ) -> User:
        """Build a not-yet-persisted User from raw input.

        Trims username and phone, lowercases the email, checks the password
        length bounds and then the email pattern, then hashes the password.

        Raises ValidationError if any field is empty or malformed.
        """
        username = username.strip()
        email = normalize_email(email)
        phone = phone_for_withdrawal.strip()
        if not username or not email or not password or not phone:
            raise ValidationError("Please fill in all fields.")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
        if password_too_long(password):
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        if not EMAIL_PATTERN.fullmatch(email):
            raise ValidationError("Please use a valid email address.")
        return cls(
            username=username,
            email=email,
            password_hash=hash_password(password, rounds),
            phone_for_withdrawal=phone,
            is_admin=is_admin,
        )

    def to_principal(self) -> Principal:
        if self.id is None:
            raise ValueError("User has not been persisted")
        return Principal(
            id=self.id,
            username=self.username,
            email=self.email,
            phone_for_withdrawal=self.phone_for_withdrawal,
            wallet_balance=self.wallet_balance,
            bonuses=self.bonuses,
            total_referrals=self.total_referrals,
            total_referral_bonuses=self.total_referral_bonuses,
            is_admin=self.is_admin,
            created_at=self.created_at,
        )
