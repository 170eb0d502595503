"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper. Route and service
code never touches SQL directly.

Uniqueness of email, username and phone_for_withdrawal is enforced by UNIQUE
constraints, not by application locks. create_user() translates the
IntegrityError into DuplicateKeyError naming the offending field, so the
signup flow can report a lost race the same way as a pre-check hit.

All queries use bound parameters.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Float, Integer, MetaData, String, Table, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool

from auth.models import User

logger = logging.getLogger("oak.auth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(320), nullable=False, unique=True),
    Column("password_hash", String(60), nullable=False),
    Column("phone_for_withdrawal", String(32), nullable=False, unique=True),
    Column("wallet_balance", Float, nullable=False, server_default="0"),
    Column("bonuses", Float, nullable=False, server_default="0"),
    Column("total_referrals", Integer, nullable=False, server_default="0"),
    Column("total_referral_bonuses", Float, nullable=False, server_default="0"),
    Column("is_admin", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)

# Columns update_user() may touch. password_hash is not among them;
# the hash is written once, by create_user().
_MUTABLE_FIELDS = frozenset(
    {"wallet_balance", "bonuses", "total_referrals", "total_referral_bonuses", "is_admin"}
)

_UNIQUE_FIELDS = ("email", "username", "phone_for_withdrawal")


class DuplicateKeyError(Exception):
    """Raised by create_user() when a UNIQUE constraint rejects the insert.

    field is "email", "username", "phone_for_withdrawal", or None when the
    driver message does not name the column.
    """

    def __init__(self, field: str | None) -> None:
        super().__init__(f"duplicate key on {field or 'unknown field'}")
        self.field = field


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block behind writers.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_memory_url(db_url: str) -> bool:
    """True for SQLite in-memory URLs, plain ":memory:" or a "mode=memory" URI."""
    return db_url.startswith("sqlite") and (":memory:" in db_url or "mode=memory" in db_url)


def _duplicate_field(exc: IntegrityError) -> str | None:
    """Pull the offending column out of a driver IntegrityError message.

    SQLite says "UNIQUE constraint failed: users.email"; PostgreSQL names the
    index, e.g. "users_email_key". Both contain the column name.
    """
    message = str(exc.orig)
    for name in _UNIQUE_FIELDS:
        if name in message:
            return name
    return None


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///oak_users.db")
        user_id = store.create_user(User.new("ada", "ada@example.com", "secret1", "555-0100"))
        user = store.get_by_email("ada@example.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        engine_kwargs: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        if _is_memory_url(db_url):
            # One connection for every thread, or each pooled connection sees its own empty DB.
            engine_kwargs["poolclass"] = StaticPool
        self.engine: Engine = create_engine(db_url, connect_args=connect_args, pool_pre_ping=True, **engine_kwargs)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def ping(self) -> bool:
        """Round-trip a trivial query. Used by the health endpoint."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_one(self, clause) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(clause)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        return self._get_one(_users.c.id == user_id)

    def get_by_email(self, email: str) -> User | None:
        """Exact match on the stored (already lowercased) email."""
        return self._get_one(_users.c.email == email)

    def get_by_username(self, username: str) -> User | None:
        return self._get_one(_users.c.username == username)

    def get_by_phone(self, phone: str) -> User | None:
        return self._get_one(_users.c.phone_for_withdrawal == phone)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned ID.

        Sets user.id and user.created_at on the passed object.

        Raises DuplicateKeyError if email, username, or phone is taken.
        """
        created_at = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=user.username,
                        email=user.email,
                        password_hash=user.password_hash,
                        phone_for_withdrawal=user.phone_for_withdrawal,
                        wallet_balance=user.wallet_balance,
                        bonuses=user.bonuses,
                        total_referrals=user.total_referrals,
                        total_referral_bonuses=user.total_referral_bonuses,
                        is_admin=user.is_admin,
                        created_at=created_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            field = _duplicate_field(exc)
            logger.info("Insert rejected by unique constraint on %s", field)
            raise DuplicateKeyError(field) from exc
        user.id = result.inserted_primary_key[0]
        user.created_at = created_at
        return user.id

    def update_user(self, user_id: int, **fields) -> bool:
        """Update balance counters or the admin flag on an existing user.

        Only the columns in _MUTABLE_FIELDS are accepted; anything else,
        password_hash included, raises ValueError. Returns True if a row was
        updated, False if user_id was not found.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)!r}")
        if not fields:
            return False
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user. Returns True if deleted, False if not found.

        Tokens already issued for the user stay signed and unexpired; the
        session middleware rejects them because the lookup by id now misses.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        password_hash=row.password_hash,
        phone_for_withdrawal=row.phone_for_withdrawal,
        wallet_balance=row.wallet_balance,
        bonuses=row.bonuses,
        total_referrals=row.total_referrals,
        total_referral_bonuses=row.total_referral_bonuses,
        is_admin=bool(row.is_admin),
        created_at=row.created_at,
    )
