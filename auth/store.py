"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as blogs/store.py).
UserStore is the repository; _row_to_user is the mapper.
The reconciler and route code never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(email) and UNIQUE(username) are declared in the schema. They are
  the only serialization point for concurrent signups -- the application
  never locks. create_user() lets IntegrityError propagate so the caller can
  tell "someone else won the race" apart from other failures.

DB URL: Settings.database_url (DB_LOCATION). blogs/store.py reads the same
database and joins users_table for author details.

Layer rule: no imports from api/ or blogs/.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from auth.models import User

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'inkwell.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

users_table = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("fullname", String(255), nullable=False),
    Column("hashed_password", Text),  # NULL for Google-only accounts
    Column("google_auth", Boolean, nullable=False, server_default="0"),
    Column("profile_img", Text),
    Column("bio", String(200), nullable=False, server_default=""),
    Column("total_posts", Integer, nullable=False, server_default="0"),
    Column("total_reads", Integer, nullable=False, server_default="0"),
    Column("joined_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str, timeout: float = 5.0) -> Engine:
    """Create an engine with the connection options shared by all stores.

    For SQLite, timeout is the busy timeout: a writer waiting on a lock gives
    up after this many seconds instead of hanging the request.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = timeout
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore()
        user_id = store.create_user(User(email="jane@x.com", username="jane", fullname="Jane Doe"))
        user = store.get_by_email("jane@x.com")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL, timeout: float = 5.0) -> None:
        self.engine: Engine = make_engine(db_url, timeout)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email or the username is
        already taken. The reconciler tells the two apart by looking the email
        up afterwards.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                users_table.insert().values(
                    email=user.email,
                    username=user.username,
                    fullname=user.fullname,
                    hashed_password=user.hashed_password,
                    google_auth=user.google_auth,
                    profile_img=user.profile_img,
                    bio=user.bio,
                    joined_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def increment_counters(self, user_id: int, total_posts: int = 0, total_reads: int = 0) -> bool:
        """Atomically add to a user's post and read counters.

        The increment happens in SQL (col = col + n) so concurrent readers of
        the same author never lose updates.

        Returns True if a row was updated, False if user_id was not found.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                users_table.update()
                .where(users_table.c.id == user_id)
                .values(
                    total_posts=users_table.c.total_posts + total_posts,
                    total_reads=users_table.c.total_reads + total_reads,
                )
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users_table.select().where(users_table.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive, as stored)."""
        with self.engine.connect() as conn:
            row = conn.execute(users_table.select().where(users_table.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users_table.select().where(users_table.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def username_exists(self, username: str) -> bool:
        with self.engine.connect() as conn:
            found = conn.execute(select(users_table.c.id).where(users_table.c.username == username)).first()
        return found is not None

    def search_by_username(self, query: str, limit: int = 50) -> list[User]:
        """Return users whose username contains query, ignoring case."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                users_table.select()
                .where(func.lower(users_table.c.username).contains(query.lower(), autoescape=True))
                .order_by(users_table.c.username)
                .limit(limit)
            ).fetchall()
        return [_row_to_user(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        username=row.username,
        fullname=row.fullname,
        hashed_password=row.hashed_password,
        google_auth=bool(row.google_auth),
        profile_img=row.profile_img,
        bio=row.bio or "",
        total_posts=row.total_posts,
        total_reads=row.total_reads,
        joined_at=row.joined_at,
    )
