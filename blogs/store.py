"""
blogs/store.py -- SQLAlchemy-backed persistence layer for blog posts.

Uses SQLAlchemy Core (not ORM) so the domain dataclasses in blogs/models.py
remain the authoritative domain representation.

Pattern: Repository + Data Mapper. BlogStore is the repository; _row_to_blog
is the mapper. Route handlers never touch SQL directly.

Blogs live in the same database as users: every listing joins users_table
from auth/store.py to show the author's name, username and avatar. Open
BlogStore and UserStore on the same URL.

Tags are stored twice: as a JSON array on the blog row (returned to
clients) and one row per tag in blog_tags (what tag search filters on).

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = BlogStore(db_url)
    store.create_blog(blog)
    blogs = store.latest(page=1)
    blog = store.get_and_increment_reads("MyFirstPostV1StGXR8_Z5jdHi6B-myT")
    store.close()
"""

import json
import re
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text, UniqueConstraint, func, select
from sqlalchemy.engine import Engine

from auth.store import make_engine, users_table
from blogs.models import Author, Blog

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'inkwell.db'}"

LATEST_PAGE_SIZE = 5
SEARCH_PAGE_SIZE = 4
TRENDING_LIMIT = 5

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_blogs = Table(
    "blogs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("blog_id", String(300), nullable=False, unique=True),
    Column("title", String(300), nullable=False),
    Column("des", String(200), nullable=False, server_default=""),
    Column("banner", Text, nullable=False, server_default=""),
    Column("content", Text, nullable=False),  # editor JSON serialized as text
    Column("tags", Text, nullable=False),  # JSON array serialized as text
    Column("author_id", Integer, nullable=False),
    Column("draft", Boolean, nullable=False, server_default="0"),
    Column("total_likes", Integer, nullable=False, server_default="0"),
    Column("total_comments", Integer, nullable=False, server_default="0"),
    Column("total_reads", Integer, nullable=False, server_default="0"),
    Column("total_parent_comments", Integer, nullable=False, server_default="0"),
    Column("published_at", String(32), nullable=False),
)

_blog_tags = Table(
    "blog_tags",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("blog_pk", Integer, nullable=False),
    Column("tag", String(100), nullable=False),
    UniqueConstraint("blog_pk", "tag", name="uq_blog_tag"),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def make_blog_id(title: str) -> str:
    """Build the public blog id: the title's letters and digits plus a 21-char random id."""
    return re.sub(r"[^a-zA-Z0-9]", "", title) + secrets.token_urlsafe(16)[:21]


def _offset(page: int, per_page: int) -> int:
    return (max(page, 1) - 1) * per_page


def _with_author():
    """SELECT blogs joined to their author's public columns."""
    return select(
        _blogs,
        users_table.c.fullname,
        users_table.c.username,
        users_table.c.profile_img,
    ).select_from(_blogs.join(users_table, _blogs.c.author_id == users_table.c.id))


def _search_filter(tag: Optional[str], query: Optional[str], author_id: Optional[int]):
    """WHERE clause for search: one criterion, tag > query > author.

    With no criterion every published blog matches.
    """
    published = _blogs.c.draft.is_(False)
    if tag:
        tagged = select(_blog_tags.c.blog_pk).where(_blog_tags.c.tag == tag.lower())
        return published & _blogs.c.id.in_(tagged)
    if query:
        return published & func.lower(_blogs.c.title).contains(query.lower(), autoescape=True)
    if author_id is not None:
        return published & (_blogs.c.author_id == author_id)
    return published


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class BlogStore:
    def __init__(self, db_url: str = _DEFAULT_DB_URL, timeout: float = 5.0) -> None:
        self.engine: Engine = make_engine(db_url, timeout)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_blog(self, blog: Blog) -> int:
        """Insert a blog and its tag rows in one transaction; return the database ID.

        Raises sqlalchemy.exc.IntegrityError if blog_id already exists.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                _blogs.insert().values(
                    blog_id=blog.blog_id,
                    title=blog.title,
                    des=blog.des,
                    banner=blog.banner,
                    content=json.dumps(blog.content),
                    tags=json.dumps(blog.tags),
                    author_id=blog.author_id,
                    draft=blog.draft,
                    published_at=_now_iso(),
                )
            )
            blog_pk = result.inserted_primary_key[0]
            for tag in dict.fromkeys(blog.tags):
                conn.execute(_blog_tags.insert().values(blog_pk=blog_pk, tag=tag))
        return blog_pk

    def get_and_increment_reads(self, blog_id: str) -> Optional[Blog]:
        """Count one read of a blog and return it with author details.

        Returns None (and counts nothing) if blog_id does not exist.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _blogs.update().where(_blogs.c.blog_id == blog_id).values(total_reads=_blogs.c.total_reads + 1)
            )
            if result.rowcount == 0:
                conn.rollback()
                return None
            row = conn.execute(_with_author().where(_blogs.c.blog_id == blog_id)).fetchone()
            conn.commit()
        return _row_to_blog(row) if row is not None else None

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def latest(self, page: int = 1, per_page: int = LATEST_PAGE_SIZE) -> list[Blog]:
        """Published blogs, newest first, one page at a time."""
        return self.search(page=page, per_page=per_page)

    def count_published(self) -> int:
        return self.count_search()

    def trending(self, limit: int = TRENDING_LIMIT) -> list[Blog]:
        """Most-read published blogs; likes then recency break ties."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _with_author()
                .where(_blogs.c.draft.is_(False))
                .order_by(
                    _blogs.c.total_reads.desc(),
                    _blogs.c.total_likes.desc(),
                    _blogs.c.published_at.desc(),
                )
                .limit(limit)
            ).fetchall()
        return [_row_to_blog(r) for r in rows]

    def search(
        self,
        tag: Optional[str] = None,
        query: Optional[str] = None,
        author_id: Optional[int] = None,
        page: int = 1,
        per_page: int = SEARCH_PAGE_SIZE,
    ) -> list[Blog]:
        """Published blogs matching one criterion, newest first.

        tag matches exactly (case-insensitive); query is a case-insensitive
        substring of the title; author_id is the author's user id.
        """
        with self.engine.connect() as conn:
            rows = conn.execute(
                _with_author()
                .where(_search_filter(tag, query, author_id))
                .order_by(_blogs.c.published_at.desc(), _blogs.c.id.desc())
                .offset(_offset(page, per_page))
                .limit(per_page)
            ).fetchall()
        return [_row_to_blog(r) for r in rows]

    def count_search(
        self,
        tag: Optional[str] = None,
        query: Optional[str] = None,
        author_id: Optional[int] = None,
    ) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count()).select_from(_blogs).where(_search_filter(tag, query, author_id))
            ).scalar()
        return result or 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_blog(row) -> Blog:
    return Blog(
        id=row.id,
        blog_id=row.blog_id,
        title=row.title,
        des=row.des,
        banner=row.banner,
        content=json.loads(row.content) if row.content else {},
        tags=json.loads(row.tags) if row.tags else [],
        author_id=row.author_id,
        draft=bool(row.draft),
        total_likes=row.total_likes,
        total_comments=row.total_comments,
        total_reads=row.total_reads,
        total_parent_comments=row.total_parent_comments,
        published_at=row.published_at,
        author=Author(fullname=row.fullname, username=row.username, profile_img=row.profile_img),
    )
