"""
blogs/models.py -- Domain dataclasses for blog content.

These are pure data containers with zero logic. Validation lives in
api/routes/v1/blogs.py, persistence in blogs/store.py.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Author:
    """The public slice of a User shown next to a blog."""

    fullname: str
    username: str
    profile_img: Optional[str] = None


@dataclass
class Blog:
    """A blog post, published or draft.

    blog_id is the public, URL-friendly identifier (title letters + random
    id); id is the database key and is None before the record is written.
    content is the editor's JSON document ({"blocks": [...]}), stored as-is.
    author is only filled in by store reads that join the users table.
    """

    blog_id: str
    title: str
    author_id: int
    des: str = ""
    banner: str = ""
    content: dict = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    draft: bool = False
    total_likes: int = 0
    total_comments: int = 0
    total_reads: int = 0
    total_parent_comments: int = 0
    published_at: str = ""  # ISO 8601, set by store on insert
    id: Optional[int] = None
    author: Optional[Author] = None
