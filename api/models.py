"""
API request and response models for Inkwell REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
blogs/models.py, which own the internal domain representation. Route handlers
map between the two.

Auth request models are deliberately permissive (plain strings defaulting to
""): the signup rules are checked by the reconciler so that a bad field is a
403 naming that field, not a generic 422.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User
from blogs.models import Blog

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    code: str
    message: str
    field: Optional[str] = None
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Envelope for every error body: {"error": {"code": ..., "message": ...}}."""

    error: ErrorDetail


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    fullname: str = ""
    email: str = ""
    password: str = ""


class SigninRequest(BaseModel):
    email: str = ""
    password: str = ""


class GoogleAuthRequest(BaseModel):
    """Body for POST /google-auth. access_token holds the Google ID token."""

    access_token: str = ""


class SessionResponse(BaseModel):
    """The session payload every successful authentication returns."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    profile_img: Optional[str]
    username: str
    fullname: str


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class SearchUsersRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    query: str = Field(default="", max_length=100)


class GetProfileRequest(BaseModel):
    username: str = ""


class UserCard(BaseModel):
    """The public identity shown in search results and next to blogs."""

    model_config = ConfigDict(frozen=True)

    fullname: str
    username: str
    profile_img: Optional[str]

    @classmethod
    def from_user(cls, user: User) -> "UserCard":
        return cls(fullname=user.fullname, username=user.username, profile_img=user.profile_img)


class SearchUsersResponse(BaseModel):
    users: list[UserCard]


class ProfileResponse(BaseModel):
    """Public profile. Never includes email, password digest, or auth method."""

    model_config = ConfigDict(frozen=True)

    id: int
    fullname: str
    username: str
    bio: str
    profile_img: Optional[str]
    total_posts: int
    total_reads: int
    joined_at: str

    @classmethod
    def from_user(cls, user: User) -> "ProfileResponse":
        return cls(
            id=user.id,
            fullname=user.fullname,
            username=user.username,
            bio=user.bio,
            profile_img=user.profile_img,
            total_posts=user.total_posts,
            total_reads=user.total_reads,
            joined_at=user.joined_at or "",
        )


# ---------------------------------------------------------------------------
# Blogs
# ---------------------------------------------------------------------------


class PageRequest(BaseModel):
    page: int = Field(default=1, ge=1)


class SearchBlogRequest(BaseModel):
    """Exactly one criterion is used: tag, then query, then author."""

    model_config = ConfigDict(str_strip_whitespace=True)

    tag: Optional[str] = Field(default=None, max_length=100)
    query: Optional[str] = Field(default=None, max_length=200)
    author: Optional[int] = None
    page: int = Field(default=1, ge=1)


class CreateBlogRequest(BaseModel):
    """Body for POST /create-blog. Publishing rules are checked in the route."""

    title: str = ""
    des: str = ""
    banner: str = ""
    tags: list[str] = Field(default_factory=list)
    content: dict = Field(default_factory=dict)
    draft: bool = False


class GetBlogRequest(BaseModel):
    blog_id: str = ""


class CreateBlogResponse(BaseModel):
    id: str


class Activity(BaseModel):
    total_likes: int
    total_comments: int
    total_reads: int
    total_parent_comments: int


class BlogSummary(BaseModel):
    """One card in a blog listing. Excludes the full content document."""

    model_config = ConfigDict(frozen=True)

    blog_id: str
    title: str
    des: str
    banner: str
    tags: list[str]
    activity: Activity
    published_at: str
    author: UserCard

    @classmethod
    def from_blog(cls, blog: Blog) -> "BlogSummary":
        return cls(**_blog_fields(blog))


class BlogDetail(BlogSummary):
    content: dict

    @classmethod
    def from_blog(cls, blog: Blog) -> "BlogDetail":
        return cls(content=blog.content, **_blog_fields(blog))


class BlogListResponse(BaseModel):
    blogs: list[BlogSummary]


class BlogResponse(BaseModel):
    blog: BlogDetail


class CountResponse(BaseModel):
    totalDocs: int


def _blog_fields(blog: Blog) -> dict:
    return {
        "blog_id": blog.blog_id,
        "title": blog.title,
        "des": blog.des,
        "banner": blog.banner,
        "tags": blog.tags,
        "activity": Activity(
            total_likes=blog.total_likes,
            total_comments=blog.total_comments,
            total_reads=blog.total_reads,
            total_parent_comments=blog.total_parent_comments,
        ),
        "published_at": blog.published_at,
        "author": UserCard(
            fullname=blog.author.fullname,
            username=blog.author.username,
            profile_img=blog.author.profile_img,
        ),
    }
