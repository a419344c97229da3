"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in blogs/models.py -- dataclasses own domain shape; stores, the reconciler,
and routes do the work.

Layer rule: no imports from api/ or blogs/.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass
class User:
    """A blog author/reader account.

    Exactly one of the two credential shapes holds:
      - local account:     google_auth=False, hashed_password set
      - federated account: google_auth=True,  hashed_password None

    email is stored exactly as submitted and never changes after creation.
    username is allocated once at creation from the email's local part and is
    never reassigned. total_posts / total_reads are maintained by the blog
    routes through UserStore.increment_counters().
    """

    email: str
    username: str
    fullname: str
    id: int | None = None
    hashed_password: str | None = None  # None = federated-only account
    google_auth: bool = False
    profile_img: str | None = None
    bio: str = ""
    total_posts: int = 0
    total_reads: int = 0
    joined_at: str | None = None  # ISO 8601, set by store on insert


@dataclass(frozen=True)
class GoogleIdentity:
    """Normalized claims from a verified Google ID token."""

    email: str
    display_name: str
    avatar_url: str | None = None


@dataclass(frozen=True)
class Session:
    """The payload returned by every successful authentication.

    Field names are the wire contract the frontend stores verbatim, so they
    stay snake_case and exactly these four.
    """

    access_token: str
    profile_img: str | None
    username: str
    fullname: str

    def to_dict(self) -> dict:
        return asdict(self)
