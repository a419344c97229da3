"""
auth/usernames.py -- Derive a public handle from an email address.

The candidate is the email's local part ("jane" for jane@x.com). If that
handle is taken, a 5-character random suffix from the URL-safe alphabet is
appended once ("janeK3_x9"). There is no loop: a second collision is left to
the UNIQUE(username) constraint in the store, and the reconciler retries a
failed insert once with allocate_username(..., force_suffix=True).
"""

from __future__ import annotations

import secrets
import string
from collections.abc import Callable

URL_SAFE_ALPHABET = string.ascii_letters + string.digits + "_-"
SUFFIX_LENGTH = 5


def random_suffix(length: int = SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(URL_SAFE_ALPHABET) for _ in range(length))


def allocate_username(
    email: str,
    exists: Callable[[str], bool] | None = None,
    force_suffix: bool = False,
) -> str:
    """Return a username for a new account created with this email.

    Args:
        email:        The new account's email. Everything before the first "@"
                      is the candidate.
        exists:       Read-only lookup, True if a user already has that
                      username. Called at most once.
        force_suffix: Skip the lookup and always append a suffix. Used after
                      the store rejected the plain candidate.
    """
    candidate = email.split("@", 1)[0]
    if force_suffix or (exists is not None and exists(candidate)):
        candidate += random_suffix()
    return candidate
