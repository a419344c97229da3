"""
auth/tokens.py -- Password hashing and session token utilities.

Security design decisions:
  Passwords: bcrypt, used directly (no passlib wrapper). Salted, with a
       configurable cost factor (Settings.bcrypt_rounds, default 10) so one
       hash costs tens of milliseconds. bcrypt.checkpw compares in constant
       time, so verification timing does not depend on where a mismatch is.

  Session tokens: python-jose with HS256. Tokens carry the user id ("id")
       and issue time ("iat") and are signed with Settings.secret_key.
       There is deliberately NO "exp" claim: sessions live until the signing
       key rotates. Adding expiry is a behaviour change for every client
       holding a token and must be made explicitly, not slipped in here.

  TokenIssuer receives its Settings in the constructor. Nothing in this
  module reads configuration on its own.

Layer rule: no imports from api/ or blogs/. Import from core/ is allowed.
"""

from __future__ import annotations

from datetime import datetime, timezone

import bcrypt
from jose import JWTError, jwt

from core.config import Settings
from core.errors import ErrorKind, InkwellError

_ALGORITHM = "HS256"

DEFAULT_BCRYPT_ROUNDS = 10

# bcrypt only reads this many bytes of a password; bcrypt 5 raises past it.
MAX_PASSWORD_BYTES = 72

NO_ACCESS_TOKEN = "No access token"
INVALID_ACCESS_TOKEN = "Access token is invalid"


# ---------------------------------------------------------------------------
# Password hashing (bcrypt)
# ---------------------------------------------------------------------------


def hash_password(plain: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt 4 truncates inputs past MAX_PASSWORD_BYTES and bcrypt 5 raises
    ValueError. Signup allows at most 20 characters, three of them ASCII,
    which stays under the limit.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A mismatch is a normal False, and so is a password longer than
    MAX_PASSWORD_BYTES: signup never stores a digest of one. A digest bcrypt
    cannot parse raises ValueError -- that is a corrupt record, not a wrong
    password, and the caller reports it as an internal error.
    """
    secret = plain.encode("utf-8")
    if len(secret) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(secret, hashed.encode("utf-8"))


# ---------------------------------------------------------------------------
# Session tokens (JWT)
# ---------------------------------------------------------------------------


class TokenIssuer:
    """Mint and verify stateless bearer tokens bound to a user id.

    Pure computation: no I/O, never touches the user store. Whether the user
    behind a valid token still exists is the caller's concern.
    """

    def __init__(self, settings: Settings) -> None:
        self._secret_key = settings.secret_key

    def issue(self, user_id: int) -> str:
        payload = {"id": user_id, "iat": datetime.now(timezone.utc)}
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str | None) -> int:
        """Return the user id a token was issued for.

        Raises:
            InkwellError(MISSING_CREDENTIAL): token is None or empty.
            InkwellError(INVALID_CREDENTIAL): bad signature, malformed token,
                or a payload without an integer "id" claim.
        """
        if not token:
            raise InkwellError(ErrorKind.MISSING_CREDENTIAL, NO_ACCESS_TOKEN)
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except JWTError as exc:
            raise InkwellError(ErrorKind.INVALID_CREDENTIAL, INVALID_ACCESS_TOKEN) from exc
        user_id = payload.get("id")
        # bool is an int subclass; a token claiming id=true is not a user id
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise InkwellError(ErrorKind.INVALID_CREDENTIAL, INVALID_ACCESS_TOKEN)
        return user_id
