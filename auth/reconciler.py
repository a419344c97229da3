"""
auth/reconciler.py -- Turn a credential event into a user and a session.

Three entry points, one per way in:

  signup(fullname, email, password)   -- new local account
  signin(email, password)             -- existing local account
  federated_login(id_token)           -- Google account, created on first use

Each is a single pass validate -> resolve identity -> authorize/create ->
issue token, and the first failure ends it with an InkwellError. Nothing is
retried, with one exception: if the store rejects a new account's username
because another request took it between our check and our insert, the insert
is retried once with a suffixed username.

One identity per email:
  A local account never silently gains a Google login, and a Google account
  never gains a password. Crossing over is WRONG_AUTH_METHOD in both
  directions.

Concurrency:
  Everything here runs on the event loop. bcrypt, the SQLAlchemy calls and
  the Google key fetch block, so they run in worker threads via
  asyncio.to_thread. Storage and provider calls are bounded by
  Settings.request_timeout_seconds; a timeout is INTERNAL_ERROR for storage
  and FEDERATED_AUTH_FAILED for the provider. No in-process locks: the
  store's UNIQUE constraints decide every race.

Known gap: creating the account and issuing its token are not one
transaction. Token issuance is pure computation, so once the insert commits
the only way to leave an account without a session is a crash in between.

Layer rule: no imports from api/ or blogs/.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.google import FEDERATED_AUTH_FAILED_MESSAGE, GoogleIdentityVerifier
from auth.models import Session, User
from auth.store import UserStore
from auth.tokens import TokenIssuer, hash_password, verify_password
from auth.usernames import allocate_username
from core.config import Settings
from core.errors import ErrorKind, InkwellError

logger = logging.getLogger("inkwell.auth")

T = TypeVar("T")

# Whole-string patterns: always fullmatch(), never match().
EMAIL_RE = re.compile(r"\w+([\.-]?\w+)*@\w+([\.-]?\w+)*(\.\w{2,3})+", re.ASCII)
PASSWORD_RE = re.compile(r"(?=.*\d)(?=.*[a-z])(?=.*[A-Z]).{6,20}", re.ASCII)

FULLNAME_TOO_SHORT = "Full name must be at least 3 letters long"
EMAIL_MISSING = "Enter Email"
EMAIL_INVALID = "Email is invalid"
PASSWORD_WEAK = "Password should be 6 to 20 characters long with a numeric, 1 lowercase and 1 uppercase letters"
EMAIL_EXISTS = "Email already exists"
EMAIL_NOT_FOUND = "Email not found"
USE_GOOGLE = "Account was created using google. Try logging in with google"
USE_PASSWORD = "This email was signed up without google. Please log in with password to access the account"
INCORRECT_PASSWORD = "Incorrect password"


def validate_signup(fullname: str, email: str, password: str) -> None:
    """Raise INVALID_INPUT for the first field that fails its rule.

    Checked in the order fullname, email, password, so a short name is
    reported even when the password is also weak.
    """
    if len(fullname) < 3:
        raise InkwellError(ErrorKind.INVALID_INPUT, FULLNAME_TOO_SHORT, field="fullname")
    if not email:
        raise InkwellError(ErrorKind.INVALID_INPUT, EMAIL_MISSING, field="email")
    if not EMAIL_RE.fullmatch(email):
        raise InkwellError(ErrorKind.INVALID_INPUT, EMAIL_INVALID, field="email")
    if not PASSWORD_RE.fullmatch(password):
        raise InkwellError(ErrorKind.INVALID_INPUT, PASSWORD_WEAK, field="password")


class AccountReconciler:
    """Resolve signup, signin and Google login events to a Session.

    Usage:
        reconciler = AccountReconciler(store, TokenIssuer(settings), GoogleIdentityVerifier(settings), settings)
        session = await reconciler.signin("jane@x.com", "Abcdef1")
    """

    def __init__(
        self,
        store: UserStore,
        tokens: TokenIssuer,
        google: GoogleIdentityVerifier,
        settings: Settings,
    ) -> None:
        self._store = store
        self._tokens = tokens
        self._google = google
        self._rounds = settings.bcrypt_rounds
        self._timeout = settings.request_timeout_seconds

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def signup(self, fullname: str, email: str, password: str) -> Session:
        validate_signup(fullname, email, password)

        try:
            digest = await asyncio.to_thread(hash_password, password, self._rounds)
        except (ValueError, TypeError) as exc:
            logger.error("Password hashing failed during signup: %s", exc)
            raise InkwellError.internal() from exc

        username = await self._storage(allocate_username, email, self._store.username_exists)
        user = User(email=email, username=username, fullname=fullname, hashed_password=digest)
        if await self._create(user) is None:
            raise InkwellError(ErrorKind.DUPLICATE_ACCOUNT, EMAIL_EXISTS)

        logger.info("Local account created: user_id=%s username=%s", user.id, user.username)
        return self._session_for(user)

    async def signin(self, email: str, password: str) -> Session:
        user = await self._storage(self._store.get_by_email, email)
        if user is None:
            raise InkwellError(ErrorKind.NOT_FOUND, EMAIL_NOT_FOUND)
        if user.google_auth or user.hashed_password is None:
            raise InkwellError(ErrorKind.WRONG_AUTH_METHOD, USE_GOOGLE)

        try:
            matched = await asyncio.to_thread(verify_password, password, user.hashed_password)
        except (ValueError, TypeError) as exc:
            logger.error("Stored password digest unreadable for user_id=%s: %s", user.id, exc)
            raise InkwellError.internal() from exc
        if not matched:
            raise InkwellError(ErrorKind.INVALID_CREDENTIAL, INCORRECT_PASSWORD)

        logger.info("Signed in: user_id=%s", user.id)
        return self._session_for(user)

    async def federated_login(self, assertion: str) -> Session:
        try:
            identity = await asyncio.wait_for(asyncio.to_thread(self._google.verify, assertion), self._timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("Google sign-in timed out after %.1fs", self._timeout)
            raise InkwellError(ErrorKind.FEDERATED_AUTH_FAILED, FEDERATED_AUTH_FAILED_MESSAGE) from exc

        existing = await self._storage(self._store.get_by_email, identity.email)
        if existing is not None:
            return self._session_for(_require_google_account(existing))

        username = await self._storage(allocate_username, identity.email, self._store.username_exists)
        user = User(
            email=identity.email,
            username=username,
            fullname=identity.display_name,
            google_auth=True,
            profile_img=identity.avatar_url,
        )
        if await self._create(user) is None:
            # A concurrent first login for the same email got there first.
            existing = await self._storage(self._store.get_by_email, identity.email)
            if existing is None:
                raise InkwellError.internal()
            return self._session_for(_require_google_account(existing))

        logger.info("Google account created: user_id=%s username=%s", user.id, user.username)
        return self._session_for(user)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _session_for(self, user: User) -> Session:
        return Session(
            access_token=self._tokens.issue(user.id),
            profile_img=user.profile_img,
            username=user.username,
            fullname=user.fullname,
        )

    async def _create(self, user: User) -> User | None:
        """Insert user, filling in user.id. Returns None if the email is taken.

        A UNIQUE violation with no existing row for the email means the
        username lost a race; that is retried once with a suffixed username.
        """
        for attempt in range(2):
            try:
                user.id = await self._storage(self._store.create_user, user)
                return user
            except IntegrityError:
                if await self._storage(self._store.get_by_email, user.email) is not None:
                    return None
                if attempt:
                    break
                logger.info("Username %r taken concurrently; retrying with a suffix", user.username)
                user.username = allocate_username(user.email, force_suffix=True)
        logger.error("Could not allocate a unique username for a new account")
        raise InkwellError.internal()

    async def _storage(self, fn: Callable[..., T], *args) -> T:
        """Run a blocking store call in a thread, bounded by the request timeout.

        IntegrityError passes through untouched for _create(); every other
        database failure or timeout becomes INTERNAL_ERROR.
        """
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn, *args), self._timeout)
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            logger.error("User store call %s failed: %s", getattr(fn, "__name__", fn), exc)
            raise InkwellError.internal() from exc
        except asyncio.TimeoutError as exc:
            logger.error("User store call %s timed out after %.1fs", getattr(fn, "__name__", fn), self._timeout)
            raise InkwellError.internal() from exc


def _require_google_account(user: User) -> User:
    if not user.google_auth:
        raise InkwellError(ErrorKind.WRONG_AUTH_METHOD, USE_PASSWORD)
    return user
