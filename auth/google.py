"""
auth/google.py -- Verify Google sign-in assertions issued through Firebase.

The frontend signs the user in with Google via the Firebase JS SDK and posts
the resulting ID token to /google-auth. This module checks that token and
turns it into a GoogleIdentity (email, display name, avatar URL).

Verification is authlib's job: signature against the public keys Google
publishes for Firebase (a JWKS document), then the claim checks Firebase
documents for ID tokens:
  iss == https://securetoken.google.com/<project id>
  aud == <project id>
  exp / iat valid, sub non-empty, email present

The key set is fetched with requests (bounded by request_timeout_seconds)
and cached for the max-age Google sends in Cache-Control.

Security notes:
  Every failure -- expired token, bad signature, unknown key id, network
  error, missing claim, project not configured -- surfaces as the SAME
  FEDERATED_AUTH_FAILED error with a fixed message. The reason is logged at
  WARNING and never returned, so the endpoint cannot be used to probe which
  tokens or accounts exist.

Layer rule: no imports from api/ or blogs/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import re
import threading
import time

import requests
from authlib.jose import JsonWebKey, JsonWebToken
from authlib.jose.errors import JoseError

from auth.models import GoogleIdentity
from core.config import Settings
from core.errors import ErrorKind, InkwellError

logger = logging.getLogger("inkwell.auth.google")

FIREBASE_JWKS_URL = "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com"
FIREBASE_ISSUER_PREFIX = "https://securetoken.google.com/"

FEDERATED_AUTH_FAILED_MESSAGE = "Failed to authenticate you with google. Try with some other google account"

# Google serves 96px avatars by default; the size token in the URL selects
# the rendition, and 384px is what profile pages display.
_AVATAR_SIZE_TOKEN = "s96-c"
_AVATAR_LARGE_TOKEN = "s384-c"

_DEFAULT_KEYS_TTL = 60 * 60  # used when Google omits Cache-Control max-age
_MAX_AGE_RE = re.compile(r"max-age=(\d+)")


def upgrade_avatar_url(url: str | None) -> str | None:
    """Swap the 96px size token in a Google avatar URL for the 384px one."""
    if not url:
        return url
    return url.replace(_AVATAR_SIZE_TOKEN, _AVATAR_LARGE_TOKEN)


class GoogleIdentityVerifier:
    """Validate Firebase-issued Google ID tokens.

    Usage:
        verifier = GoogleIdentityVerifier(settings)
        identity = verifier.verify(id_token)   # GoogleIdentity or InkwellError

    verify() blocks on the network when the key cache is cold; the
    reconciler calls it through asyncio.to_thread.
    """

    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        self._project_id = settings.firebase_project_id
        self._timeout = settings.request_timeout_seconds
        self._session = session or requests.Session()
        self._session.max_redirects = 3
        self._jwt = JsonWebToken(["RS256"])
        self._keys = None
        self._keys_expire_at = 0.0
        self._lock = threading.Lock()

    def verify(self, assertion: str) -> GoogleIdentity:
        """Return the identity asserted by a Google ID token.

        Raises:
            InkwellError(FEDERATED_AUTH_FAILED): on any verification failure.
        """
        if not self._project_id:
            logger.warning("Google sign-in rejected: FIREBASE_PROJECT_ID is not configured")
            raise _failed()
        if not assertion:
            logger.warning("Google sign-in rejected: empty assertion")
            raise _failed()

        try:
            claims = self._jwt.decode(
                assertion,
                self._key_set(),
                claims_options={
                    "iss": {"essential": True, "value": FIREBASE_ISSUER_PREFIX + self._project_id},
                    "aud": {"essential": True, "value": self._project_id},
                    "sub": {"essential": True},
                    "exp": {"essential": True},
                    "iat": {"essential": True},
                    "email": {"essential": True},
                },
            )
            claims.validate()
        except (JoseError, ValueError) as exc:
            logger.warning("Google sign-in rejected: %s", exc)
            raise _failed() from exc
        except requests.RequestException as exc:
            logger.warning("Google sign-in failed: could not fetch signing keys: %s", exc)
            raise _failed() from exc

        email = claims.get("email")
        if not isinstance(email, str) or not email:
            logger.warning("Google sign-in rejected: token has no usable email claim")
            raise _failed()

        return GoogleIdentity(
            email=email,
            display_name=claims.get("name") or email.split("@", 1)[0],
            avatar_url=upgrade_avatar_url(claims.get("picture")),
        )

    # ------------------------------------------------------------------
    # Key set
    # ------------------------------------------------------------------

    def _key_set(self):
        with self._lock:
            if self._keys is None or time.monotonic() >= self._keys_expire_at:
                jwks, ttl = self._fetch_jwks()
                self._keys = JsonWebKey.import_key_set(jwks)
                self._keys_expire_at = time.monotonic() + ttl
            return self._keys

    def _fetch_jwks(self) -> tuple[dict, int]:
        """GET the Firebase JWKS document. Returns (jwks, cache ttl seconds)."""
        resp = self._session.get(FIREBASE_JWKS_URL, timeout=self._timeout)
        resp.raise_for_status()
        match = _MAX_AGE_RE.search(resp.headers.get("Cache-Control", ""))
        ttl = int(match.group(1)) if match else _DEFAULT_KEYS_TTL
        return resp.json(), ttl


def _failed() -> InkwellError:
    return InkwellError(ErrorKind.FEDERATED_AUTH_FAILED, FEDERATED_AUTH_FAILED_MESSAGE)
