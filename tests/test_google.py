"""
tests/test_google.py -- Unit tests for GoogleIdentityVerifier.

Tokens are minted locally with a throwaway RSA key in the shape Firebase
issues them. _fetch_jwks is replaced on each verifier instance so no test
touches the network.

Coverage:
  - a valid token yields email, display name, and the 384px avatar URL
  - expired, wrong audience, wrong issuer, foreign signature, unknown key id,
    missing email, exp or iat, and garbage all fail the same way
  - an unconfigured project rejects without fetching keys
  - a key fetch error is a federated failure, not a crash
  - the key set is cached between verifications
"""

from __future__ import annotations

import time

import pytest
import requests
from authlib.jose import JsonWebKey, JsonWebToken

from auth.google import FEDERATED_AUTH_FAILED_MESSAGE, GoogleIdentityVerifier, upgrade_avatar_url
from core.errors import ErrorKind, InkwellError

KID = "test-key"


def _generate_key(kid: str = KID) -> tuple[dict, dict]:
    """Return (private JWK dict, public JWK dict) for a fresh RSA key."""
    key = JsonWebKey.generate_key("RSA", 2048, is_private=True)
    private = dict(key.as_dict(is_private=True), kid=kid)
    public = dict(key.as_dict(), kid=kid)
    return private, public


@pytest.fixture(scope="module")
def keypair() -> tuple[dict, dict]:
    return _generate_key()


@pytest.fixture
def verifier(settings, keypair, monkeypatch) -> GoogleIdentityVerifier:
    _, public = keypair
    v = GoogleIdentityVerifier(settings)
    fetches = []

    def fake_fetch():
        fetches.append(1)
        return {"keys": [public]}, 3600

    monkeypatch.setattr(v, "_fetch_jwks", fake_fetch)
    v.fetches = fetches
    return v


def _mint(private: dict, project: str, kid: str = KID, **overrides) -> str:
    now = int(time.time())
    claims = {
        "iss": f"https://securetoken.google.com/{project}",
        "aud": project,
        "sub": "firebase-uid-1",
        "iat": now,
        "exp": now + 3600,
        "email": "jane@gmail.com",
        "name": "Jane Doe",
        "picture": "https://lh3.googleusercontent.com/a/photo=s96-c",
    }
    claims.update(overrides)
    claims = {k: v for k, v in claims.items() if v is not None}
    # authlib overwrites the header kid with the key's own kid.
    signing_key = {k: v for k, v in private.items() if k != "kid"}
    return JsonWebToken(["RS256"]).encode({"alg": "RS256", "kid": kid}, claims, signing_key).decode("ascii")


def _assert_federated_failure(exc_info) -> None:
    assert exc_info.value.kind is ErrorKind.FEDERATED_AUTH_FAILED
    assert exc_info.value.message == FEDERATED_AUTH_FAILED_MESSAGE
    assert exc_info.value.status_code == 500


class TestVerify:
    def test_valid_token_yields_identity(self, verifier, keypair, settings):
        private, _ = keypair
        identity = verifier.verify(_mint(private, settings.firebase_project_id))
        assert identity.email == "jane@gmail.com"
        assert identity.display_name == "Jane Doe"
        assert identity.avatar_url == "https://lh3.googleusercontent.com/a/photo=s384-c"

    def test_missing_name_falls_back_to_local_part(self, verifier, keypair, settings):
        private, _ = keypair
        identity = verifier.verify(_mint(private, settings.firebase_project_id, name=None, picture=None))
        assert identity.display_name == "jane"
        assert identity.avatar_url is None

    def test_key_set_is_cached(self, verifier, keypair, settings):
        private, _ = keypair
        verifier.verify(_mint(private, settings.firebase_project_id))
        verifier.verify(_mint(private, settings.firebase_project_id, email="john@gmail.com"))
        assert len(verifier.fetches) == 1

    @pytest.mark.parametrize(
        "overrides",
        [
            {"exp": int(time.time()) - 60},
            {"aud": "some-other-project"},
            {"iss": "https://accounts.example.com/inkwell-test"},
            {"email": None},
            {"sub": None},
            {"exp": None},
            {"iat": None},
        ],
        ids=["expired", "wrong-audience", "wrong-issuer", "no-email", "no-subject", "no-expiry", "no-issue-time"],
    )
    def test_bad_claims_fail(self, verifier, keypair, settings, overrides):
        private, _ = keypair
        with pytest.raises(InkwellError) as exc_info:
            verifier.verify(_mint(private, settings.firebase_project_id, **overrides))
        _assert_federated_failure(exc_info)

    def test_foreign_signature_fails(self, verifier, settings):
        impostor, _ = _generate_key()
        with pytest.raises(InkwellError) as exc_info:
            verifier.verify(_mint(impostor, settings.firebase_project_id))
        _assert_federated_failure(exc_info)

    def test_unknown_key_id_fails(self, verifier, keypair, settings):
        private, _ = keypair
        with pytest.raises(InkwellError) as exc_info:
            verifier.verify(_mint(private, settings.firebase_project_id, kid="rotated-away"))
        _assert_federated_failure(exc_info)

    @pytest.mark.parametrize("assertion", ["", "not-a-jwt", "a.b.c"])
    def test_garbage_fails(self, verifier, assertion):
        with pytest.raises(InkwellError) as exc_info:
            verifier.verify(assertion)
        _assert_federated_failure(exc_info)

    def test_unconfigured_project_rejects_without_fetching(self, settings_factory, keypair, monkeypatch):
        private, _ = keypair
        v = GoogleIdentityVerifier(settings_factory(firebase_project_id=""))

        def fail_fetch():
            raise AssertionError("keys must not be fetched")

        monkeypatch.setattr(v, "_fetch_jwks", fail_fetch)
        with pytest.raises(InkwellError) as exc_info:
            v.verify(_mint(private, "inkwell-test"))
        _assert_federated_failure(exc_info)

    def test_key_fetch_error_is_federated_failure(self, settings, keypair, monkeypatch):
        private, _ = keypair
        v = GoogleIdentityVerifier(settings)

        def broken_fetch():
            raise requests.ConnectionError("connection refused")

        monkeypatch.setattr(v, "_fetch_jwks", broken_fetch)
        with pytest.raises(InkwellError) as exc_info:
            v.verify(_mint(private, settings.firebase_project_id))
        _assert_federated_failure(exc_info)


class TestUpgradeAvatarUrl:
    def test_swaps_size_token(self):
        assert upgrade_avatar_url("https://x/y=s96-c") == "https://x/y=s384-c"

    def test_leaves_other_urls_alone(self):
        assert upgrade_avatar_url("https://x/y.png") == "https://x/y.png"

    def test_passes_none_through(self):
        assert upgrade_avatar_url(None) is None
