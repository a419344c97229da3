"""
tests/test_config.py -- SECRET_ACCESS_KEY policy and env var names.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("SECRET_ACCESS_KEY", "SECRET_KEY", "DB_LOCATION", "BCRYPT_ROUNDS"):
        monkeypatch.delenv(name, raising=False)


def test_production_requires_a_key():
    with pytest.raises(ValidationError, match="SECRET_ACCESS_KEY is required"):
        Settings(debug=False)


def test_debug_generates_a_key():
    settings = Settings(debug=True)
    assert len(settings.secret_key) >= 32


def test_short_key_is_rejected():
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(debug=True, secret_key="too-short")


def test_deployment_env_var_names(monkeypatch):
    monkeypatch.setenv("SECRET_ACCESS_KEY", "k" * 32)
    monkeypatch.setenv("DB_LOCATION", "sqlite:///elsewhere.db")
    monkeypatch.setenv("BCRYPT_ROUNDS", "12")
    settings = Settings(debug=False)
    assert settings.secret_key == "k" * 32
    assert settings.database_url == "sqlite:///elsewhere.db"
    assert settings.bcrypt_rounds == 12


def test_bcrypt_rounds_bounds():
    with pytest.raises(ValidationError):
        Settings(debug=True, bcrypt_rounds=3)
