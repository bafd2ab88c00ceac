import pytest
from pydantic import ValidationError

from authcode_grant.settings import AuthorizationCodeGrantSettings


def test_settings_defaults() -> None:
    settings = AuthorizationCodeGrantSettings(_env_file=None)

    assert settings.cache_enabled is False
    assert settings.cache_max_size == 1024
    assert settings.cache_ttl_seconds == 300
    assert settings.issue_refresh_token is True
    assert settings.access_token_ttl_seconds == 3600
    assert settings.token_prefix == "acg_"


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTHCODE_GRANT_CACHE_ENABLED", "true")
    monkeypatch.setenv("AUTHCODE_GRANT_CACHE_TTL_SECONDS", "60")
    monkeypatch.setenv("AUTHCODE_GRANT_ISSUE_REFRESH_TOKEN", "false")
    monkeypatch.setenv("AUTHCODE_GRANT_TOKEN_PREFIX", "tok_")

    settings = AuthorizationCodeGrantSettings(_env_file=None)

    assert settings.cache_enabled is True
    assert settings.cache_ttl_seconds == 60
    assert settings.issue_refresh_token is False
    assert settings.token_prefix == "tok_"


def test_settings_reject_whitespace_prefix() -> None:
    with pytest.raises(ValidationError):
        AuthorizationCodeGrantSettings(_env_file=None, token_prefix="bad prefix")


def test_settings_reject_non_positive_ttl() -> None:
    with pytest.raises(ValidationError):
        AuthorizationCodeGrantSettings(_env_file=None, access_token_ttl_seconds=0)
