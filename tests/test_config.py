"""
Tests for environment-driven settings.
"""

import pytest

from verifiedid.config import DEFAULT_SCOPE, Settings, load_settings


def test_defaults(monkeypatch):
    for name in (
        "ENTRA_AD_MANAGED_ID",
        "ENTRA_AD_SCOPE",
        "VERIFIED_ID_PIN_CODE_LENGTH",
        "APP_CACHE_MAX_SIZE",
        "APP_CACHE_TTL_SECONDS",
        "APP_CALLBACK_BASE_URL",
        "APP_CALLBACK_TERMINAL_POLICY",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.managed_id is False
    assert settings.scope == DEFAULT_SCOPE
    assert settings.pin_code_length == 0
    assert settings.cache_max_size == 100
    assert settings.cache_ttl_seconds == 900
    assert settings.callback_base_url is None
    assert settings.callback_terminal_policy == "reject"


def test_values_from_environment(monkeypatch):
    monkeypatch.setenv("ENTRA_AD_MANAGED_ID", "true")
    monkeypatch.setenv("ENTRA_AD_TENANT", "contoso")
    monkeypatch.setenv("VERIFIED_ID_PIN_CODE_LENGTH", "6")
    monkeypatch.setenv("VERIFIED_ID_USE_FACE_CHECK", "1")
    monkeypatch.setenv("APP_CACHE_MAX_SIZE", "10")
    monkeypatch.setenv("APP_CALLBACK_BASE_URL", "https://relay.example.com/")
    monkeypatch.setenv("APP_CALLBACK_TERMINAL_POLICY", "ALLOW")

    settings = load_settings()

    assert settings.managed_id is True
    assert settings.tenant == "contoso"
    assert settings.pin_code_length == 6
    assert settings.use_face_check is True
    assert settings.cache_max_size == 10
    assert settings.callback_base_url == "https://relay.example.com/"
    assert settings.callback_terminal_policy == "allow"


def test_invalid_terminal_policy(monkeypatch):
    monkeypatch.setenv("APP_CALLBACK_TERMINAL_POLICY", "ignore")
    with pytest.raises(ValueError, match="APP_CALLBACK_TERMINAL_POLICY"):
        load_settings()


@pytest.mark.parametrize(
    "authority,tenant,expected",
    [
        ("https://login.microsoftonline.com/", "contoso", "https://login.microsoftonline.com/contoso"),
        ("https://login.microsoftonline.com", "contoso", "https://login.microsoftonline.com/contoso"),
        ("https://login.microsoftonline.com/contoso", "contoso", "https://login.microsoftonline.com/contoso"),
        ("https://login.microsoftonline.com/", "", "https://login.microsoftonline.com"),
    ],
)
def test_resolved_authority(authority, tenant, expected):
    assert Settings(authority=authority, tenant=tenant).resolved_authority == expected
