from pydantic import SecretStr, ValidationError
import pytest

from barangay_registry.config import Settings, build_redis_url


def make_settings(**overrides):
    values = {"SECRET_KEY": "unit-test-signing-key", "REDIS_URL": None}
    values.update(overrides)
    return Settings(**values)


def test_redis_url_from_host_and_port():
    config = make_settings(REDIS_HOST="cache", REDIS_PORT=6380, REDIS_DB=2)
    assert build_redis_url(config) == "redis://cache:6380/2"


def test_redis_url_with_credentials():
    config = make_settings(REDIS_HOST="cache", REDIS_USERNAME="staff", REDIS_PASSWORD=SecretStr("pw"))
    assert build_redis_url(config) == "redis://staff:pw@cache:6379/0"

    config = make_settings(REDIS_HOST="cache", REDIS_PASSWORD=SecretStr("pw"))
    assert build_redis_url(config) == "redis://:pw@cache:6379/0"


def test_explicit_redis_url_wins():
    config = make_settings(REDIS_URL="redis://elsewhere:1234/5", REDIS_HOST="cache")
    assert build_redis_url(config) == "redis://elsewhere:1234/5"


@pytest.mark.parametrize("secret", ["", "please-change-me", "00000000"])
def test_placeholder_secret_is_rejected(secret):
    with pytest.raises(ValidationError):
        make_settings(SECRET_KEY=secret)


def test_record_settings_must_be_positive():
    with pytest.raises(ValidationError):
        make_settings(ID_SEQUENCE_WIDTH=0)


def test_cors_origins_list():
    config = make_settings(CORS_ORIGINS="https://a.example, https://b.example,")
    assert config.cors_origins_list == ["https://a.example", "https://b.example"]


def test_debug_is_off_by_default():
    config = make_settings()
    assert config.DEBUG is False
    assert config.is_production
