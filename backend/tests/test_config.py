# tests/test_config.py — Settings parsing and startup validation
from datetime import timedelta

import pytest

import config
from config import ConfigError, parse_duration, validate_config


@pytest.mark.parametrize("value,expected", [
    ("7d", timedelta(days=7)),
    ("12h", timedelta(hours=12)),
    ("30m", timedelta(minutes=30)),
    ("45s", timedelta(seconds=45)),
    ("2w", timedelta(weeks=2)),
    ("900", timedelta(seconds=900)),
])
def test_parse_duration(value, expected):
    assert parse_duration(value) == expected


@pytest.mark.parametrize("value", ["", "soon", "7x", "-1d", "1.5h"])
def test_parse_duration_rejects(value):
    with pytest.raises(ConfigError):
        parse_duration(value)


def test_validate_config_passes_with_test_env():
    validate_config()


def test_validate_config_missing_secret(monkeypatch):
    monkeypatch.delenv("JWT_SECRET", raising=False)
    with pytest.raises(ConfigError) as exc:
        validate_config()
    assert "JWT_SECRET" in str(exc.value)


def test_validate_config_bad_duration(monkeypatch):
    monkeypatch.setattr(config, "JWT_EXPIRES_IN", "forever")
    with pytest.raises(ConfigError):
        validate_config()


def test_validate_config_bad_bcrypt_rounds(monkeypatch):
    monkeypatch.setattr(config, "BCRYPT_ROUNDS", 2)
    with pytest.raises(ConfigError):
        validate_config()


def test_production_flag(monkeypatch):
    monkeypatch.setattr(config, "ENVIRONMENT", "production")
    assert config.is_production()
    monkeypatch.setattr(config, "ENVIRONMENT", "test")
    assert not config.is_production()
