"""Tests for environment-driven settings and logging setup."""

import logging

import structlog
from stackwright.config import Settings, get_settings
from stackwright.logging import bind_context, configure_logging


def test_defaults():
    settings = Settings()

    assert settings.poll_interval_seconds == 5.0
    assert settings.capabilities == ["CAPABILITY_IAM"]
    assert settings.aws_endpoint_url is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("STACKWRIGHT_AWS_REGION", "ap-southeast-2")
    monkeypatch.setenv("STACKWRIGHT_POLL_INTERVAL_SECONDS", "1.5")
    monkeypatch.setenv("STACKWRIGHT_CAPABILITIES", '["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM"]')

    settings = Settings()

    assert settings.aws_region == "ap-southeast-2"
    assert settings.poll_interval_seconds == 1.5
    assert settings.capabilities == ["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM"]


def test_get_settings_is_cached():
    get_settings.cache_clear()
    assert get_settings() is get_settings()
    get_settings.cache_clear()


def test_configure_logging_accepts_level_names():
    previous = structlog.get_config()
    configure_logging("debug", fmt="console")
    try:
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
        assert bind_context(stack="net") is not None
    finally:
        structlog.configure(**previous)
        logging.getLogger().setLevel(logging.WARNING)
