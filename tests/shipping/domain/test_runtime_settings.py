"""Tests for environment-driven settings and logging configuration."""

import logging

import structlog

from shipping import settings
from shipping.utils.logging import _renderer, bind_tenant, clear_context, get_log_level, setup_stdlib_logging


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in (
            "COURIER_ADAPTER",
            "SHIPPING_RETRY_MAX_ATTEMPTS",
            "SHIPPING_RETRY_BASE_DELAY_MS",
            "SHIPPING_RETRY_MAX_JITTER_MS",
            "SHIPPING_DEFAULT_WEIGHT_KG",
            "SHIPPING_DEFAULT_PACKAGE_CM",
            "SHIPPING_BOOKING_CLAIM_TTL_S",
        ):
            monkeypatch.delenv(name, raising=False)

        assert settings.courier_adapter() == "fake"
        assert settings.retry_max_attempts() == 5
        assert settings.retry_base_delay() == 0.1
        assert settings.retry_max_jitter() == 0.1
        assert settings.default_weight_kg() == 0.5
        assert settings.default_package_cm() == 10
        assert settings.booking_claim_ttl() == 300

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("SHIPPING_RETRY_MAX_ATTEMPTS", "8")
        monkeypatch.setenv("SHIPPING_RETRY_BASE_DELAY_MS", "250")
        monkeypatch.setenv("SHIPPING_DEFAULT_WEIGHT_KG", "1.25")

        assert settings.retry_max_attempts() == 8
        assert settings.retry_base_delay() == 0.25
        assert settings.default_weight_kg() == 1.25


class TestLogging:
    def test_log_level_follows_environment(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("ENV", raising=False)
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        monkeypatch.setenv("PROTEAN_ENV", "production")
        assert get_log_level() == "INFO"

    def test_log_level_override(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert get_log_level() == "DEBUG"

    def test_stdlib_logging_writes_to_log_dir(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "INFO")
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_stdlib_logging(tmp_path)
            assert (tmp_path / "shipstream.log").exists()
            assert (tmp_path / "shipstream_error.log").exists()
            assert root.level == logging.INFO
            error_files = [h for h in root.handlers if getattr(h, "baseFilename", "").endswith("shipstream_error.log")]
            assert [h.level for h in error_files] == [logging.ERROR]
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers = saved_handlers
            root.setLevel(saved_level)

    def test_tenant_is_bound_to_context(self):
        bind_tenant("tenant-a", path="/shipments")
        try:
            assert structlog.contextvars.get_contextvars() == {"tenant_id": "tenant-a", "path": "/shipments"}
        finally:
            clear_context()
        assert structlog.contextvars.get_contextvars() == {}

    def test_json_rendering_in_production(self, monkeypatch):
        monkeypatch.setenv("ENV", "production")
        assert isinstance(_renderer(), structlog.processors.JSONRenderer)

    def test_console_rendering_in_development(self, monkeypatch):
        monkeypatch.setenv("ENV", "development")
        assert isinstance(_renderer(), structlog.dev.ConsoleRenderer)
