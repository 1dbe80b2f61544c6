"""Tests for the structured logging setup."""
import logging

from training_service.core.config import settings
from training_service.core.logging import NOISY_LOGGERS, add_service_context, setup_logging


class TestLogging:
    def test_service_context_added(self):
        event = add_service_context(None, "info", {"event": "hello"})
        assert event["service"] == settings.APP_NAME
        assert event["version"] == settings.APP_VERSION
        assert event["environment"] == "test"

    def test_service_context_does_not_override(self):
        event = add_service_context(None, "info", {"event": "hello", "service": "other"})
        assert event["service"] == "other"

    def test_setup_quietens_library_loggers(self):
        setup_logging(log_level="DEBUG", log_format="plain")
        assert logging.getLogger().level == logging.DEBUG
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        setup_logging()
