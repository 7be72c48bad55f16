import logging

import pytest
from pydantic import ValidationError

from shop_service.common_logging import setup_logging
from shop_service.config import Settings
from shop_service.main import create_app


def test_log_settings_are_normalized():
    settings = Settings(log_level="debug", log_format="TEXT", otel_enabled=False)

    assert settings.log_level == "DEBUG"
    assert settings.log_format == "text"


def test_unknown_log_level_is_rejected():
    with pytest.raises(ValidationError):
        Settings(log_level="loud")


def test_production_requires_jwt_secret():
    with pytest.raises(ValidationError):
        Settings(environment="production")

    assert Settings(environment="production", jwt_secret="s3cret").is_production


def test_production_hides_docs():
    app = create_app(Settings(environment="prod", jwt_secret="s3cret", otel_enabled=False, log_format="text"))

    assert app.docs_url is None
    assert app.openapi_url is None


def test_setup_logging_quiets_noisy_loggers():
    setup_logging("shop-service", log_level="INFO", log_format="json")

    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    assert logging.getLogger().level == logging.INFO
