"""Tests unitarios para la configuración (pydantic-settings)."""

import pytest
from pydantic import ValidationError

from orderflow.core.config import Settings


def make_settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


class TestSettingsDefaults:
    """Valores por defecto del pipeline."""

    def test_cache_policy_defaults(self):
        settings = make_settings()

        assert settings.CACHE_ORDER_TTL_SECONDS == 24 * 60 * 60
        assert settings.cache_read_timeout == pytest.approx(0.2)
        assert settings.cache_write_timeout == pytest.approx(1.0)

    def test_retry_defaults(self):
        settings = make_settings()

        assert settings.CONSUMER_RETRY_BASE_DELAY_SECONDS == 1.0
        assert settings.CONSUMER_RETRY_MAX_DELAY_SECONDS == 15.0
        assert settings.CONSUMER_RETRY_MAX_ATTEMPTS == 15

    def test_kafka_consumer_commits_manually(self):
        config = make_settings().kafka_consumer_config

        assert config["enable.auto.commit"] is False
        assert config["auto.offset.reset"] == "earliest"
        assert config["group.id"] == "orderflow-consumer"


class TestSettingsParsing:
    """Parseo de variables de entorno."""

    def test_kafka_brokers_from_env_comma_list(self, monkeypatch):
        monkeypatch.setenv("KAFKA_BROKERS", "kafka-1:9092, kafka-2:9092")

        settings = make_settings()

        assert settings.KAFKA_BROKERS == ["kafka-1:9092", "kafka-2:9092"]
        assert settings.kafka_consumer_config["bootstrap.servers"] == "kafka-1:9092,kafka-2:9092"

    def test_log_level_is_normalized(self):
        assert make_settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValidationError):
            make_settings(LOG_LEVEL="verbose")

    def test_invalid_environment_rejected(self):
        with pytest.raises(ValidationError):
            make_settings(ENVIRONMENT="qa")

    def test_max_attempts_must_be_positive(self):
        with pytest.raises(ValidationError):
            make_settings(CONSUMER_RETRY_MAX_ATTEMPTS=0)

    def test_database_url_built_from_parts(self):
        settings = make_settings(DB_USER="orders", DB_PASSWORD="p@ss", DB_HOST="db", DB_NAME="shop")

        assert settings.database_url == "postgresql+asyncpg://orders:p%40ss@db:5432/shop"

    def test_database_url_override(self):
        settings = make_settings(DATABASE_URL="sqlite+aiosqlite:///:memory:")

        assert settings.database_url == "sqlite+aiosqlite:///:memory:"

    def test_redis_url_with_password(self):
        settings = make_settings(REDIS_PASSWORD="secret", REDIS_HOST="cache", REDIS_DB=2)

        assert settings.redis_url == "redis://:secret@cache:6379/2"
