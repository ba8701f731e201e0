"""
Configuración centralizada de la aplicación.

Este módulo maneja todas las variables de entorno y configuraciones
de la aplicación usando Pydantic Settings para validación automática.
"""

from functools import lru_cache
from typing import Annotated, Any, Dict, List, Optional
from urllib.parse import quote_plus

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    """
    Configuración de la aplicación usando Pydantic Settings.

    Todas las configuraciones se cargan desde variables de entorno
    con valores por defecto apropiados para desarrollo.
    """

    # === CONFIGURACIÓN BÁSICA DE LA APP ===
    APP_NAME: str = "orderflow"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # === CONFIGURACIÓN DEL SERVIDOR ===
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8080)
    LOG_LEVEL: str = Field(default="INFO")

    # === CONFIGURACIÓN DE POSTGRESQL ===
    DATABASE_URL: Optional[str] = Field(default=None)
    DB_HOST: str = Field(default="localhost")
    DB_PORT: int = Field(default=5432)
    DB_USER: str = Field(default="postgres")
    DB_PASSWORD: str = Field(default="secret")
    DB_NAME: str = Field(default="postgres")
    DB_POOL_SIZE: int = Field(default=10)
    DB_CREATE_SCHEMA: bool = Field(default=False)

    # === CONFIGURACIÓN DE REDIS ===
    REDIS_HOST: str = Field(default="localhost")
    REDIS_PORT: int = Field(default=6379)
    REDIS_PASSWORD: Optional[str] = Field(default=None)
    REDIS_DB: int = Field(default=0)
    REDIS_MAX_CONNECTIONS: int = Field(default=10)
    REDIS_SOCKET_TIMEOUT: int = Field(default=5)

    # === POLÍTICA DE CACHE ===
    CACHE_ORDER_TTL_SECONDS: int = Field(default=24 * 60 * 60)
    # Timeout de lectura en el camino caliente
    CACHE_READ_TIMEOUT_MS: int = Field(default=200)
    CACHE_WRITE_TIMEOUT_MS: int = Field(default=1000)

    # === CONFIGURACIÓN DE KAFKA ===
    ENABLE_CONSUMER: bool = Field(default=True)
    KAFKA_BROKERS: Annotated[List[str], NoDecode] = Field(default=["localhost:9092"])
    KAFKA_TOPIC: str = Field(default="orders")
    KAFKA_GROUP_ID: str = Field(default="orderflow-consumer")
    KAFKA_POLL_TIMEOUT_SECONDS: float = Field(default=1.0)
    KAFKA_FETCH_ERROR_BACKOFF_SECONDS: float = Field(default=1.0)

    # === CONFIGURACIÓN DE RETRIES DEL CONSUMER ===
    CONSUMER_RETRY_BASE_DELAY_SECONDS: float = Field(default=1.0)
    CONSUMER_RETRY_MAX_DELAY_SECONDS: float = Field(default=15.0)
    CONSUMER_RETRY_MAX_ATTEMPTS: int = Field(default=15)

    # === CONFIGURACIÓN DE LOGGING ===
    LOG_FILE_PATH: Optional[str] = Field(default=None)
    LOG_MAX_SIZE_MB: int = Field(default=10)
    LOG_BACKUP_COUNT: int = Field(default=5)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }

    @field_validator("KAFKA_BROKERS", mode="before")
    @classmethod
    def parse_kafka_brokers(cls, v):
        """Parsea KAFKA_BROKERS como lista separada por comas."""
        if isinstance(v, str):
            return [broker.strip() for broker in v.split(",") if broker.strip()]
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Valida que el nivel de log sea válido."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL debe ser uno de: {valid_levels}")
        return v.upper()

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Valida que el entorno sea válido."""
        valid_envs = ["local", "development", "staging", "production", "testing"]
        if v.lower() not in valid_envs:
            raise ValueError(f"ENVIRONMENT debe ser uno de: {valid_envs}")
        return v.lower()

    @field_validator("PORT", "DB_PORT", "REDIS_PORT")
    @classmethod
    def validate_port(cls, v):
        """Valida que el puerto esté en rango válido."""
        if not 1 <= v <= 65535:
            raise ValueError("El puerto debe estar entre 1 y 65535")
        return v

    @field_validator("CONSUMER_RETRY_MAX_ATTEMPTS")
    @classmethod
    def validate_max_attempts(cls, v):
        """Al menos un intento de persistencia por mensaje."""
        if v < 1:
            raise ValueError("CONSUMER_RETRY_MAX_ATTEMPTS debe ser >= 1")
        return v

    @property
    def is_production(self) -> bool:
        """Verifica si está en entorno de producción."""
        return self.ENVIRONMENT == "production"

    @property
    def database_url(self) -> str:
        """URL asíncrona de SQLAlchemy para PostgreSQL (asyncpg)."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{quote_plus(self.DB_USER)}:{quote_plus(self.DB_PASSWORD)}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    @property
    def redis_url(self) -> str:
        """Genera la URL de conexión a Redis."""
        auth = f":{quote_plus(self.REDIS_PASSWORD)}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def cache_read_timeout(self) -> float:
        return self.CACHE_READ_TIMEOUT_MS / 1000

    @property
    def cache_write_timeout(self) -> float:
        return self.CACHE_WRITE_TIMEOUT_MS / 1000

    @property
    def kafka_consumer_config(self) -> Dict[str, Any]:
        """
        Configuración del consumer de confluent-kafka.

        El commit es manual: el offset avanza solo tras un resultado terminal.
        """
        return {
            "bootstrap.servers": ",".join(self.KAFKA_BROKERS),
            "group.id": self.KAFKA_GROUP_ID,
            "auto.offset.reset": "earliest",
            "enable.auto.commit": False,
            "enable.auto.offset.store": False,
        }

    @property
    def kafka_producer_config(self) -> Dict[str, Any]:
        """Configuración del producer de confluent-kafka."""
        return {
            "bootstrap.servers": ",".join(self.KAFKA_BROKERS),
            "acks": "all",
            "enable.idempotence": True,
        }


@lru_cache()
def get_settings() -> Settings:
    """
    Obtiene instancia singleton de configuración.

    Usa LRU cache para evitar recrear la configuración
    múltiples veces durante la ejecución.

    Returns:
        Settings: Instancia de configuración
    """
    return Settings()
