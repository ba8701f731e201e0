"""
Gestión del ciclo de vida de la aplicación FastAPI.

Este módulo maneja los eventos de startup y shutdown: conexiones a
PostgreSQL y Redis, construcción del orquestador y arranque/parada del
consumer de Kafka como tarea en background.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI

from orderflow.clients.kafka_client import KafkaQueueClient
from orderflow.core.cache_manager import RedisOrderCache
from orderflow.core.config import get_settings
from orderflow.core.logging_config import setup_logging
from orderflow.core.metrics import OrderMetrics
from orderflow.core.redis_client import close_redis, initialize_redis
from orderflow.db.connection import ConnDB
from orderflow.db.order_repository import SQLOrderRepository
from orderflow.services.orders.consumer import OrderConsumer
from orderflow.services.orders.orchestrator import create_orchestrator
from orderflow.services.orders.validators import OrderValidator
from orderflow.utils.retry_handler import create_consumer_retry_policy

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gestión del ciclo de vida de la aplicación.

    Args:
        app: Instancia de FastAPI
    """
    # === STARTUP ===
    try:
        setup_logging()
        logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}...")

        await startup_initialize_storage(app)
        await startup_initialize_cache(app)
        startup_build_services(app)
        startup_start_consumer(app)

        logger.info("Aplicación iniciada correctamente")

    except Exception as e:
        logger.error(f"Error durante el startup: {e}")
        await shutdown_application(app)
        sys.exit(1)

    yield

    # === SHUTDOWN ===
    logger.info(f"Cerrando {settings.APP_NAME}...")
    await shutdown_application(app)
    logger.info("Aplicación cerrada correctamente")


# === FUNCIONES DE STARTUP ===


async def startup_initialize_storage(app: FastAPI) -> None:
    """Inicializa la conexión a PostgreSQL (crítica)."""
    conn_db = ConnDB()
    await conn_db.initialize()

    app.state.conn_db = conn_db
    app.state.repository = SQLOrderRepository(conn_db)
    logger.info("Conexión a base de datos verificada")


async def startup_initialize_cache(app: FastAPI) -> None:
    """Inicializa Redis (no crítico: sin cache las lecturas van a la base de datos)."""
    client = await initialize_redis()
    app.state.cache = RedisOrderCache(client)


def startup_build_services(app: FastAPI) -> None:
    """Construye métricas y orquestador compartidos."""
    app.state.metrics = OrderMetrics()
    app.state.orchestrator = create_orchestrator(
        repository=app.state.repository,
        cache=app.state.cache,
        metrics=app.state.metrics,
    )


def startup_start_consumer(app: FastAPI) -> None:
    """Arranca el consumer de pedidos si está habilitado."""
    if not settings.ENABLE_CONSUMER:
        logger.info("Consumer de Kafka deshabilitado por configuración")
        app.state.consumer = None
        return

    consumer = OrderConsumer(
        queue=KafkaQueueClient.from_settings(settings),
        order_service=app.state.orchestrator,
        validator=OrderValidator(),
        retry_policy=create_consumer_retry_policy(settings),
        metrics=app.state.metrics,
    )
    consumer.start()
    app.state.consumer = consumer
    logger.info(f"Consumer de Kafka iniciado - topic: {settings.KAFKA_TOPIC}")


# === FUNCIONES DE SHUTDOWN ===


async def shutdown_application(app: FastAPI) -> None:
    """
    Libera recursos en orden inverso: consumer, Redis, base de datos.

    Cada paso se ejecuta aunque el anterior falle.
    """
    consumer = getattr(app.state, "consumer", None)
    if consumer is not None:
        try:
            await consumer.stop()
            logger.info("Consumer detenido")
        except Exception as e:
            logger.error(f"Error deteniendo consumer: {e}")

    try:
        await close_redis()
    except Exception as e:
        logger.error(f"Error cerrando Redis: {e}")

    conn_db = getattr(app.state, "conn_db", None)
    if conn_db is not None:
        try:
            await conn_db.close()
        except Exception as e:
            logger.error(f"Error cerrando base de datos: {e}")
