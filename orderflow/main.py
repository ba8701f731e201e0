"""
orderflow - FastAPI Application Entry Point

Servicio de ingesta de pedidos desde Kafka con almacenamiento en PostgreSQL
y lectura por identificador a través de un cache Redis.

Este archivo crea la aplicación y, ejecutado directamente, levanta uvicorn.
"""

import logging

import uvicorn
from fastapi import FastAPI

from orderflow.core.config import get_settings
from orderflow.core.exception_handlers import configure_exception_handlers
from orderflow.core.lifespan import lifespan
from orderflow.core.routers import configure_all_routers
from orderflow.version import VERSION

settings = get_settings()
logger = logging.getLogger(__name__)


def create_application(with_lifespan: bool = True) -> FastAPI:
    """
    Factory para crear y configurar la aplicación FastAPI.

    Args:
        with_lifespan: Si conectar recursos externos al arrancar (False en tests,
            que registran sus propios componentes en ``app.state``)

    Returns:
        FastAPI: Instancia configurada de la aplicación
    """
    app = FastAPI(
        title=settings.APP_NAME,
        description="Order ingestion and retrieval service",
        version=VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan if with_lifespan else None,
    )

    configure_exception_handlers(app)
    configure_all_routers(app)

    logger.debug("Aplicación FastAPI creada y configurada")
    return app


app = create_application()


if __name__ == "__main__":
    uvicorn.run(
        "orderflow.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
