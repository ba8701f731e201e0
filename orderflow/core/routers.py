"""
Configuración centralizada de routers para la aplicación FastAPI.

Este módulo registra los endpoints raíz, de health check y la API de
lectura de pedidos.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from orderflow.api.v1.endpoints.orders import router as orders_router
from orderflow.core.config import get_settings
from orderflow.version import VERSION, version_info

settings = get_settings()
logger = logging.getLogger(__name__)


def create_root_endpoints(app: FastAPI) -> None:
    """
    Crea endpoints raíz de la aplicación.

    Args:
        app: Instancia de FastAPI
    """

    @app.get("/", tags=["Root"], summary="API Info")
    async def root():
        return {
            "message": "Order ingestion and retrieval service",
            **version_info(),
            "status": "running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "endpoints": {"health": "/health", "order": "/order/{order_uid}"},
        }

    @app.get("/ping", tags=["Root"], summary="Simple Ping")
    async def ping():
        """
        Endpoint simple para verificar que la API responde.

        Returns:
            Dict con pong y timestamp
        """
        return {"message": "pong", "timestamp": datetime.now(timezone.utc).isoformat()}


async def get_health_status(app: FastAPI) -> Dict[str, Any]:
    """
    Estado de los componentes registrados en ``app.state``.

    La base de datos es crítica; el cache solo degrada el rendimiento.

    Returns:
        Dict con estado por servicio, estado global y métricas
    """
    services: Dict[str, Any] = {}

    repository = getattr(app.state, "repository", None)
    cache = getattr(app.state, "cache", None)
    consumer = getattr(app.state, "consumer", None)
    metrics = getattr(app.state, "metrics", None)

    for name, component in (("database", repository), ("cache", cache)):
        if component is None:
            services[name] = {"status": "not_configured"}
            continue
        try:
            services[name] = await component.health_check()
        except Exception as e:
            logger.error(f"Health check of {name} failed: {e}")
            services[name] = {"status": "unhealthy", "error": str(e)}

    services["consumer"] = {"status": consumer.state if consumer is not None else "disabled"}

    return {
        "overall": services["database"].get("status") == "healthy",
        "services": services,
        "metrics": metrics.snapshot() if metrics is not None else {},
    }


def create_health_endpoints(app: FastAPI) -> None:
    """
    Crea endpoints de health check.

    Args:
        app: Instancia de FastAPI
    """

    @app.get("/health", tags=["Health"], summary="Health Check")
    async def health_check(request: Request):
        """
        Verifica base de datos, cache y consumer.

        Returns:
            JSONResponse 200 si la base de datos responde, 503 en caso contrario
        """
        health_status = await get_health_status(request.app)
        status_code = 200 if health_status["overall"] else 503

        return JSONResponse(
            status_code=status_code,
            content={
                "status": "healthy" if health_status["overall"] else "unhealthy",
                "version": VERSION,
                "environment": settings.ENVIRONMENT,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "services": health_status["services"],
                "metrics": health_status["metrics"],
            },
        )


def configure_all_routers(app: FastAPI) -> None:
    """
    Configura todos los routers de la aplicación.

    Args:
        app: Instancia de FastAPI
    """
    create_root_endpoints(app)
    create_health_endpoints(app)

    app.include_router(orders_router, tags=["Orders"])

    logger.info("Routers configured")
