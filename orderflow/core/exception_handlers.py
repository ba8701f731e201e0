"""
Manejadores de excepciones centralizados para la aplicación FastAPI.

Este módulo define los manejadores de excepciones personalizados y globales,
proporcionando respuestas JSON consistentes y logging apropiado.
"""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from orderflow.core.config import get_settings
from orderflow.utils.error_handler import AppException, OrderNotFoundException, create_error_response

settings = get_settings()
logger = logging.getLogger(__name__)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Manejador para excepciones personalizadas de la aplicación.

    Args:
        request: Request de FastAPI
        exc: Excepción personalizada de la app

    Returns:
        JSONResponse: Respuesta JSON con error formateado
    """
    if isinstance(exc, OrderNotFoundException):
        logger.info(f"Order not found - URL: {request.url}")
    else:
        logger.error(f"App Exception: {exc.message} - Code: {exc.error_code.value} - URL: {request.url}")

    content = create_error_response(exc, include_details=settings.DEBUG)
    if exc.status_code >= 500:
        content["message"] = "internal server error"
    content["path"] = str(request.url.path)

    return JSONResponse(status_code=exc.status_code, content=content)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Manejador para HTTPException.

    Args:
        request: Request de FastAPI
        exc: Excepción HTTP

    Returns:
        JSONResponse: Respuesta JSON con error HTTP
    """
    if exc.status_code >= 500:
        logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail} - URL: {request.url}")
    else:
        logger.info(f"HTTP Exception: {exc.status_code} - {exc.detail} - URL: {request.url}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "message": exc.detail,
            "status_code": exc.status_code,
            "path": str(request.url.path),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        headers=getattr(exc, "headers", None),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Manejador global para excepciones no capturadas.

    Args:
        request: Request de FastAPI
        exc: Excepción no manejada

    Returns:
        JSONResponse: Respuesta genérica de error interno
    """
    logger.exception(f"Unhandled exception: {type(exc).__name__}: {exc} - URL: {request.url}")

    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "message": "internal server error",
            "status_code": 500,
            "path": str(request.url.path),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


def configure_exception_handlers(app: FastAPI) -> None:
    """
    Registra todos los manejadores de excepciones en la aplicación.

    Args:
        app: Instancia de FastAPI
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    logger.debug("Exception handlers configured")
