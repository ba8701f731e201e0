"""
Sistema de manejo de errores personalizado.

Este módulo define todas las excepciones personalizadas del pipeline de pedidos
(ingesta desde la cola, almacenamiento, cache y lectura) y proporciona
utilidades para manejo consistente de errores.
"""

import logging
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    """
    Códigos de error estandarizados para la aplicación.
    """

    # Errores generales
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # Errores de lectura
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    ORDER_SERVICE_ERROR = "ORDER_SERVICE_ERROR"

    # Errores de infraestructura
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    CACHE_UNAVAILABLE = "CACHE_UNAVAILABLE"
    CACHE_MISS = "CACHE_MISS"
    QUEUE_UNAVAILABLE = "QUEUE_UNAVAILABLE"

    # Errores de mensajes (poison messages)
    MESSAGE_DECODE_FAILED = "MESSAGE_DECODE_FAILED"
    RETRIES_EXHAUSTED = "RETRIES_EXHAUSTED"


class ErrorSeverity(Enum):
    """
    Niveles de severidad para errores.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AppException(Exception):
    """
    Excepción base para todas las excepciones personalizadas de la aplicación.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        is_retryable: bool = False,
        is_critical: bool = False,
    ):
        """
        Inicializa la excepción.

        Args:
            message: Mensaje de error
            error_code: Código de error estandarizado
            details: Información adicional del error
            status_code: Código HTTP asociado
            severity: Severidad del error
            is_retryable: Si la operación puede reintentarse
            is_critical: Si requiere alerta inmediata
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        self.severity = severity
        self.is_retryable = is_retryable
        self.is_critical = is_critical
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convierte la excepción a diccionario.

        Returns:
            Dict: Representación de la excepción
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "details": self.details,
            "status_code": self.status_code,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
            "is_critical": self.is_critical,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        """String representation del error."""
        return f"{self.error_code.value}: {self.message}"


class OrderNotFoundException(AppException):
    """
    El pedido solicitado no existe en el almacenamiento.

    Es la única señal de "pedido inexistente" que debe ver un llamador.
    """

    def __init__(self, order_uid: str, **kwargs):
        super().__init__(
            message=f"Order {order_uid} not found",
            error_code=ErrorCode.ORDER_NOT_FOUND,
            status_code=404,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.order_uid = order_uid
        self.details.update({"order_uid": order_uid})


class OrderServiceException(AppException):
    """
    Falla interna opaca del camino de lectura (mapeada a HTTP 500).
    """

    def __init__(self, message: str, operation: str, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.ORDER_SERVICE_ERROR,
            status_code=500,
            severity=ErrorSeverity.HIGH,
            **kwargs,
        )
        self.operation = operation
        self.details.update({"operation": operation})


class StoreUnavailableException(AppException):
    """
    Excepción para errores de conexión o transacción con la base de datos.
    """

    def __init__(
        self,
        message: str,
        db_host: Optional[str] = None,
        operation: str = "database",
        **kwargs,
    ):
        """
        Inicializa la excepción de almacenamiento.

        Args:
            message: Mensaje de error
            db_host: Host de la base de datos
            operation: Operación que falló
            **kwargs: Argumentos adicionales para AppException
        """
        super().__init__(
            message=message,
            error_code=ErrorCode.STORE_UNAVAILABLE,
            status_code=503,
            severity=ErrorSeverity.HIGH,
            is_retryable=True,
            is_critical=True,
            **kwargs,
        )
        self.db_host = db_host
        self.operation = operation

        self.details.update({"db_host": db_host, "operation": operation})


class CacheMissException(AppException):
    """
    Señal de control: la clave no existe o expiró. No es un error.
    """

    def __init__(self, key: str, **kwargs):
        super().__init__(
            message=f"Cache miss for key {key}",
            error_code=ErrorCode.CACHE_MISS,
            status_code=404,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.key = key
        self.details.update({"key": key})


class CacheUnavailableException(AppException):
    """
    Excepción para errores de transporte con Redis.
    """

    def __init__(self, message: str, key: Optional[str] = None, operation: str = "cache", **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.CACHE_UNAVAILABLE,
            status_code=503,
            severity=ErrorSeverity.MEDIUM,
            is_retryable=True,
            **kwargs,
        )
        self.key = key
        self.operation = operation
        self.details.update({"key": key, "operation": operation})


class QueueUnavailableException(AppException):
    """
    Excepción para errores de transporte con Kafka (fetch/commit).
    """

    def __init__(self, message: str, topic: Optional[str] = None, operation: str = "fetch", **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.QUEUE_UNAVAILABLE,
            status_code=503,
            severity=ErrorSeverity.HIGH,
            is_retryable=True,
            **kwargs,
        )
        self.topic = topic
        self.operation = operation
        self.details.update({"topic": topic, "operation": operation})


class DecodeException(AppException):
    """
    El payload del mensaje no es un pedido JSON válido. Terminal, no se reintenta.
    """

    def __init__(self, message: str, offset: Optional[int] = None, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.MESSAGE_DECODE_FAILED,
            status_code=422,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.offset = offset
        self.details.update({"offset": offset})


class ValidationException(AppException):
    """
    Excepción para errores de validación de datos.
    """

    def __init__(
        self,
        message: str,
        field: str,
        invalid_value: Any = None,
        expected_format: Optional[str] = None,
        **kwargs,
    ):
        """
        Inicializa la excepción de validación.

        Args:
            message: Mensaje de error
            field: Campo que falló la validación
            invalid_value: Valor que causó el error
            expected_format: Formato esperado
            **kwargs: Argumentos adicionales para AppException
        """
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            status_code=422,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.field = field
        self.invalid_value = invalid_value
        self.expected_format = expected_format

        self.details.update(
            {
                "field": field,
                "invalid_value": str(invalid_value) if invalid_value is not None else None,
                "expected_format": expected_format,
            }
        )


class RetriesExhaustedException(AppException):
    """
    Falla persistente del almacenamiento tras agotar los reintentos de un mensaje.
    """

    def __init__(self, order_uid: str, attempts: int, last_error: Optional[Exception] = None, **kwargs):
        super().__init__(
            message=f"Gave up persisting order {order_uid} after {attempts} attempts",
            error_code=ErrorCode.RETRIES_EXHAUSTED,
            status_code=500,
            severity=ErrorSeverity.HIGH,
            **kwargs,
        )
        self.order_uid = order_uid
        self.attempts = attempts
        self.last_error = last_error
        self.details.update(
            {
                "order_uid": order_uid,
                "attempts": attempts,
                "last_error": str(last_error) if last_error else None,
            }
        )


# === FUNCIONES DE UTILIDAD ===


def convert_to_app_exception(exception: Exception, context: Optional[Dict[str, Any]] = None) -> AppException:
    """
    Convierte una excepción estándar a AppException.

    Args:
        exception: Excepción a convertir
        context: Contexto adicional

    Returns:
        AppException: Excepción convertida
    """
    if isinstance(exception, AppException):
        return exception

    context = context or {}
    exception_type = type(exception).__name__

    return AppException(
        message=f"{exception_type}: {str(exception)}",
        details={"original_exception": exception_type, **context},
    )


def create_error_response(exception: Union[AppException, Exception], include_details: bool = False) -> Dict[str, Any]:
    """
    Crea respuesta de error estandarizada.

    Args:
        exception: Excepción a convertir
        include_details: Si incluir detalles internos

    Returns:
        Dict: Respuesta de error
    """
    app_exc = convert_to_app_exception(exception)
    error_dict = app_exc.to_dict()

    if not include_details:
        error_dict.pop("details", None)

    return {"error": True, **error_dict}


def log_error(
    exception: Exception,
    context: Optional[Dict[str, Any]] = None,
    level: int = logging.ERROR,
) -> None:
    """
    Loggea un error de manera consistente.

    Args:
        exception: Excepción a loggear
        context: Contexto adicional
        level: Nivel de logging
    """
    context = context or {}

    log_data = {
        "exception_type": type(exception).__name__,
        "exception_message": str(exception),
        **context,
    }

    if isinstance(exception, AppException):
        message = f"{exception.error_code.value}: {exception.message}"
        log_data.update(
            {
                "error_code": exception.error_code.value,
                "severity": exception.severity.value,
                "is_retryable": exception.is_retryable,
            }
        )
    else:
        message = f"Unhandled exception: {type(exception).__name__}: {str(exception)}"
        log_data["traceback"] = traceback.format_exc()

    logger.log(level, message, extra=log_data)
