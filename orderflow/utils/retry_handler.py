"""
Política de reintentos con backoff exponencial.

Este módulo implementa la estrategia de retry que usa el consumer de pedidos:
delay inicial, duplicado tras cada intento fallido, limitado por un delay
máximo y por un número máximo de intentos.
"""

import logging
import random
from typing import List, Optional, Type

from orderflow.core.config import Settings, get_settings
from orderflow.utils.error_handler import (
    DecodeException,
    ValidationException,
)

logger = logging.getLogger(__name__)


class RetryPolicy:
    """
    Política de reintentos configurable.
    """

    def __init__(
        self,
        max_attempts: int = 15,
        base_delay: float = 1.0,
        max_delay: float = 15.0,
        exponential_base: float = 2.0,
        jitter: bool = False,
        retry_on: Optional[List[Type[Exception]]] = None,
        stop_on: Optional[List[Type[Exception]]] = None,
    ):
        """
        Inicializa la política de reintentos.

        Args:
            max_attempts: Número máximo de intentos (incluye el primero)
            base_delay: Delay base en segundos
            max_delay: Delay máximo en segundos
            exponential_base: Base para backoff exponencial
            jitter: Si agregar jitter aleatorio (nunca supera max_delay)
            retry_on: Excepciones en las que reintentar
            stop_on: Excepciones que detienen inmediatamente
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.retry_on = retry_on or [Exception]
        self.stop_on = stop_on or []

    def should_retry(self, exception: Exception, attempt: int) -> bool:
        """
        Determina si debe reintentar la operación.

        Args:
            exception: Excepción que ocurrió
            attempt: Número de intento actual (1-based)

        Returns:
            bool: True si debe reintentar
        """
        if attempt >= self.max_attempts:
            return False

        for stop_exc in self.stop_on:
            if isinstance(exception, stop_exc):
                return False

        for retry_exc in self.retry_on:
            if isinstance(exception, retry_exc):
                return True

        return False

    def calculate_delay(self, attempt: int) -> float:
        """
        Calcula el delay antes del siguiente intento.

        Args:
            attempt: Número del intento que acaba de fallar (1-based)

        Returns:
            float: Segundos a esperar
        """
        delay = self.base_delay * (self.exponential_base ** (attempt - 1))

        if self.jitter:
            jitter_range = delay * 0.1
            delay += random.uniform(-jitter_range, jitter_range)

        delay = min(delay, self.max_delay)

        return max(delay, 0)

    def __repr__(self) -> str:
        return (
            f"RetryPolicy(max_attempts={self.max_attempts}, base_delay={self.base_delay}, "
            f"max_delay={self.max_delay})"
        )


# === FACTORY FUNCTIONS ===


def create_consumer_retry_policy(settings: Optional[Settings] = None) -> RetryPolicy:
    """
    Crea la política de reintentos para la persistencia de pedidos del consumer.

    Los errores de decodificación y validación nunca se reintentan; cualquier
    otra falla del almacenamiento sí.

    Args:
        settings: Configuración (por defecto la global)

    Returns:
        RetryPolicy: Política configurada para el consumer
    """
    settings = settings or get_settings()

    return RetryPolicy(
        max_attempts=settings.CONSUMER_RETRY_MAX_ATTEMPTS,
        base_delay=settings.CONSUMER_RETRY_BASE_DELAY_SECONDS,
        max_delay=settings.CONSUMER_RETRY_MAX_DELAY_SECONDS,
        exponential_base=2.0,
        jitter=False,
        retry_on=[Exception],
        stop_on=[DecodeException, ValidationException],
    )
