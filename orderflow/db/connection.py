"""
Clase ConnDB para gestión exclusiva de conexiones a la base de datos de pedidos.

Esta clase maneja únicamente el engine asíncrono, la factory de sesiones
y el ciclo de vida de las conexiones a PostgreSQL.
"""

import logging
import time
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from orderflow.core.config import get_settings
from orderflow.db.schema import create_schema
from orderflow.utils.error_handler import StoreUnavailableException

settings = get_settings()
logger = logging.getLogger(__name__)


class ConnDB:
    """
    Gestión del engine y las sesiones de la base de datos.

    El engine mantiene un pool de conexiones compartido por el consumer y
    los handlers HTTP.
    """

    def __init__(self, database_url: Optional[str] = None, create_tables: Optional[bool] = None):
        """
        Inicializa la clase ConnDB.

        Args:
            database_url: URL de SQLAlchemy (por defecto la de settings)
            create_tables: Si crear el esquema al inicializar (por defecto DB_CREATE_SCHEMA)
        """
        self.database_url = database_url or settings.database_url
        self.create_tables = settings.DB_CREATE_SCHEMA if create_tables is None else create_tables
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[sessionmaker] = None
        self._connection_tested = False

    @property
    def db_host(self) -> Optional[str]:
        return make_url(self.database_url).host

    def _engine_options(self) -> dict:
        if make_url(self.database_url).get_backend_name() == "sqlite":
            # Una única conexión compartida para que :memory: sobreviva entre sesiones
            return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}

        return {
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": 20,
            "pool_pre_ping": True,
            "pool_recycle": 3600,
            "pool_timeout": 30,
            "echo_pool": settings.DEBUG,
        }

    async def initialize(self):
        """
        Inicializa el engine de base de datos y el pool de conexiones.

        Raises:
            StoreUnavailableException: Si falla la inicialización
        """
        if self.engine is not None:
            logger.info("Database connection already initialized")
            return

        try:
            logger.info("Initializing database connection...")

            self.engine = create_async_engine(self.database_url, echo=settings.DEBUG, **self._engine_options())

            self.session_factory = sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

            if self.create_tables:
                await create_schema(self.engine)
                logger.info("Database schema ensured")

            await self._test_connection()

            logger.info("Database connection initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database connection: {e}")
            await self._cleanup_failed_initialization()
            raise StoreUnavailableException(
                message=f"Failed to initialize database connection: {str(e)}",
                db_host=self.db_host,
                operation="initialization",
            ) from e

    async def _test_connection(self):
        async with self.get_session() as session:
            result = await session.execute(text("SELECT 1"))
            if result.scalar() != 1:
                raise StoreUnavailableException(
                    message="Connection test returned unexpected value",
                    db_host=self.db_host,
                    operation="test",
                )

        self._connection_tested = True

    async def _cleanup_failed_initialization(self):
        """Limpia recursos en caso de fallo de inicialización."""
        if self.engine:
            await self.engine.dispose()
        self.engine = None
        self.session_factory = None
        self._connection_tested = False

    def get_session(self) -> AsyncSession:
        """
        Obtiene una nueva sesión de base de datos.

        Returns:
            AsyncSession: Sesión asíncrona de SQLAlchemy

        Raises:
            StoreUnavailableException: Si no hay conexión inicializada
        """
        if self.session_factory is None:
            raise StoreUnavailableException(
                message="Database connection not initialized. Call initialize() first.",
                db_host=self.db_host,
                operation="session_creation",
            )

        return self.session_factory()

    def is_initialized(self) -> bool:
        """
        Verifica si la conexión está inicializada.

        Returns:
            bool: True si está inicializada y probada
        """
        return self.engine is not None and self.session_factory is not None and self._connection_tested

    async def test_connection(self) -> bool:
        """
        Prueba la conexión a la base de datos de forma no destructiva.

        Returns:
            bool: True si la conexión funciona correctamente
        """
        if not self.is_initialized():
            return False

        try:
            async with self.get_session() as session:
                result = await session.execute(text("SELECT 1"))
                return result.scalar() == 1
        except Exception as e:
            logger.error(f"Connection test failed: {e}")
            return False

    async def close(self):
        """
        Cierra la conexión y libera el pool.
        """
        logger.info("Closing database connection...")

        if self.engine:
            await self.engine.dispose()
            logger.info("Database engine disposed")

        self.engine = None
        self.session_factory = None
        self._connection_tested = False

    async def health_check(self) -> dict:
        """
        Realiza un health check de la conexión.

        Returns:
            dict: Estado de salud de la conexión
        """
        start_time = time.time()
        test_passed = await self.test_connection()

        return {
            "status": "healthy" if test_passed else "unhealthy",
            "connection_initialized": self.is_initialized(),
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
        }

    def __repr__(self) -> str:
        return f"ConnDB(initialized={self.is_initialized()}, host={self.db_host})"
