"""
Módulo de acceso a la base de datos de pedidos.

Separación de responsabilidades:

- ConnDB: Gestión exclusiva de conexiones
- SQLOrderRepository: Persistencia del agregado Order
- InMemoryOrderRepository: Misma interfaz sin base de datos
"""

from orderflow.db.connection import ConnDB
from orderflow.db.memory_repository import InMemoryOrderRepository
from orderflow.db.order_repository import SQLOrderRepository
from orderflow.db.schema import create_schema, metadata

__all__ = [
    "ConnDB",
    "SQLOrderRepository",
    "InMemoryOrderRepository",
    "create_schema",
    "metadata",
]
