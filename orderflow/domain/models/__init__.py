"""
Domain models for business entities.

These models represent the order aggregate and its companions.
"""

from .order import Delivery, Item, Order, Payment

__all__ = ["Order", "Delivery", "Payment", "Item"]
