"""
Validators for incoming orders (business and format rules).
"""

from .order_validator import OrderValidator

__all__ = ["OrderValidator"]
