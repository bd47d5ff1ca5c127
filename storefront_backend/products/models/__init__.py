"""
PATH: products/models/__init__.py

Products models export surface.
"""

from .product import Product, ProductSku
from .stock_movement import StockMovement

__all__ = [
    "Product",
    "ProductSku",
    "StockMovement",
]
