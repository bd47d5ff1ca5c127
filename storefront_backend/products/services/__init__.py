from .inventory import (
    InsufficientStockError,
    release_stock,
    reserve_stock,
    restock_for_refund,
)

__all__ = [
    "InsufficientStockError",
    "release_stock",
    "reserve_stock",
    "restock_for_refund",
]
