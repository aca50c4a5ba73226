"""Database models"""
from .inventory import (
    IncomingInventory,
    IncomingInventoryItem,
    OutgoingInventory,
    OutgoingInventoryItem,
    PriceHistory,
    RejectedItemReport,
    Sku,
    StockMovement,
)

__all__ = [
    "IncomingInventory",
    "IncomingInventoryItem",
    "OutgoingInventory",
    "OutgoingInventoryItem",
    "PriceHistory",
    "RejectedItemReport",
    "Sku",
    "StockMovement",
]
