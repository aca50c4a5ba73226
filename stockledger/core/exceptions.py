"""
Custom Application Exceptions
"""
from typing import Any, Dict, Optional


class InventoryException(Exception):
    """Base exception for the stock ledger.

    Every mutation runs in a single unit of work that is rolled back on
    failure, so a raised error always means nothing was persisted.
    """

    status_code = 500
    nothing_changed = True

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context


class ValidationError(InventoryException):
    """Raised when quantities, statuses or references fail validation"""

    status_code = 400


class InsufficientStockError(ValidationError):
    """Raised when a strict withdrawal exceeds stock on hand"""

    def __init__(self, sku_code: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for SKU {sku_code}. "
            f"Available: {available}, Requested: {requested}",
            sku_code=sku_code,
            available=available,
            requested=requested,
        )
        self.sku_code = sku_code
        self.available = available
        self.requested = requested


class NotFoundError(InventoryException):
    """Raised when a record is missing or belongs to another company"""

    status_code = 404


class ConflictError(InventoryException):
    """Raised on unique constraint violations"""

    status_code = 409


class StorageError(InventoryException):
    """Raised when the database fails underneath an operation"""

    status_code = 500

    def __init__(
        self,
        operation: str,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[BaseException] = None,
    ):
        original_error_class = type(original_error).__name__ if original_error else None
        super().__init__(
            f"Storage failure during {operation}: {original_error_class or 'unknown error'}",
            **(context or {}),
        )
        self.operation = operation
        self.original_error_class = original_error_class
        self.original_error = original_error
