"""
Domain errors raised by the service layer.

Routers translate these into HTTP responses; services never raise
HTTPException for stock or order rules.
"""

from __future__ import annotations

from typing import Optional


class ErpError(Exception):
    """Base class for every rule violation surfaced by a service."""


class NotFoundError(ErpError):
    """Raised when an item, order or line id cannot be resolved."""


class ItemNotFoundError(NotFoundError):
    def __init__(self, item_id: int) -> None:
        super().__init__(f"Item with id {item_id} not found")
        self.item_id = item_id


class ConflictError(ErpError):
    """Raised on duplicate unique keys (SKU, PO/WO number)."""


class ConcurrentModificationError(ConflictError):
    """Raised when another transaction changed the same item first."""


class InvalidOperationError(ErpError):
    """Raised when a mutation is rejected outright, e.g. negative stock."""


class NegativeStockError(InvalidOperationError):
    def __init__(self, *, item_id: int, item_name: str, previous_stock: int, quantity_change: int) -> None:
        super().__init__(
            f"Stock adjustment for item {item_name} would result in negative stock "
            f"(current: {previous_stock}, change: {quantity_change})"
        )
        self.item_id = item_id
        self.item_name = item_name
        self.previous_stock = previous_stock
        self.quantity_change = quantity_change


class InsufficientStockError(InvalidOperationError):
    """Raised by multi-item workflows when one line cannot be consumed."""

    def __init__(self, *, item_id: int, item_name: str, available: Optional[int] = None, required: Optional[int] = None) -> None:
        message = f"Insufficient stock for item {item_name}"
        if available is not None and required is not None:
            message += f". Current: {available}, Required: {required}"
        super().__init__(message)
        self.item_id = item_id
        self.item_name = item_name
        self.available = available
        self.required = required


class InvalidStateError(ErpError):
    """Raised when a status transition is not permitted."""


class AlreadyCompletedError(ErpError):
    """
    Raised when a work order is completed a second time.

    Deliberately not an InvalidStateError: callers may treat it as a benign
    "nothing left to do" signal.
    """


def to_http_exception(exc: ErpError):
    """Map a domain error onto the HTTP status the routers respond with."""
    from fastapi import HTTPException, status

    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (ConflictError, InvalidStateError, AlreadyCompletedError)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, InvalidOperationError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(exc))
