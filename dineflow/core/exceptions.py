"""
Custom exceptions for the order lifecycle.

Every error carries a machine-readable ``kind`` and a ``details`` dict so the
API layer can turn it into a structured response without inspecting types.
"""


class OrderServiceError(Exception):
    """Base exception for order service errors."""

    kind = "OrderServiceError"
    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": self.kind,
            "detail": self.message,
            "context": self.details,
        }


class InvalidOrder(OrderServiceError):
    """Raised when a creation payload is rejected (e.g. no line items)."""

    kind = "InvalidOrder"
    status_code = 400


class OrderNotFound(OrderServiceError):
    """Raised when no order exists for the given id."""

    kind = "NotFound"
    status_code = 404

    def __init__(self, order_id, message=None):
        self.order_id = order_id
        if message is None:
            message = f"Order '{order_id}' not found"
        super().__init__(message, {"order_id": order_id})


class InvalidTransition(OrderServiceError):
    """Raised when a status change is not allowed from the current status."""

    kind = "InvalidTransition"
    status_code = 409

    def __init__(self, current, requested, message=None):
        self.current = current
        self.requested = requested
        if message is None:
            message = f"Cannot move from '{current}' to '{requested}'"
        super().__init__(message, {"current": current, "requested": requested})


class StoreError(OrderServiceError):
    """Raised when the persistence layer fails (duplicate id, storage down)."""

    kind = "StoreError"
    status_code = 503
