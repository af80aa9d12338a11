"""Exception hierarchy for the order service.

Validation and persistence errors are recoverable: the ingestion pipeline
logs them and keeps consuming. Not-found is an expected outcome, not a fault.
"""

from typing import Optional


class OrderServiceError(Exception):
    """Base exception for all order service errors."""

    code = "ORDER_SERVICE_ERROR"

    def __init__(self, message: str, order_uid: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.order_uid = order_uid


class OrderValidationError(OrderServiceError):
    code = "VALIDATION_ERROR"


class MalformedDocument(OrderValidationError):
    code = "MALFORMED_DOCUMENT"


class MissingKey(OrderValidationError):
    code = "MISSING_KEY"


class MissingDelivery(OrderValidationError):
    code = "MISSING_DELIVERY"


class MissingPayment(OrderValidationError):
    code = "MISSING_PAYMENT"


class MissingItems(OrderValidationError):
    code = "MISSING_ITEMS"


class InvalidOrderKey(OrderServiceError):
    """Empty or missing order id on a read request."""

    code = "INVALID_ORDER_KEY"


class PersistenceError(OrderServiceError):
    """Store unreachable or write rejected."""

    code = "PERSISTENCE_ERROR"


class OrderNotFoundError(OrderServiceError):
    code = "ORDER_NOT_FOUND"


class StartupDegradation(OrderServiceError):
    """Bootstrap could not fully warm or seed the cache."""

    code = "STARTUP_DEGRADED"
