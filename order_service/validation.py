"""Shape checks for incoming order documents.

One parse per payload: the key comes out of the same pass that validates
the document, and the original bytes are kept untouched.
"""

from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError

from .errors import (
    MalformedDocument,
    MissingDelivery,
    MissingItems,
    MissingKey,
    MissingPayment,
    OrderValidationError,
)
from .models import Order, OrderKey, ValidatedOrder

# Rule order matters: the first failing field decides the error.
_FIELD_RULES = (
    ("order_uid", MissingKey, "missing or invalid order_uid"),
    ("delivery", MissingDelivery, "missing or invalid delivery field"),
    ("payment", MissingPayment, "missing or invalid payment field"),
    ("items", MissingItems, "missing or empty items array"),
)


@dataclass(frozen=True)
class ValidationOutcome:
    order: Optional[ValidatedOrder] = None
    error: Optional[OrderValidationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _first_failure(exc: ValidationError) -> OrderValidationError:
    failed = set()
    for error in exc.errors():
        loc = error.get("loc") or ()
        if not loc:
            return MalformedDocument(f"invalid JSON: {error.get('msg')}")
        failed.add(loc[0])
    for field, error_cls, message in _FIELD_RULES:
        if field in failed:
            return error_cls(message)
    return MalformedDocument(str(exc))


def validate_order(payload: bytes) -> ValidatedOrder:
    """Validate a raw order payload, raising OrderValidationError on failure."""
    try:
        order = Order.model_validate_json(payload)
    except ValidationError as exc:
        raise _first_failure(exc) from exc
    return ValidatedOrder(order_uid=order.order_uid, payload=bytes(payload))


def check_order(payload: bytes) -> ValidationOutcome:
    try:
        return ValidationOutcome(order=validate_order(payload))
    except OrderValidationError as exc:
        return ValidationOutcome(error=exc)


def extract_key(payload: bytes) -> str:
    """Return order_uid from a payload, checking only that it parses and has a key."""
    try:
        return OrderKey.model_validate_json(payload).order_uid
    except ValidationError as exc:
        raise _first_failure(exc) from exc
