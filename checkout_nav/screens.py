"""Checkout screen identifiers, titles and validation steps."""
from __future__ import annotations

from enum import Enum

DELIVERY_INFO = "delivery_info"
ORDER_SUMMARY = "order_summary"
PAYMENT_METHOD = "payment_method"
PAYMENT_PROCESSING = "payment_processing"
PAYMENT_RESULT = "payment_result"

CHECKOUT_FLOW = (DELIVERY_INFO, ORDER_SUMMARY, PAYMENT_METHOD, PAYMENT_PROCESSING)

# Screen ID to human-readable title mapping
SCREEN_TITLES = {
    "cart": "Cart",
    DELIVERY_INFO: "Delivery Information",
    ORDER_SUMMARY: "Order Summary",
    PAYMENT_METHOD: "Payment Method",
    PAYMENT_PROCESSING: "Payment Processing",
    PAYMENT_RESULT: "Payment Result",
}


class ValidationStep(str, Enum):
    """Named checkpoints of the checkout flow."""

    DELIVERY_INFO = "delivery_info"
    ORDER_SUMMARY = "order_summary"
    PAYMENT_METHOD_SELECTION = "payment_method_selection"
    PAYMENT_PROCESSING = "payment_processing"
    PAYMENT_COMPLETION = "payment_completion"

    @property
    def description(self) -> str:
        return _STEP_DESCRIPTIONS[self]


_STEP_DESCRIPTIONS = {
    ValidationStep.DELIVERY_INFO: "Delivery Information Validation",
    ValidationStep.ORDER_SUMMARY: "Order Summary Validation",
    ValidationStep.PAYMENT_METHOD_SELECTION: "Payment Method Selection",
    ValidationStep.PAYMENT_PROCESSING: "Payment Processing",
    ValidationStep.PAYMENT_COMPLETION: "Payment Completion",
}

DEFAULT_MONITORED_TRANSITIONS: dict[tuple[str, str], ValidationStep] = {
    (DELIVERY_INFO, ORDER_SUMMARY): ValidationStep.DELIVERY_INFO,
    (ORDER_SUMMARY, PAYMENT_METHOD): ValidationStep.ORDER_SUMMARY,
}


def screen_title(screen_id: str | None) -> str:
    """Title for a screen id; unknown ids are title-cased ("gift_wrap" -> "Gift Wrap")."""
    if not screen_id:
        return "Checkout"
    known = SCREEN_TITLES.get(screen_id)
    if known:
        return known
    words = [w for w in str(screen_id).replace("-", "_").split("_") if w]
    return " ".join(w[:1].upper() + w[1:].lower() for w in words) or "Checkout"


# Validation step a screen produces once the user confirms it
SCREEN_STEPS: dict[str, ValidationStep] = {
    DELIVERY_INFO: ValidationStep.DELIVERY_INFO,
    ORDER_SUMMARY: ValidationStep.ORDER_SUMMARY,
    PAYMENT_METHOD: ValidationStep.PAYMENT_METHOD_SELECTION,
    PAYMENT_PROCESSING: ValidationStep.PAYMENT_PROCESSING,
}
