"""
Payment stub

No gateway is wired in; the outcome is decided by the payment method alone.
"""
from decimal import Decimal

import structlog

import settings

logger = structlog.get_logger(__name__)


def process_payment(payment_method: str, amount: Decimal) -> bool:
    accepted = payment_method in settings.SUPPORTED_PAYMENT_METHODS
    logger.info(
        "payment_processed",
        payment_method=payment_method,
        amount=str(amount),
        accepted=accepted,
    )
    return accepted
