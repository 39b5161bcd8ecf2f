"""Exception hierarchy raised by the shop handlers.

Every error carries a message that is safe to send to the client and an
HTTP status code used by the app-level exception handler in ``main``:

- NotFoundError: entity absent, or present but owned by somebody else
- ConflictError: uniqueness violation (duplicate email)
- ForbiddenError: role check failed
- UnauthorizedError: bad credentials or missing token
- InvalidOperationError: request is well formed but cannot be applied
"""
from __future__ import annotations

import structlog

logger = structlog.get_logger(__name__)


class ShopError(Exception):
    """Base exception for the shop API.

    Args:
        user_message: Safe message to display to the client.
        internal_details: Optional technical details, logged but never returned.
    """

    status_code = 500

    def __init__(self, user_message: str, *, internal_details: str | None = None) -> None:
        super().__init__(user_message)
        self.user_message = user_message

        if internal_details:
            logger.error(
                "shop_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class NotFoundError(ShopError):
    status_code = 404


class ConflictError(ShopError):
    status_code = 409


class ForbiddenError(ShopError):
    status_code = 403


class UnauthorizedError(ShopError):
    status_code = 401


class InvalidOperationError(ShopError):
    """Raised for requests that pass schema validation but violate a business rule.

    Examples: adding an inactive product to the cart, or checking out an empty cart.
    """

    status_code = 400
