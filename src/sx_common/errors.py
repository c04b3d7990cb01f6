"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth
  3xxx: Listing
  4xxx: Order
  9xxx: System

Every error carries an ErrorKind so clients can branch without parsing messages.
"""

from src.sx_common.enums import ErrorKind


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
        kind: ErrorKind = ErrorKind.INTERNAL_FAILURE,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.kind = kind
        super().__init__(message)


# --- 1xxx: Auth ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired token", 401, ErrorKind.FORBIDDEN)


# --- 3xxx: Listing ---

class ListingNotFoundError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(3001, f"Listing not found: {listing_id}", 404, ErrorKind.NOT_FOUND)


class ListingForbiddenError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(
            3002,
            f"Only the seller can withdraw orders on listing {listing_id}",
            403,
            ErrorKind.FORBIDDEN,
        )


# --- 4xxx: Order ---

class RequestValidationFailed(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4000, f"Invalid request: {detail}", 400, ErrorKind.VALIDATION)


class PriceOutOfRangeError(AppError):
    def __init__(self, price: object) -> None:
        super().__init__(
            4001,
            f"Price must be greater than 0 and at most 1,000,000, got {price}",
            400,
            ErrorKind.VALIDATION,
        )


class SelfTradeError(AppError):
    def __init__(self) -> None:
        super().__init__(4003, "Cannot bid on your own listing", 400, ErrorKind.INVALID_OPERATION)


class OrderNotFoundError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4004, f"Order not found: {order_id}", 404, ErrorKind.NOT_FOUND)


class DuplicateOrderError(AppError):
    def __init__(self, side: str, price: object) -> None:
        super().__init__(
            4005,
            f"You already have an active {side.lower()} at {price} on this listing",
            409,
            ErrorKind.CONFLICT,
        )


class OrderNotCancellableError(AppError):
    def __init__(self, order_id: str, state: str) -> None:
        super().__init__(
            4006,
            f"Order {order_id} is {state}; only active orders can be cancelled",
            400,
            ErrorKind.INVALID_OPERATION,
        )


class OrderForbiddenError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(
            4007, f"Order {order_id} belongs to another user", 403, ErrorKind.FORBIDDEN
        )


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Too many requests, slow down", 429, ErrorKind.RATE_LIMITED)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500, ErrorKind.INTERNAL_FAILURE)
