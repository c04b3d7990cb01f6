"""Global enums: values must match the DB CHECK constraints exactly."""

from enum import Enum


class OrderSide(str, Enum):
    BID = "BID"
    ASK = "ASK"

    @property
    def opposite(self) -> "OrderSide":
        return OrderSide.ASK if self is OrderSide.BID else OrderSide.BID


class OrderState(str, Enum):
    """Monotonic lifecycle: ACTIVE -> MATCHED | CANCELLED, terminal states never revert."""

    ACTIVE = "ACTIVE"
    MATCHED = "MATCHED"
    CANCELLED = "CANCELLED"


class ErrorKind(str, Enum):
    """Machine-distinguishable rejection category carried by every error response."""

    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    INVALID_OPERATION = "INVALID_OPERATION"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_FAILURE = "INTERNAL_FAILURE"
