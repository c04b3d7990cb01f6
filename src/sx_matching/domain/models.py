from dataclasses import dataclass

from src.sx_order.domain.models import Order
from src.sx_trade.domain.models import Trade


@dataclass
class MatchOutcome:
    """Result of one bid/ask submission."""

    order: Order
    matched: bool
    trade: Trade | None = None
