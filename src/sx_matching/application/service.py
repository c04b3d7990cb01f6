# src/sx_matching/application/service.py
from src.sx_matching.engine.engine import MatchingEngine

_engine: MatchingEngine | None = None


def get_matching_engine() -> MatchingEngine:
    """Process-wide engine: the per-listing locks only serialize if every request shares them."""
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = MatchingEngine()
    return _engine
