"""Engine package for scoring and scan orchestration."""
from .scanner import SymbolScanner
from .scorer import MoveScorer

__all__ = ["MoveScorer", "SymbolScanner"]
