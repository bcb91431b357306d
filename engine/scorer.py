"""Move-probability scoring module."""
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence, Tuple

from config.symbols import display_symbol
from data.schemas import Direction, IndicatorValues, ScoreResult
from logic.indicators import VOLUME_WINDOW, IndicatorSnapshot, MACDValue
from utils.exceptions import ScoringError

# Component weights: volatility dominates, then momentum, then volume and gap.
VOLATILITY_WEIGHT = 40
MOMENTUM_WEIGHT = 30
VOLUME_WEIGHT = 20
GAP_WEIGHT = 10

# Saturation points: the component reaches 1.0 at these levels.
ATR_SATURATION_PCT = 0.01
VOLUME_RATIO_SATURATION = 1.5
GAP_SATURATION = 0.005


def round_half_up(value: float, digits: int = 0) -> float:
    """Round the exact binary value half away from zero (JS ``toFixed`` style)."""
    quantum = Decimal(1).scaleb(-digits)
    # + 0.0 folds negative zero into zero
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)) + 0.0


@dataclass(frozen=True)
class ComponentScores:
    """Individual score components, each in [0, 1]."""

    volatility: float
    momentum: float
    volume: float
    gap: float


class MoveScorer:
    """Maps an IndicatorSnapshot to a move probability and a direction.

    Scoring Weight Breakdown:
    - Volatility (ATR vs 1% of price): 40 pts
    - Momentum (|ROC| + |MACD histogram|): 30 pts
    - Volume (last bar vs trailing average): 20 pts
    - Gap (vs previous close): 10 pts

    The base is capped at ``base_cap``; when ROC and the MACD histogram agree
    on an up move, ``agreement_bonus`` is added up to ``bonus_cap``.
    """

    def __init__(
        self,
        base_cap: float = 90.0,
        agreement_bonus: float = 5.0,
        bonus_cap: float = 95.0,
    ) -> None:
        self.base_cap = base_cap
        self.agreement_bonus = agreement_bonus
        self.bonus_cap = bonus_cap

    @staticmethod
    def gap(last_price: float, prev_close: float) -> float:
        """Absolute fractional move from the previous close (0 without one)."""
        if not prev_close:
            return 0.0
        return abs((last_price - prev_close) / prev_close)

    @staticmethod
    def volume_ratio(volumes: Sequence[float]) -> float:
        """Last volume over the mean of the trailing window.

        Returns 0 when there is no volume history or the average is zero.
        """
        window = list(volumes)[-VOLUME_WINDOW:]
        if not window:
            return 0.0
        avg_volume = sum(window) / len(window)
        if avg_volume == 0:
            return 0.0
        return window[-1] / avg_volume

    def components(self, snapshot: IndicatorSnapshot) -> ComponentScores:
        """Compute the four clamped component scores."""
        volume_ratio = self.volume_ratio(snapshot.volumes)
        gap = self.gap(snapshot.last_price, snapshot.prev_close)

        return ComponentScores(
            volatility=min(1, snapshot.atr / (snapshot.last_price * ATR_SATURATION_PCT)),
            momentum=min(1, (abs(snapshot.roc) + abs(snapshot.macd.histogram)) / 2),
            volume=min(1, volume_ratio / VOLUME_RATIO_SATURATION),
            gap=min(1, gap / GAP_SATURATION),
        )

    def base_probability(self, components: ComponentScores) -> float:
        """Weighted sum of the components, capped at ``base_cap``."""
        return min(
            self.base_cap,
            components.volatility * VOLATILITY_WEIGHT
            + components.momentum * MOMENTUM_WEIGHT
            + components.volume * VOLUME_WEIGHT
            + components.gap * GAP_WEIGHT,
        )

    def resolve_direction(self, roc: float, histogram: float, base: float) -> Tuple[Direction, float]:
        """Apply the direction rules; returns the direction and adjusted probability."""
        if roc > 0 and histogram > 0:
            return Direction.BUY, min(self.bonus_cap, base + self.agreement_bonus)
        if roc < 0 and histogram < 0:
            return Direction.SELL, base
        if roc > 0:
            return Direction.BUY, base
        if roc < 0:
            return Direction.SELL, base
        return Direction.NEUTRAL, base

    @staticmethod
    def _check_snapshot(snapshot: IndicatorSnapshot) -> None:
        if not isinstance(snapshot.macd, MACDValue):
            raise ScoringError(f"{snapshot.symbol}: snapshot has no MACD reading")
        numbers = (
            snapshot.roc,
            snapshot.macd.histogram,
            snapshot.atr,
            snapshot.rsi,
            snapshot.last_price,
            snapshot.prev_close,
            *snapshot.volumes,
        )
        if not all(math.isfinite(n) for n in numbers):
            raise ScoringError(f"{snapshot.symbol}: snapshot contains non-finite values")
        if snapshot.last_price <= 0:
            raise ScoringError(f"{snapshot.symbol}: last price must be positive")

    def calculate(self, snapshot: IndicatorSnapshot) -> ScoreResult:
        """Score a snapshot.

        Args:
            snapshot: Latest indicator readings for one symbol

        Returns:
            ScoreResult with the integer probability, direction and rounded
            indicator values

        Raises:
            ScoringError: If the snapshot is malformed
        """
        self._check_snapshot(snapshot)

        components = self.components(snapshot)
        base = self.base_probability(components)
        direction, probability = self.resolve_direction(
            snapshot.roc, snapshot.macd.histogram, base
        )

        last_price = snapshot.last_price
        prev_close = snapshot.prev_close
        change = (last_price - prev_close) / prev_close * 100 if prev_close else 0.0

        return ScoreResult(
            symbol=display_symbol(snapshot.symbol),
            price=last_price,
            change=round_half_up(change, 2),
            volatility=round_half_up(snapshot.atr / last_price * 100, 2),
            probability=int(round_half_up(probability)),
            direction=direction,
            indicators=IndicatorValues(
                roc=round_half_up(snapshot.roc, 2),
                macd=round_half_up(snapshot.macd.histogram, 2),
                atr=round_half_up(snapshot.atr, 2),
                rsi=round_half_up(snapshot.rsi, 1),
                volume_ratio=round_half_up(self.volume_ratio(snapshot.volumes), 2),
            ),
        )
