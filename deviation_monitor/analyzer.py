"""Deviation calculation and alert policy for price samples."""

import logging
import math
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviationResult:
    """Percentage change of a price against the reference price."""
    percent: float

    @property
    def is_defined(self) -> bool:
        """False for NaN or infinite deviations (e.g. zero reference price)."""
        return math.isfinite(self.percent)


@dataclass(frozen=True)
class AlertEvent:
    """Payload handed to a notifier when the threshold is reached."""
    percent: float
    current_price: float
    quantity: float
    computed_balance: float

    @classmethod
    def build(cls, percent: float, current_price: float, quantity: float) -> "AlertEvent":
        return cls(
            percent=percent,
            current_price=current_price,
            quantity=quantity,
            computed_balance=quantity * current_price,
        )


def compute_deviation_percent(current: float, previous: float) -> float:
    """
    Percentage change of ``current`` relative to ``previous``.

    (current / previous - 1) * 100

    A zero ``previous`` follows IEEE division: +inf for a positive price,
    -inf for a negative one, NaN for zero. Python raises on float division
    by zero, so that case is resolved here.
    """
    if previous == 0:
        if math.isnan(current) or current == 0:
            return math.nan
        return math.inf if current > 0 else -math.inf

    return (current / previous - 1) * 100


def should_alert(deviation_percent: float, threshold_percent: float) -> bool:
    """
    Decide whether a deviation warrants a notification.

    Undefined (NaN or infinite) deviations never alert. Otherwise the
    comparison is one-sided: alert when the deviation is at or above the
    threshold. No state is kept, so a sustained breach alerts every cycle.
    """
    if not math.isfinite(deviation_percent):
        logger.debug(f"Deviation {deviation_percent} is undefined, alert suppressed")
        return False
    return deviation_percent >= threshold_percent
