"""Numeric helpers shared by delivery and reporting math."""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

Number = Union[int, float]

def round_half_up(value: Number, digits: int = 0) -> Union[int, float]:
    """
    Round half away from zero for positives, matching the dashboards.

    Python's ``round`` uses banker's rounding (``round(62.5) == 62``); the
    reporting UI shows 63, so every percent and goal goes through here.

    Args:
        value: Number to round
        digits: Decimal places to keep

    Returns:
        int when ``digits`` is 0, otherwise float
    """
    if value is None or (isinstance(value, float) and not math.isfinite(value)):
        return 0
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    if digits == 0:
        return int(rounded)
    return float(rounded)

def safe_percent(part: Number, whole: Number) -> int:
    """Whole-number percent of ``part`` in ``whole``; 0 when ``whole`` is not positive."""
    if not whole or whole <= 0:
        return 0
    return round_half_up(part / whole * 100)

def compute_ctr(clicks: Optional[Number], impressions: Optional[Number]) -> Optional[float]:
    """Click-through rate in percent with two decimals, None when undefined."""
    if clicks is None or not impressions or impressions <= 0:
        return None
    return round_half_up(clicks / impressions * 100, 2)
