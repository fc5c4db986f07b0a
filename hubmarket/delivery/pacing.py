"""
Pacing classification.

Thresholds are fixed for every campaign and live here so they can become
per-campaign configuration without touching the reconciler.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel

from hubmarket.utils.numbers import round_half_up

AHEAD_THRESHOLD = 110
ON_TRACK_THRESHOLD = 90
BEHIND_THRESHOLD = 70

DAY_SECONDS = 86400

class PacingStatus(str, Enum):
    """Ordered pacing buckets."""
    AHEAD = "ahead"
    ON_TRACK = "on_track"
    BEHIND = "behind"
    AT_RISK = "at_risk"

def classify(percent: float) -> PacingStatus:
    """
    Map a completion percentage to a pacing bucket.

    Args:
        percent: Delivered share of goal, may exceed 100

    Returns:
        PacingStatus: ``ahead`` from 110, ``on_track`` from 90,
        ``behind`` from 70, otherwise ``at_risk``
    """
    if percent >= AHEAD_THRESHOLD:
        return PacingStatus.AHEAD
    if percent >= ON_TRACK_THRESHOLD:
        return PacingStatus.ON_TRACK
    if percent >= BEHIND_THRESHOLD:
        return PacingStatus.BEHIND
    return PacingStatus.AT_RISK

def display_percent(percent: float) -> int:
    """Clamp a percent to 0..100 for progress bars."""
    return int(max(0, min(100, percent)))

class TimelineProgress(BaseModel):
    """Elapsed share of a campaign flight."""
    total_days: int = 0
    days_passed: int = 0
    days_remaining: int = 0
    expected_percent: int = 0

def timeline_progress(
    start: Optional[datetime],
    end: Optional[datetime],
    now: datetime
) -> TimelineProgress:
    """Days elapsed and expected completion percent for a flight."""
    if not start or not end or end <= start:
        return TimelineProgress()
    total_days = max(1, round_half_up((end - start).total_seconds() / DAY_SECONDS))
    elapsed = (min(max(now, start), end) - start).total_seconds() / DAY_SECONDS
    days_passed = min(total_days, int(elapsed))
    return TimelineProgress(
        total_days=total_days,
        days_passed=days_passed,
        days_remaining=max(0, total_days - days_passed),
        expected_percent=display_percent(round_half_up(elapsed / total_days * 100)),
    )
