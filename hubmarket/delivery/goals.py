"""
Goal derivation.

Computes the expected delivery target per channel for one publication's
inventory selection in a campaign.

How a digital placement's frequency is read depends on its pricing model:
share models (cpm, cpv, cpc) buy ``currentFrequency`` percent of the monthly
impressions, everything else (flat and monthly rates) buys the whole monthly
inventory. Every other channel is sold as a count (sends, insertions, spots,
episodes) taken directly from the item's configured frequency.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, Optional

from hubmarket.utils.numbers import round_half_up
from .channels import channel_config
from .models import ChannelGoal, DeliveryGoalOverride, GoalSet, InventoryItem

DAYS_PER_MONTH = 30
DEFAULT_SHARE_PERCENT = 100
DEFAULT_FREQUENCY = 1
DEFAULT_PRICING_MODEL = "flat"

class ImpressionBasis(str, Enum):
    """How much of a publication's monthly impressions a digital buy covers."""
    SHARE = "share"
    FULL = "full"

# Pricing models missing from this table buy the full monthly inventory.
PRICING_MODEL_BASIS: Dict[str, ImpressionBasis] = {
    "cpm": ImpressionBasis.SHARE,
    "cpv": ImpressionBasis.SHARE,
    "cpc": ImpressionBasis.SHARE,
    "flat": ImpressionBasis.FULL,
    "monthly": ImpressionBasis.FULL,
}

def campaign_duration_months(start: Optional[datetime], end: Optional[datetime]) -> int:
    """
    Campaign length in whole months, minimum 1.

    Partial days count as full days and months are 30 days rounded to the
    nearest whole month.

    Args:
        start: Flight start
        end: Flight end

    Returns:
        int: Number of months, 1 when either date is missing
    """
    if not start or not end:
        return 1
    diff_days = math.ceil(abs((end - start).total_seconds()) / 86400)
    return max(1, round_half_up(diff_days / DAYS_PER_MONTH))

def pricing_model(item: InventoryItem) -> str:
    model = item.item_pricing.pricing_model if item.item_pricing else None
    return (model or DEFAULT_PRICING_MODEL).strip().lower()

def impression_basis(item: InventoryItem) -> ImpressionBasis:
    return PRICING_MODEL_BASIS.get(pricing_model(item), ImpressionBasis.FULL)

def digital_share_percent(item: InventoryItem) -> float:
    """
    Share of monthly inventory bought by a digital placement, in percent.

    Share models keep the percentage in ``currentFrequency``; older items only
    carry ``quantity``; an item with neither buys the whole inventory. For
    flat and monthly rates the frequency counts runs per month, so the share
    is always 100.
    """
    if impression_basis(item) == ImpressionBasis.FULL:
        return DEFAULT_SHARE_PERCENT
    if item.current_frequency is not None:
        return item.current_frequency
    if item.quantity is not None:
        return item.quantity
    return DEFAULT_SHARE_PERCENT

def frequency_count(item: InventoryItem) -> float:
    """Number of sends, insertions, spots or episodes bought by an offline placement."""
    if item.current_frequency is not None:
        return item.current_frequency
    if item.quantity is not None:
        return item.quantity
    return DEFAULT_FREQUENCY

def digital_goal(item: InventoryItem, months: int, override: Optional[DeliveryGoalOverride] = None) -> int:
    """Impression goal for one digital placement over the whole flight."""
    if override is not None and override.is_impression_goal():
        return int(override.goal_value)
    if not item.monthly_impressions:
        return 0
    monthly_share = round_half_up(item.monthly_impressions * digital_share_percent(item) / 100)
    return monthly_share * months

def derive_goals(
    items: Iterable[InventoryItem],
    duration_months: int,
    overrides: Optional[Dict[str, DeliveryGoalOverride]] = None
) -> GoalSet:
    """
    Accumulate per-channel goals for one publication's inventory.

    Args:
        items: Inventory items selected for the publication
        duration_months: Campaign length from ``campaign_duration_months``
        overrides: Per-placement goals keyed by item path; these win over an
            item's own ``deliveryGoal``

    Returns:
        GoalSet: Goal per channel plus the number of placements expected to report
    """
    overrides = overrides or {}
    goals = GoalSet()

    for item in items:
        if item.is_excluded:
            continue

        config = channel_config(item.channel)
        goals.total_expected_reports += 1

        channel_goal = goals.by_channel.get(config.channel)
        if channel_goal is None:
            channel_goal = ChannelGoal(
                channel=config.channel,
                goal_type=config.goal_type,
                volume_label=config.volume_label,
            )
            goals.by_channel[config.channel] = channel_goal

        channel_goal.placements += 1
        if config.is_digital:
            override = overrides.get(item.item_path) or item.delivery_goal
            channel_goal.goal += digital_goal(item, duration_months, override)
        else:
            channel_goal.goal += round_half_up(frequency_count(item))

    return goals
