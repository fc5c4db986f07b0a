"""
Delivery reconciliation.

Joins derived goals with aggregated performance entries to produce
goal / delivered / percent per channel, per order and rolled up across
orders.
"""

import logging
from typing import Dict, Iterable, List, Optional

from hubmarket.utils.numbers import round_half_up, safe_percent
from .channels import channel_config, is_newsletter
from .goals import campaign_duration_months, derive_goals
from .models import (
    ChannelActivity,
    ChannelDelivery,
    DeliveryRollup,
    GoalSet,
    OrderActivity,
    OrderDelivery,
)
from .pacing import classify

logger = logging.getLogger(__name__)

def delivered_amount(channel: str, activity: Optional[ChannelActivity], newsletter_sends: int = 0) -> int:
    """
    Delivered volume of a channel in its goal unit.

    Digital channels deliver impressions, newsletters deliver sends (distinct
    days of activity per placement) and every other channel delivers reports.
    """
    config = channel_config(channel)
    if config.is_digital:
        return activity.impressions if activity else 0
    if is_newsletter(config.channel):
        return newsletter_sends
    return activity.report_count if activity else 0

def average_percent(percents: List[int]) -> int:
    """Unweighted mean of channel percents, 0 when there are none."""
    if not percents:
        return 0
    return round_half_up(sum(percents) / len(percents))

def reconcile_order(
    order_id: str,
    campaign_id: str,
    publication_id: str,
    status: str,
    goals: GoalSet,
    activity: OrderActivity
) -> OrderDelivery:
    """
    Delivery summary of one order.

    Only channels carrying a goal appear in ``by_channel``; activity in other
    channels still counts toward reports, impressions and clicks.
    """
    by_channel: Dict[str, ChannelDelivery] = {}
    for channel, goal in goals.by_channel.items():
        delivered = delivered_amount(channel, activity.channels.get(channel), activity.newsletter_sends)
        by_channel[channel] = ChannelDelivery(
            channel=channel,
            goal=goal.goal,
            delivered=delivered,
            delivery_percent=safe_percent(delivered, goal.goal),
            goal_type=goal.goal_type,
            volume_label=goal.volume_label,
        )

    pacing_percent = average_percent([delivery.delivery_percent for delivery in by_channel.values()])
    return OrderDelivery(
        order_id=order_id,
        campaign_id=campaign_id,
        publication_id=publication_id,
        status=status,
        by_channel=by_channel,
        pacing_percent=pacing_percent,
        pacing_status=classify(pacing_percent),
        expected_reports=goals.total_expected_reports,
        reports_submitted=activity.report_count,
        impressions=sum(a.impressions for a in activity.channels.values()),
        clicks=sum(a.clicks for a in activity.channels.values()),
    )

def rollup(orders: Iterable[OrderDelivery]) -> DeliveryRollup:
    """
    Sum goal and delivered per channel across orders.

    Percents are recomputed from the summed amounts, never averaged from
    per-order percents, so small placements are not over-weighted.
    """
    result = DeliveryRollup()
    sums: Dict[str, Dict[str, int]] = {}
    labels: Dict[str, ChannelDelivery] = {}

    for order in orders:
        result.orders.append(order)
        result.total_expected_reports += order.expected_reports
        result.total_reports_submitted += order.reports_submitted
        result.impressions += order.impressions
        result.clicks += order.clicks
        for channel, delivery in order.by_channel.items():
            totals = sums.setdefault(channel, {"goal": 0, "delivered": 0})
            totals["goal"] += delivery.goal
            totals["delivered"] += delivery.delivered
            labels.setdefault(channel, delivery)

    for channel, totals in sums.items():
        result.by_channel[channel] = ChannelDelivery(
            channel=channel,
            goal=totals["goal"],
            delivered=totals["delivered"],
            delivery_percent=safe_percent(totals["delivered"], totals["goal"]),
            goal_type=labels[channel].goal_type,
            volume_label=labels[channel].volume_label,
        )

    result.overall_percent = average_percent(
        [delivery.delivery_percent for delivery in result.by_channel.values()]
    )
    return result

class DeliveryReconciler:
    """Computes delivery summaries for insertion orders from stored data."""

    def __init__(self, entry_store, campaign_store):
        """
        Initialize the reconciler.

        Args:
            entry_store: PerformanceEntryStore used for grouped aggregation
            campaign_store: CampaignStore used to resolve inventory and timeline
        """
        self.entry_store = entry_store
        self.campaign_store = campaign_store

    def _derive(self, order, campaign) -> GoalSet:
        if campaign is None:
            logger.warning(f"Campaign {order.campaign_id} missing for order {order.id}")
            return GoalSet()
        months = campaign_duration_months(campaign.start_date, campaign.end_date)
        return derive_goals(
            campaign.publication_items(order.publication_id),
            months,
            order.goal_overrides(),
        )

    def reconcile(self, orders: List) -> List[OrderDelivery]:
        """
        Reconcile a batch of orders with one grouped query per aggregate.

        Args:
            orders: InsertionOrder rows, already filtered by status and deletion

        Returns:
            List[OrderDelivery]: One summary per order, in input order
        """
        if not orders:
            return []

        order_ids = [order.id for order in orders]
        campaigns = self.campaign_store.get_many({order.campaign_id for order in orders})
        activities = self.entry_store.activity_by_order(order_ids)

        deliveries = []
        for order in orders:
            goals = self._derive(order, campaigns.get(order.campaign_id))
            deliveries.append(
                reconcile_order(
                    order_id=order.id,
                    campaign_id=order.campaign_id,
                    publication_id=order.publication_id,
                    status=order.status,
                    goals=goals,
                    activity=activities.get(order.id, OrderActivity()),
                )
            )
        return deliveries
