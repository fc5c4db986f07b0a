"""Tests for delivery reconciliation."""

from datetime import datetime

import pytest

from hubmarket.delivery.channels import GoalType, channel_config
from hubmarket.delivery.goals import derive_goals
from hubmarket.delivery.models import ChannelActivity, ChannelGoal, GoalSet, InventoryItem, OrderActivity
from hubmarket.delivery.pacing import PacingStatus, display_percent
from hubmarket.delivery.reconciler import (
    DeliveryReconciler,
    average_percent,
    delivered_amount,
    reconcile_order,
    rollup,
)
from hubmarket.performance.store import PerformanceEntryStore

def goal_set(expected_reports=1, **goals):
    by_channel = {}
    for channel, goal in goals.items():
        config = channel_config(channel)
        by_channel[channel] = ChannelGoal(
            channel=channel,
            goal=goal,
            goal_type=config.goal_type,
            volume_label=config.volume_label,
            placements=1,
        )
    return GoalSet(by_channel=by_channel, total_expected_reports=expected_reports)

def reconcile(goals, activity, order_id="order-1"):
    return reconcile_order(order_id, "camp-1", "101", "confirmed", goals, activity)

class TestDeliveredAmount:
    """Test cases for delivered_amount."""

    def test_digital_counts_impressions(self):
        activity = ChannelActivity(report_count=2, impressions=5000, clicks=10)
        assert delivered_amount("website", activity) == 5000

    def test_newsletter_counts_sends(self):
        activity = ChannelActivity(report_count=9)
        assert delivered_amount("newsletter", activity, newsletter_sends=3) == 3

    def test_other_channels_count_reports(self):
        assert delivered_amount("print", ChannelActivity(report_count=3)) == 3

    def test_no_activity(self):
        assert delivered_amount("website", None) == 0
        assert delivered_amount("radio", None) == 0

class TestReconcileOrder:
    """Test cases for reconcile_order."""

    def test_print_order_behind(self):
        delivery = reconcile(goal_set(print=4), OrderActivity(channels={"print": ChannelActivity(report_count=3)}))
        channel = delivery.by_channel["print"]
        assert (channel.goal, channel.delivered, channel.delivery_percent) == (4, 3, 75)
        assert channel.volume_label == "Insertions"
        assert delivery.pacing_percent == 75
        assert delivery.pacing_status == PacingStatus.BEHIND
        assert delivery.reports_submitted == 3

    def test_digital_order_ahead(self):
        activity = OrderActivity(channels={"website": ChannelActivity(report_count=4, impressions=120000, clicks=600)})
        delivery = reconcile(goal_set(website=100000), activity)
        assert delivery.by_channel["website"].delivery_percent == 120
        assert delivery.by_channel["website"].goal_type == GoalType.IMPRESSIONS
        assert delivery.pacing_status == PacingStatus.AHEAD
        assert delivery.impressions == 120000
        assert delivery.clicks == 600

    def test_overdelivery_is_not_clamped(self):
        activity = OrderActivity(channels={"newsletter": ChannelActivity(report_count=5)}, newsletter_sends=3)
        delivery = reconcile(goal_set(newsletter=2), activity)
        assert delivery.by_channel["newsletter"].delivered == 3
        assert delivery.by_channel["newsletter"].delivery_percent == 150

    def test_zero_goal_yields_zero_percent(self):
        activity = OrderActivity(channels={"website": ChannelActivity(impressions=500)})
        delivery = reconcile(goal_set(website=0), activity)
        assert delivery.by_channel["website"].delivery_percent == 0
        assert delivery.pacing_status == PacingStatus.AT_RISK

    def test_pacing_is_mean_of_channel_percents(self):
        activity = OrderActivity(channels={
            "print": ChannelActivity(report_count=1),
            "radio": ChannelActivity(report_count=1),
        })
        delivery = reconcile(goal_set(expected_reports=2, print=1, radio=2), activity)
        # (100 + 50) / 2
        assert delivery.pacing_percent == 75

    def test_activity_without_goal_still_counts_reports(self):
        activity = OrderActivity(channels={
            "print": ChannelActivity(report_count=1),
            "podcast": ChannelActivity(report_count=2),
        })
        delivery = reconcile(goal_set(print=1), activity)
        assert list(delivery.by_channel) == ["print"]
        assert delivery.reports_submitted == 3

    def test_no_goals(self):
        delivery = reconcile(GoalSet(), OrderActivity())
        assert delivery.by_channel == {}
        assert delivery.pacing_percent == 0

class TestRollup:
    """Test cases for rollup."""

    def test_percent_is_recomputed_from_sums(self):
        small = reconcile(goal_set(print=1), OrderActivity(channels={"print": ChannelActivity(report_count=1)}), "a")
        large = reconcile(goal_set(print=9), OrderActivity(channels={"print": ChannelActivity(report_count=0)}), "b")
        result = rollup([small, large])
        assert result.by_channel["print"].goal == 10
        assert result.by_channel["print"].delivered == 1
        assert result.by_channel["print"].delivery_percent == 10
        assert result.overall_percent == 10
        assert [o.order_id for o in result.orders] == ["a", "b"]

    def test_overall_is_mean_of_rolled_up_channels(self):
        first = reconcile(
            goal_set(expected_reports=2, print=2, website=1000),
            OrderActivity(channels={
                "print": ChannelActivity(report_count=2),
                "website": ChannelActivity(report_count=1, impressions=500, clicks=5),
            }),
            "a",
        )
        second = reconcile(goal_set(print=2), OrderActivity(), "b")
        result = rollup([first, second])
        assert result.by_channel["print"].delivery_percent == 50
        assert result.by_channel["website"].delivery_percent == 50
        assert result.overall_percent == 50
        assert result.total_expected_reports == 3
        assert result.total_reports_submitted == 3
        assert result.impressions == 500
        assert result.clicks == 5

    def test_empty(self):
        result = rollup([])
        assert result.overall_percent == 0
        assert result.orders == []

@pytest.mark.parametrize("percents,expected", [([], 0), ([75], 75), ([62, 63], 63), ([100, 50, 0], 50)])
def test_average_percent(percents, expected):
    assert average_percent(percents) == expected

@pytest.mark.parametrize("channel", ["website", "streaming", "newsletter", "podcast", "radio", "print", "events"])
def test_goal_and_delivery_share_a_unit(channel):
    goals = derive_goals([InventoryItem.model_validate({"itemPath": "x", "channel": channel})], 1)
    delivery = reconcile(goals, OrderActivity())
    config = channel_config(channel)
    assert goals.by_channel[channel].volume_label == config.volume_label
    assert delivery.by_channel[channel].volume_label == config.volume_label
    assert delivery.by_channel[channel].goal_type == config.goal_type

class TestDeliveryReconciler:
    """Test cases for DeliveryReconciler against stored orders and entries."""

    @pytest.fixture
    def reconciler(self, db, campaign_store):
        return DeliveryReconciler(PerformanceEntryStore(db), campaign_store)

    def test_newsletter_over_delivery(self, reconciler, make_campaign, make_order, make_entry):
        make_campaign(inventory={"101": [{"itemPath": "nl/weekly", "channel": "newsletter", "currentFrequency": 2}]})
        order = make_order()
        for day in (1, 8, 15):
            make_entry(order, channel="newsletter", item_path="nl/weekly", date_start=datetime(2024, 3, day, 7, 0))

        delivery = reconciler.reconcile([order])[0]

        assert delivery.by_channel["newsletter"].goal == 2
        assert delivery.by_channel["newsletter"].delivered == 3
        assert delivery.by_channel["newsletter"].delivery_percent == 150
        assert display_percent(delivery.by_channel["newsletter"].delivery_percent) == 100

    def test_digital_two_month_campaign(self, reconciler, make_campaign, make_order, make_entry):
        make_campaign(
            inventory={"101": [{
                "itemPath": "web/a",
                "channel": "website",
                "monthlyImpressions": 100000,
                "currentFrequency": 50,
                "itemPricing": {"pricingModel": "cpm"},
            }]},
            start=datetime(2024, 1, 1),
            end=datetime(2024, 3, 1),
        )
        order = make_order()
        make_entry(order, channel="website", item_path="web/a", impressions=70000)
        make_entry(order, channel="website", item_path="web/a", impressions=50000)

        delivery = reconciler.reconcile([order])[0]

        assert delivery.by_channel["website"].goal == 100000
        assert delivery.by_channel["website"].delivery_percent == 120
        assert delivery.pacing_status == PacingStatus.AHEAD

    def test_order_goal_override(self, reconciler, make_campaign, make_order):
        make_campaign(inventory={"101": [{"itemPath": "web/a", "channel": "website", "monthlyImpressions": 100000}]})
        order = make_order(delivery_goals={"web/a": {"goalType": "impressions", "goalValue": 7500}})

        assert reconciler.reconcile([order])[0].by_channel["website"].goal == 7500

    def test_missing_campaign_yields_no_goals(self, reconciler, make_order):
        order = make_order(campaign_id="gone")
        delivery = reconciler.reconcile([order])[0]
        assert delivery.by_channel == {}
        assert delivery.expected_reports == 0

    def test_no_orders(self, reconciler):
        assert reconciler.reconcile([]) == []
