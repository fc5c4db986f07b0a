"""Tests for performance entry aggregation."""

from datetime import datetime

import pytest

from hubmarket.performance.store import PerformanceEntryStore, is_pixel_heartbeat
from hubmarket.tests.factories import OTHER_PUB_ID

@pytest.fixture
def store(db):
    return PerformanceEntryStore(db)

@pytest.fixture
def order(make_order):
    return make_order()

class TestAggregateByOrderChannel:
    """Test cases for aggregate_by_order_channel."""

    def test_counts_reports_and_sums_metrics(self, store, order, make_entry):
        make_entry(order, channel="website", item_path="web/a", impressions=1000, clicks=10)
        make_entry(order, channel="website", item_path="web/a", impressions=500, clicks=5)
        make_entry(order, channel="print")

        result = store.aggregate_by_order_channel([order.id])[order.id]
        assert result["website"].report_count == 2
        assert result["website"].impressions == 1500
        assert result["website"].clicks == 15
        assert result["print"].report_count == 1
        assert result["print"].impressions == 0

    def test_channel_grouping_ignores_case(self, store, order, make_entry):
        make_entry(order, channel="Print")
        make_entry(order, channel="print")
        make_entry(order, channel="PRINT")

        result = store.aggregate_by_order_channel([order.id])[order.id]
        assert list(result) == ["print"]
        assert result["print"].report_count == 3

    @pytest.mark.parametrize("item_name", [None, "", "tracking-pixel"])
    def test_pixel_heartbeats_are_not_reports(self, store, order, make_entry, item_name):
        make_entry(order, channel="website", item_path="web/a", source="automated", item_name=item_name, impressions=300)
        make_entry(order, channel="website", item_path="web/a", source="automated", item_name="leaderboard", impressions=200)

        result = store.aggregate_by_order_channel([order.id])[order.id]
        assert result["website"].report_count == 1
        assert result["website"].impressions == 500

    def test_manual_entry_without_name_is_a_report(self, store, order, make_entry):
        make_entry(order, item_name=None, source="manual")
        assert store.aggregate_by_order_channel([order.id])[order.id]["print"].report_count == 1

    @pytest.mark.parametrize("flag", ["bad_pixel", "invalid_orderId", "invalid_traffic"])
    def test_flagged_entries_are_excluded(self, store, order, make_entry, flag):
        make_entry(order, channel="website", item_path="web/a", impressions=100)
        make_entry(order, channel="website", item_path="web/a", impressions=900, validation_status=flag)

        result = store.aggregate_by_order_channel([order.id])[order.id]
        assert result["website"].report_count == 1
        assert result["website"].impressions == 100

    def test_ok_status_is_counted(self, store, order, make_entry):
        make_entry(order, validation_status="ok")
        assert store.aggregate_by_order_channel([order.id])[order.id]["print"].report_count == 1

    def test_soft_deleted_entries_are_excluded(self, store, db, order, make_entry):
        make_entry(order)
        deleted = make_entry(order)
        deleted.soft_delete()
        db.commit()

        assert store.aggregate_by_order_channel([order.id])[order.id]["print"].report_count == 1

    def test_groups_by_order(self, store, make_order, make_entry):
        first = make_order()
        second = make_order(publication_id=OTHER_PUB_ID)
        make_entry(first)
        make_entry(second)
        make_entry(second)

        result = store.aggregate_by_order_channel([first.id, second.id])
        assert result[first.id]["print"].report_count == 1
        assert result[second.id]["print"].report_count == 2

    def test_no_orders(self, store):
        assert store.aggregate_by_order_channel([]) == {}

class TestNewsletterSends:
    """Test cases for newsletter_sends."""

    def test_same_day_counts_once(self, store, order, make_entry):
        make_entry(order, channel="newsletter", item_path="nl/weekly", date_start=datetime(2024, 3, 1, 8, 0))
        make_entry(order, channel="newsletter", item_path="nl/weekly", date_start=datetime(2024, 3, 1, 17, 30))

        assert store.newsletter_sends([order.id]) == {order.id: 1}

    def test_distinct_days_count_separately(self, store, order, make_entry):
        make_entry(order, channel="newsletter", item_path="nl/weekly", date_start=datetime(2024, 3, 1, 8, 0))
        make_entry(order, channel="Newsletter", item_path="nl/weekly", date_start=datetime(2024, 3, 8, 8, 0))

        assert store.newsletter_sends([order.id]) == {order.id: 2}

    def test_days_are_summed_across_placements(self, store, order, make_entry):
        make_entry(order, channel="newsletter", item_path="nl/weekly", date_start=datetime(2024, 3, 1, 8, 0))
        make_entry(order, channel="newsletter", item_path="nl/daily", date_start=datetime(2024, 3, 1, 8, 0))

        assert store.newsletter_sends([order.id]) == {order.id: 2}

    def test_flagged_sends_are_excluded(self, store, order, make_entry):
        make_entry(order, channel="newsletter", item_path="nl/weekly", validation_status="bad_pixel")
        assert store.newsletter_sends([order.id]) == {}

class TestActivityByOrder:
    """Test cases for activity_by_order."""

    def test_combines_channels_and_sends(self, store, order, make_entry):
        make_entry(order, channel="newsletter", item_path="nl/weekly", date_start=datetime(2024, 3, 1, 8, 0))
        make_entry(order, channel="newsletter", item_path="nl/weekly", date_start=datetime(2024, 3, 1, 9, 0))

        activity = store.activity_by_order([order.id])[order.id]
        assert activity.newsletter_sends == 1
        assert activity.channels["newsletter"].report_count == 2
        assert activity.report_count == 2

    def test_orders_without_entries_are_absent(self, store, order):
        assert store.activity_by_order([order.id]) == {}

class TestList:
    """Test cases for list."""

    def test_filters_and_orders_newest_first(self, store, order, make_entry):
        older = make_entry(order, date_start=datetime(2024, 3, 1))
        newer = make_entry(order, date_start=datetime(2024, 3, 5))
        make_entry(order, channel="radio", item_path="radio/spot", date_start=datetime(2024, 3, 3))

        entries = store.list(order_id=order.id, channel="PRINT")
        assert [e.id for e in entries] == [newer.id, older.id]

    def test_flagged_entries_are_listed_unless_excluded(self, store, order, make_entry):
        make_entry(order)
        make_entry(order, validation_status="bad_pixel")

        assert len(store.list(order_id=order.id)) == 2
        assert len(store.list(order_id=order.id, include_flagged=False)) == 1

    def test_date_range(self, store, order, make_entry):
        make_entry(order, date_start=datetime(2024, 3, 1))
        inside = make_entry(order, date_start=datetime(2024, 3, 10))
        entries = store.list(order_id=order.id, date_from=datetime(2024, 3, 5), date_to=datetime(2024, 3, 31))
        assert [e.id for e in entries] == [inside.id]

def test_is_pixel_heartbeat(order, make_entry):
    assert is_pixel_heartbeat(make_entry(order, source="automated", item_name="tracking-pixel"))
    assert is_pixel_heartbeat(make_entry(order, source="automated", item_name=" "))
    assert not is_pixel_heartbeat(make_entry(order, source="automated", item_name="leaderboard"))
    assert not is_pixel_heartbeat(make_entry(order, source="import", item_name=None))
