"""Tests for pacing classification and flight progress."""

from datetime import datetime, timedelta

import pytest

from hubmarket.delivery.pacing import PacingStatus, classify, display_percent, timeline_progress

class TestClassify:
    """Test cases for classify."""

    @pytest.mark.parametrize("percent,status", [
        (150, PacingStatus.AHEAD),
        (110, PacingStatus.AHEAD),
        (109, PacingStatus.ON_TRACK),
        (90, PacingStatus.ON_TRACK),
        (89, PacingStatus.BEHIND),
        (70, PacingStatus.BEHIND),
        (69, PacingStatus.AT_RISK),
        (0, PacingStatus.AT_RISK),
    ])
    def test_thresholds(self, percent, status):
        assert classify(percent) == status

    def test_status_values(self):
        assert [s.value for s in PacingStatus] == ["ahead", "on_track", "behind", "at_risk"]

class TestDisplayPercent:
    """Test cases for display_percent."""

    @pytest.mark.parametrize("percent,expected", [(150, 100), (100, 100), (42, 42), (-5, 0)])
    def test_clamps(self, percent, expected):
        assert display_percent(percent) == expected

class TestTimelineProgress:
    """Test cases for timeline_progress."""

    def test_midway(self):
        start = datetime(2024, 1, 1)
        progress = timeline_progress(start, start + timedelta(days=30), start + timedelta(days=15))
        assert progress.total_days == 30
        assert progress.days_passed == 15
        assert progress.days_remaining == 15
        assert progress.expected_percent == 50

    def test_before_start_and_after_end(self):
        start = datetime(2024, 1, 1)
        end = start + timedelta(days=10)
        assert timeline_progress(start, end, start - timedelta(days=3)).expected_percent == 0
        finished = timeline_progress(start, end, end + timedelta(days=3))
        assert finished.expected_percent == 100
        assert finished.days_remaining == 0

    def test_missing_or_inverted_dates(self):
        now = datetime(2024, 1, 5)
        assert timeline_progress(None, now, now).total_days == 0
        assert timeline_progress(now, now - timedelta(days=1), now).expected_percent == 0
