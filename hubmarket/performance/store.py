"""
Performance entry queries.

Every read used for delivery math excludes soft-deleted and quality-flagged
entries. Aggregations run as one grouped query over a batch of orders.
"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, case, distinct, func, or_
from sqlalchemy.orm import Session

from hubmarket.delivery.channels import NEWSLETTER_CHANNEL, normalize_channel
from hubmarket.delivery.models import ChannelActivity, OrderActivity
from .models import EntrySource, PerformanceEntry, QUALITY_FLAGS

# Item name automated tracking uses when the placement is unknown
TRACKING_PIXEL_ITEM_NAME = "tracking-pixel"

def is_pixel_heartbeat(entry: PerformanceEntry) -> bool:
    """Automated entry without a real placement name; not a report."""
    if entry.source != EntrySource.AUTOMATED.value:
        return False
    name = (entry.item_name or "").strip()
    return not name or name == TRACKING_PIXEL_ITEM_NAME

def _heartbeat_clause():
    return and_(
        PerformanceEntry.source == EntrySource.AUTOMATED.value,
        or_(
            PerformanceEntry.item_name.is_(None),
            func.trim(PerformanceEntry.item_name) == "",
            func.trim(PerformanceEntry.item_name) == TRACKING_PIXEL_ITEM_NAME,
        ),
    )

class PerformanceEntryStore:
    """Query layer over ``performance_entries``."""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def not_deleted():
        return PerformanceEntry.deleted_at.is_(None)

    @staticmethod
    def quality_ok():
        return or_(
            PerformanceEntry.validation_status.is_(None),
            PerformanceEntry.validation_status.notin_(sorted(QUALITY_FLAGS)),
        )

    def _countable(self):
        return self.db.query(PerformanceEntry).filter(self.not_deleted(), self.quality_ok())

    def get(self, entry_id: str) -> Optional[PerformanceEntry]:
        return (
            self.db.query(PerformanceEntry)
            .filter(PerformanceEntry.id == entry_id, self.not_deleted())
            .first()
        )

    def add(self, entry: PerformanceEntry) -> PerformanceEntry:
        self.db.add(entry)
        self.db.flush()
        return entry

    def list(
        self,
        order_id: Optional[str] = None,
        campaign_id: Optional[str] = None,
        publication_ids: Optional[Iterable[str]] = None,
        channel: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        include_flagged: bool = True,
        limit: Optional[int] = None,
    ) -> List[PerformanceEntry]:
        """Non-deleted entries matching the filters, newest first."""
        query = self.db.query(PerformanceEntry).filter(self.not_deleted())
        if not include_flagged:
            query = query.filter(self.quality_ok())
        if order_id:
            query = query.filter(PerformanceEntry.order_id == order_id)
        if campaign_id:
            query = query.filter(PerformanceEntry.campaign_id == campaign_id)
        if publication_ids is not None:
            query = query.filter(PerformanceEntry.publication_id.in_([str(p) for p in publication_ids]))
        if channel:
            query = query.filter(func.lower(PerformanceEntry.channel) == channel.lower())
        if date_from:
            query = query.filter(PerformanceEntry.date_start >= date_from)
        if date_to:
            query = query.filter(PerformanceEntry.date_start <= date_to)
        query = query.order_by(PerformanceEntry.date_start.desc(), PerformanceEntry.entered_at.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def countable_for_campaign(
        self,
        campaign_id: str,
        order_ids: Optional[Iterable[str]] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> List[PerformanceEntry]:
        """Quality-ok entries of a campaign, optionally limited to some orders."""
        query = self._countable().filter(PerformanceEntry.campaign_id == campaign_id)
        if order_ids is not None:
            query = query.filter(PerformanceEntry.order_id.in_(list(order_ids)))
        if date_from:
            query = query.filter(PerformanceEntry.date_start >= date_from)
        if date_to:
            query = query.filter(PerformanceEntry.date_start <= date_to)
        return query.order_by(PerformanceEntry.date_start).all()

    def countable_for_orders(self, order_ids: Iterable[str]) -> List[PerformanceEntry]:
        ids = list(order_ids)
        if not ids:
            return []
        return self._countable().filter(PerformanceEntry.order_id.in_(ids)).all()

    def aggregate_by_order_channel(self, order_ids: Iterable[str]) -> Dict[str, Dict[str, ChannelActivity]]:
        """
        Report count, impressions and clicks per (order, lowercased channel).

        Automated pixel heartbeats add impressions and clicks but are not
        counted as reports.

        Args:
            order_ids: Orders to aggregate

        Returns:
            Dict[str, Dict[str, ChannelActivity]]: order id -> channel -> activity
        """
        ids = list(order_ids)
        if not ids:
            return {}

        channel_key = func.lower(PerformanceEntry.channel)
        rows = (
            self.db.query(
                PerformanceEntry.order_id.label("order_id"),
                channel_key.label("channel"),
                func.sum(case((_heartbeat_clause(), 0), else_=1)).label("report_count"),
                func.coalesce(func.sum(PerformanceEntry.impressions), 0).label("impressions"),
                func.coalesce(func.sum(PerformanceEntry.clicks), 0).label("clicks"),
            )
            .filter(PerformanceEntry.order_id.in_(ids), self.not_deleted(), self.quality_ok())
            .group_by(PerformanceEntry.order_id, channel_key)
            .all()
        )

        result: Dict[str, Dict[str, ChannelActivity]] = defaultdict(dict)
        for row in rows:
            channel = normalize_channel(row.channel)
            current = result[row.order_id].get(channel, ChannelActivity())
            result[row.order_id][channel] = ChannelActivity(
                report_count=current.report_count + int(row.report_count or 0),
                impressions=current.impressions + int(row.impressions or 0),
                clicks=current.clicks + int(row.clicks or 0),
            )
        return dict(result)

    def newsletter_sends(self, order_ids: Iterable[str]) -> Dict[str, int]:
        """
        Sends per order: distinct UTC days of activity per placement, summed.

        Several tracked rows for the same placement on the same day are one send.
        """
        ids = list(order_ids)
        if not ids:
            return {}

        day = func.date(PerformanceEntry.date_start)
        rows = (
            self.db.query(
                PerformanceEntry.order_id.label("order_id"),
                PerformanceEntry.item_path.label("item_path"),
                func.count(distinct(day)).label("days"),
            )
            .filter(
                PerformanceEntry.order_id.in_(ids),
                func.lower(func.trim(PerformanceEntry.channel)) == NEWSLETTER_CHANNEL,
                self.not_deleted(),
                self.quality_ok(),
            )
            .group_by(PerformanceEntry.order_id, PerformanceEntry.item_path)
            .all()
        )

        sends: Dict[str, int] = defaultdict(int)
        for row in rows:
            sends[row.order_id] += int(row.days or 0)
        return dict(sends)

    def activity_by_order(self, order_ids: Iterable[str]) -> Dict[str, OrderActivity]:
        """Combined channel aggregates and newsletter sends per order."""
        ids = list(order_ids)
        channels = self.aggregate_by_order_channel(ids)
        sends = self.newsletter_sends(ids)
        return {
            order_id: OrderActivity(
                channels=channels.get(order_id, {}),
                newsletter_sends=sends.get(order_id, 0),
            )
            for order_id in set(channels) | set(sends)
        }
