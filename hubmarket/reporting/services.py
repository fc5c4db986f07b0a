"""
Reporting service for delivery dashboards.

This module shapes campaign, order and publication level reports from the
delivery reconciler and pandas aggregations over performance entries.
Nothing here writes to the database.
"""

from datetime import date, datetime, time
from typing import Callable, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from hubmarket.campaigns.store import CampaignStore
from hubmarket.config import reporting_config
from hubmarket.database import utcnow
from hubmarket.delivery.models import ChannelDelivery, OrderDelivery
from hubmarket.delivery.pacing import classify, timeline_progress
from hubmarket.delivery.reconciler import DeliveryReconciler, rollup
from hubmarket.errors import AccessDeniedError, NotFoundError
from hubmarket.orders.models import (
    ACTIVE_ORDER_STATUSES,
    REPORTING_ORDER_STATUSES,
    InsertionOrder,
    OrderStatus,
)
from hubmarket.orders.services import InsertionOrderService
from hubmarket.performance.store import PerformanceEntryStore, is_pixel_heartbeat
from hubmarket.proofs.models import ProofOfPerformance
from hubmarket.utils.cache import ReportCache
from hubmarket.utils.logging import setup_logger
from .aggregation import aggregate_performance_data, entry_record
from .schemas import (
    CampaignDailyResponse,
    CampaignSummaryResponse,
    ChannelDeliveryOut,
    ChannelMetrics,
    DailyPoint,
    DateRange,
    DeliveryProgress,
    DeliveryTotals,
    MetricTotals,
    OrderDeliveryOut,
    OrderSummaryResponse,
    PacingOut,
    PlacementMetrics,
    ProofCounts,
    PublicationDeliverySummary,
    PublicationMetrics,
    StatusBreakdown,
)

logger = setup_logger(__name__)

def channel_delivery_out(delivery: ChannelDelivery) -> ChannelDeliveryOut:
    return ChannelDeliveryOut(
        goal=delivery.goal,
        delivered=delivery.delivered,
        delivery_percent=delivery.delivery_percent,
        goal_type=delivery.goal_type.value,
        volume_label=delivery.volume_label,
    )

def order_delivery_out(delivery: OrderDelivery) -> OrderDeliveryOut:
    return OrderDeliveryOut(
        by_channel={c: channel_delivery_out(d) for c, d in delivery.by_channel.items()},
        pacing_percent=delivery.pacing_percent,
        pacing_status=delivery.pacing_status.value,
        expected_reports=delivery.expected_reports,
        reports_submitted=delivery.reports_submitted,
    )

def _status_values(statuses) -> List[str]:
    return [status.value for status in statuses]

def end_of_day(day: Optional[date]) -> Optional[datetime]:
    """Last instant of ``day``, so date filters include the whole day."""
    if day is None:
        return None
    if isinstance(day, datetime):
        day = day.date()
    return datetime.combine(day, time.max)

def start_of_day(day: Optional[date]) -> Optional[datetime]:
    if day is None:
        return None
    if isinstance(day, datetime):
        return day
    return datetime.combine(day, time.min)

class ReportingService:
    """Service for campaign, order and publication delivery reports."""

    def __init__(
        self,
        db: Session,
        orders: InsertionOrderService,
        reconciler: DeliveryReconciler,
        cache: Optional[ReportCache] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.db = db
        self.orders = orders
        self.reconciler = reconciler
        self.entries: PerformanceEntryStore = reconciler.entry_store
        self.campaigns: CampaignStore = reconciler.campaign_store
        self.cache = cache
        self.clock = clock

    # Scoping

    def _campaign_scope(self, campaign_id: str, user_id: str, operation: str):
        """
        Resolve the campaign and the publications the caller may see in it.

        Returns:
            Tuple of the campaign and a publication id list, or None when the
            caller sees every publication (admin or hub member)

        Raises:
            NotFoundError: Unknown campaign
            AccessDeniedError: Caller has no publication in the campaign
        """
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            raise NotFoundError("Campaign not found", operation, {"campaignId": campaign_id})

        permissions = self.orders.permissions
        if permissions.can_access_hub(user_id, campaign.hub_id):
            return campaign, None

        own = {str(p) for p in permissions.get_user_publications(user_id)}
        visible = sorted(own & set(campaign.publication_ids()))
        if not visible:
            raise AccessDeniedError("Access denied to this campaign", operation, {"campaignId": campaign_id})
        return campaign, visible

    def _campaign_orders(self, campaign_id: str, publications: Optional[List[str]], statuses) -> List[InsertionOrder]:
        query = self.db.query(InsertionOrder).filter(
            InsertionOrder.campaign_id == campaign_id,
            InsertionOrder.deleted_at.is_(None),
            InsertionOrder.status.in_(_status_values(statuses)),
        )
        if publications is not None:
            query = query.filter(InsertionOrder.publication_id.in_(publications))
        return query.all()

    def _scoped_entries(self, campaign_id: str, publications: Optional[List[str]], date_from=None, date_to=None):
        order_ids = None
        if publications is not None:
            order_ids = [
                order.id for order in self.db.query(InsertionOrder.id).filter(
                    InsertionOrder.campaign_id == campaign_id,
                    InsertionOrder.deleted_at.is_(None),
                    InsertionOrder.publication_id.in_(publications),
                )
            ]
        return self.entries.countable_for_campaign(
            campaign_id, order_ids=order_ids, date_from=date_from, date_to=date_to
        )

    # Campaign reports

    def campaign_summary(self, campaign_id: str, user_id: str) -> CampaignSummaryResponse:
        """
        Totals, breakdowns, delivery progress and pacing of a campaign.

        Delivery progress covers confirmed, in-production and delivered orders.
        """
        campaign, publications = self._campaign_scope(campaign_id, user_id, "campaign_summary")
        entries = self._scoped_entries(campaign_id, publications)
        records = [entry_record(entry) for entry in entries]

        totals = MetricTotals(**aggregate_performance_data(records)[0])
        by_channel = [ChannelMetrics(**row) for row in aggregate_performance_data(records, ["channel"])]
        by_publication = [
            PublicationMetrics(**row)
            for row in aggregate_performance_data(records, ["publication_id", "publication_name"])
        ]

        orders = self._campaign_orders(campaign_id, publications, REPORTING_ORDER_STATUSES)
        delivery = rollup(self.reconciler.reconcile(orders))
        progress = DeliveryProgress(
            overall_percent=delivery.overall_percent,
            total_expected_reports=delivery.total_expected_reports,
            total_reports_submitted=delivery.total_reports_submitted,
            by_channel={c: channel_delivery_out(d) for c, d in delivery.by_channel.items()},
        )

        timeline = timeline_progress(campaign.start_date, campaign.end_date, self.clock())
        pacing = PacingOut(
            status=classify(delivery.overall_percent).value,
            percent_complete=delivery.overall_percent,
            expected_percent=timeline.expected_percent,
            total_days=timeline.total_days,
            days_passed=timeline.days_passed,
            days_remaining=timeline.days_remaining,
        )

        dates = [entry.date_start for entry in entries]
        return CampaignSummaryResponse(
            campaign_id=campaign.campaign_id,
            campaign_name=campaign.name,
            date_range=DateRange(start=campaign.start_date, end=campaign.end_date),
            performance_range=DateRange(start=min(dates) if dates else None, end=max(dates) if dates else None),
            totals=totals,
            by_channel=by_channel,
            by_publication=by_publication,
            delivery_progress=progress,
            pacing=pacing,
        )

    def campaign_daily(
        self,
        campaign_id: str,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None
    ) -> CampaignDailyResponse:
        """Daily trend of a campaign; ``date_to`` includes the whole day."""
        _, publications = self._campaign_scope(campaign_id, user_id, "campaign_daily")

        cache_key = None
        if self.cache is not None and reporting_config.cache_enabled:
            scope = "all" if publications is None else ",".join(publications)
            cache_key = ReportCache.daily_key(
                campaign_id,
                date_from.isoformat() if date_from else None,
                date_to.isoformat() if date_to else None,
                scope,
            )
            cached = self.cache.get_json(cache_key)
            if cached is not None:
                return CampaignDailyResponse.model_validate(cached)

        entries = self._scoped_entries(
            campaign_id, publications, date_from=start_of_day(date_from), date_to=end_of_day(date_to)
        )
        rows = aggregate_performance_data([entry_record(e) for e in entries], time_window="daily")
        response = CampaignDailyResponse(
            campaign_id=campaign_id,
            daily=[DailyPoint(**row) for row in rows],
        )

        if cache_key is not None:
            self.cache.set_json(cache_key, response.model_dump(mode="json", by_alias=True), reporting_config.cache_ttl)
        return response

    # Order report

    def order_summary(self, order_id: str, user_id: str) -> OrderSummaryResponse:
        """Totals, per-placement breakdown, delivery and proof counts of one order."""
        order = self.orders.get_order(order_id)
        self.orders.ensure_access(order, user_id, "order_summary")

        entries = self.entries.countable_for_orders([order.id])
        placement_keys = ["item_path", "item_name", "channel"]
        records = [entry_record(entry) for entry in entries]
        reports: Dict[tuple, int] = {}
        for entry, record in zip(entries, records):
            if not is_pixel_heartbeat(entry):
                key = tuple(record[k] for k in placement_keys)
                reports[key] = reports.get(key, 0) + 1

        by_placement = [
            PlacementMetrics(**row, reports=reports.get(tuple(row[k] for k in placement_keys), 0))
            for row in aggregate_performance_data(records, placement_keys)
        ]

        delivery: OrderDelivery = self.reconciler.reconcile([order])[0]
        proof_rows = (
            self.db.query(ProofOfPerformance.verification_status, func.count(ProofOfPerformance.id))
            .filter(ProofOfPerformance.order_id == order.id, ProofOfPerformance.deleted_at.is_(None))
            .group_by(ProofOfPerformance.verification_status)
            .all()
        )
        by_status = {status: int(count) for status, count in proof_rows}

        return OrderSummaryResponse(
            order_id=order.id,
            campaign_id=order.campaign_id,
            publication_id=order.publication_id,
            publication_name=order.publication_name,
            status=order.status,
            totals=MetricTotals(**aggregate_performance_data(records)[0]),
            by_placement=by_placement,
            delivery=order_delivery_out(delivery),
            proofs=ProofCounts(total=sum(by_status.values()), by_status=by_status),
        )

    # Publication rollup

    def publication_delivery_summary(self, user_id: str, publication_id: Optional[str] = None) -> PublicationDeliverySummary:
        """
        Goal/delivered rollup across the active orders of the caller's publications.

        Raises:
            AccessDeniedError: ``publication_id`` is not accessible to the caller
        """
        publications = self.orders.accessible_publications(user_id, publication_id, "delivery_summary")
        if publications is not None and not publications:
            return PublicationDeliverySummary()

        query = self.db.query(InsertionOrder).filter(
            InsertionOrder.deleted_at.is_(None),
            InsertionOrder.status != OrderStatus.DRAFT.value,
        )
        if publications is not None:
            query = query.filter(InsertionOrder.publication_id.in_(publications))
        orders = query.all()
        active_statuses = set(_status_values(ACTIVE_ORDER_STATUSES))
        active = [order for order in orders if order.status in active_statuses]

        deliveries = self.reconciler.reconcile(active)
        delivery = rollup(deliveries)

        breakdown = StatusBreakdown()
        for order_delivery in deliveries:
            key = order_delivery.pacing_status.value
            setattr(breakdown, key, getattr(breakdown, key) + 1)

        active_ids = [order.id for order in active]
        records = [entry_record(entry) for entry in self.entries.countable_for_orders(active_ids)]
        metric_totals = aggregate_performance_data(records)[0]
        proofs = 0
        if active_ids:
            proofs = (
                self.db.query(func.count(ProofOfPerformance.id))
                .filter(ProofOfPerformance.order_id.in_(active_ids), ProofOfPerformance.deleted_at.is_(None))
                .scalar()
            ) or 0

        return PublicationDeliverySummary(
            overall_delivery_percent=delivery.overall_percent,
            total_expected_reports=delivery.total_expected_reports,
            total_reports_submitted=delivery.total_reports_submitted,
            total_orders=len(orders),
            active_orders=len(active),
            by_channel={c: channel_delivery_out(d) for c, d in delivery.by_channel.items()},
            totals=DeliveryTotals(
                reports=delivery.total_reports_submitted,
                impressions=metric_totals["impressions"],
                clicks=metric_totals["clicks"],
                insertions=metric_totals["insertions"],
                circulation=metric_totals["circulation"],
                spots_aired=metric_totals["spots_aired"],
                downloads=metric_totals["downloads"],
                proofs=int(proofs),
            ),
            status_breakdown=breakdown,
        )
