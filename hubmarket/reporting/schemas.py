"""Response schemas for reporting endpoints."""

from datetime import datetime
from typing import Dict, List, Optional
from pydantic import Field

from hubmarket.schemas import ApiModel

class MetricTotals(ApiModel):
    """Summed metrics of a set of performance entries."""
    impressions: int = 0
    clicks: int = 0
    ctr: Optional[float] = None
    reach: int = 0
    insertions: int = 0
    spots_aired: int = 0
    downloads: int = 0
    circulation: int = 0
    posts: int = 0
    units: int = 0
    entries: int = 0

class ChannelMetrics(MetricTotals):
    channel: str

class PublicationMetrics(MetricTotals):
    publication_id: str
    publication_name: Optional[str] = None

class PlacementMetrics(MetricTotals):
    item_path: str
    item_name: Optional[str] = None
    channel: str
    reports: int = 0

class DailyPoint(ApiModel):
    date: str
    impressions: int = 0
    clicks: int = 0
    ctr: Optional[float] = None
    reach: int = 0
    units: int = 0
    entries: int = 0

class ChannelDeliveryOut(ApiModel):
    goal: int
    delivered: int
    delivery_percent: int
    goal_type: str
    volume_label: str

class DeliveryProgress(ApiModel):
    overall_percent: int = 0
    total_expected_reports: int = 0
    total_reports_submitted: int = 0
    by_channel: Dict[str, ChannelDeliveryOut] = Field(default_factory=dict)

class PacingOut(ApiModel):
    status: str
    percent_complete: int = 0
    expected_percent: int = 0
    total_days: int = 0
    days_passed: int = 0
    days_remaining: int = 0

class DateRange(ApiModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None

class CampaignSummaryResponse(ApiModel):
    campaign_id: str
    campaign_name: Optional[str] = None
    date_range: DateRange
    performance_range: DateRange
    totals: MetricTotals
    by_channel: List[ChannelMetrics]
    by_publication: List[PublicationMetrics]
    delivery_progress: DeliveryProgress
    pacing: PacingOut

class CampaignDailyResponse(ApiModel):
    campaign_id: str
    daily: List[DailyPoint]

class OrderDeliveryOut(ApiModel):
    by_channel: Dict[str, ChannelDeliveryOut] = Field(default_factory=dict)
    pacing_percent: int = 0
    pacing_status: str
    expected_reports: int = 0
    reports_submitted: int = 0

class ProofCounts(ApiModel):
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)

class OrderSummaryResponse(ApiModel):
    order_id: str
    campaign_id: str
    publication_id: str
    publication_name: Optional[str] = None
    status: str
    totals: MetricTotals
    by_placement: List[PlacementMetrics]
    delivery: OrderDeliveryOut
    proofs: ProofCounts

class DeliveryTotals(ApiModel):
    reports: int = 0
    impressions: int = 0
    clicks: int = 0
    insertions: int = 0
    circulation: int = 0
    spots_aired: int = 0
    downloads: int = 0
    proofs: int = 0

class StatusBreakdown(ApiModel):
    on_track: int = Field(0, alias="on_track")
    ahead: int = 0
    behind: int = 0
    at_risk: int = Field(0, alias="at_risk")

class PublicationDeliverySummary(ApiModel):
    overall_delivery_percent: int = 0
    total_expected_reports: int = 0
    total_reports_submitted: int = 0
    total_orders: int = 0
    active_orders: int = 0
    by_channel: Dict[str, ChannelDeliveryOut] = Field(default_factory=dict)
    totals: DeliveryTotals = Field(default_factory=DeliveryTotals)
    status_breakdown: StatusBreakdown = Field(default_factory=StatusBreakdown)
