"""Read-only reporting routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from hubmarket.api.deps import get_current_user_id, get_reporting_service
from .schemas import CampaignDailyResponse, CampaignSummaryResponse, OrderSummaryResponse
from .services import ReportingService

reporting_router = APIRouter(prefix="/reporting", tags=["reporting"])

@reporting_router.get("/campaign/{campaign_id}/summary", response_model=CampaignSummaryResponse)
def campaign_summary(
    campaign_id: str,
    user_id: str = Depends(get_current_user_id),
    reporting: ReportingService = Depends(get_reporting_service),
):
    """Totals, breakdowns, delivery progress and pacing of a campaign."""
    return reporting.campaign_summary(campaign_id, user_id)

@reporting_router.get("/campaign/{campaign_id}/daily", response_model=CampaignDailyResponse)
def campaign_daily(
    campaign_id: str,
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    user_id: str = Depends(get_current_user_id),
    reporting: ReportingService = Depends(get_reporting_service),
):
    """Daily performance trend; ``dateTo`` includes the whole day."""
    return reporting.campaign_daily(campaign_id, user_id, date_from, date_to)

@reporting_router.get("/order/{order_id}/summary", response_model=OrderSummaryResponse)
def order_summary(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
    reporting: ReportingService = Depends(get_reporting_service),
):
    return reporting.order_summary(order_id, user_id)
