"""Request and response schemas for insertion orders."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import Field

from hubmarket.reporting.schemas import OrderDeliveryOut
from hubmarket.schemas import ApiModel
from .models import OrderStatus, PlacementStatus

class OrderOut(ApiModel):
    id: str
    campaign_id: str
    campaign_name: Optional[str] = None
    publication_id: str
    publication_name: Optional[str] = None
    hub_id: str
    status: str
    placement_statuses: Dict[str, str] = Field(default_factory=dict)
    delivery_goals: Dict[str, Any] = Field(default_factory=dict)
    status_history: List[Dict[str, Any]] = Field(default_factory=list)
    placement_status_history: List[Dict[str, Any]] = Field(default_factory=list)
    last_viewed_by_hub: Optional[datetime] = None
    last_viewed_by_publication: Optional[datetime] = None
    generated_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    confirmation_date: Optional[datetime] = None

class OrderDetailResponse(ApiModel):
    order: OrderOut
    delivery: OrderDeliveryOut
    placements_completed: int = 0

class StatusUpdateRequest(ApiModel):
    status: OrderStatus
    notes: Optional[str] = None

class PlacementStatusRequest(ApiModel):
    placement_id: str = Field(..., min_length=1)
    status: PlacementStatus
    notes: Optional[str] = None

class PlacementStatusResponse(ApiModel):
    success: bool = True
    order_confirmed: bool = False
    order_rejected: bool = False

class GeneratedOrdersResponse(ApiModel):
    created: int
    orders: List[OrderOut]
