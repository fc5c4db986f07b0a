"""
Insertion order routes.

Listing, detail (with lazy placement completion), status transitions and
placement status updates, plus the publication delivery rollup.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hubmarket.api.deps import (
    get_completion_service,
    get_current_user_id,
    get_db,
    get_order_service,
    get_reconciler,
    get_reporting_service,
)
from hubmarket.delivery.reconciler import DeliveryReconciler
from hubmarket.reporting.schemas import PublicationDeliverySummary
from hubmarket.reporting.services import ReportingService, order_delivery_out
from hubmarket.utils.logging import setup_logger
from .completion import PlacementCompletionService
from .schemas import (
    GeneratedOrdersResponse,
    OrderDetailResponse,
    OrderOut,
    PlacementStatusRequest,
    PlacementStatusResponse,
    StatusUpdateRequest,
)
from .services import InsertionOrderService

logger = setup_logger(__name__)

orders_router = APIRouter(prefix="/publication-orders", tags=["orders"])

@orders_router.get("", response_model=List[OrderOut])
def list_orders(
    publication_id: Optional[str] = Query(None, alias="publicationId"),
    status: Optional[List[str]] = Query(None),
    user_id: str = Depends(get_current_user_id),
    orders: InsertionOrderService = Depends(get_order_service),
):
    """Orders visible to the caller."""
    return [OrderOut.model_validate(order) for order in orders.list_orders(user_id, publication_id, status)]

@orders_router.get("/delivery-summary", response_model=PublicationDeliverySummary)
def delivery_summary(
    publication_id: Optional[str] = Query(None, alias="publicationId"),
    user_id: str = Depends(get_current_user_id),
    reporting: ReportingService = Depends(get_reporting_service),
):
    """Delivery rollup across the active orders of the caller's publications."""
    return reporting.publication_delivery_summary(user_id, publication_id)

@orders_router.post("/campaign/{campaign_id}/generate", response_model=GeneratedOrdersResponse, status_code=201)
def generate_orders(
    campaign_id: str,
    user_id: str = Depends(get_current_user_id),
    orders: InsertionOrderService = Depends(get_order_service),
):
    """Create draft orders for every selected publication of a campaign."""
    created = orders.generate_orders_for_campaign(campaign_id, user_id)
    return GeneratedOrdersResponse(
        created=len(created),
        orders=[OrderOut.model_validate(order) for order in created],
    )

@orders_router.get("/{campaign_id}/{publication_id}", response_model=OrderDetailResponse)
def get_order_detail(
    campaign_id: str,
    publication_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    orders: InsertionOrderService = Depends(get_order_service),
    completion: PlacementCompletionService = Depends(get_completion_service),
    reconciler: DeliveryReconciler = Depends(get_reconciler),
):
    """
    Order detail with its delivery summary.

    Digital placements are auto-completed first when the campaign has ended;
    a failure there is logged and the order is returned as stored.
    """
    order = orders.get_order_for(campaign_id, publication_id)
    orders.ensure_access(order, user_id, "get_order_detail")

    completed = 0
    try:
        completed = completion.check_digital_placements_for_campaign_end(order.id).completed
    except Exception as e:
        db.rollback()
        logger.error(f"Placement completion check failed for order {order.id}: {e}")

    order = orders.get_order_for(campaign_id, publication_id)
    delivery = reconciler.reconcile([order])[0]
    return OrderDetailResponse(
        order=OrderOut.model_validate(order),
        delivery=order_delivery_out(delivery),
        placements_completed=completed,
    )

@orders_router.put("/{campaign_id}/{publication_id}/status", response_model=OrderOut)
def update_order_status(
    campaign_id: str,
    publication_id: str,
    body: StatusUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    orders: InsertionOrderService = Depends(get_order_service),
):
    """Move an order to a new status."""
    order = orders.update_status(campaign_id, publication_id, body.status.value, user_id, body.notes)
    return OrderOut.model_validate(order)

@orders_router.put("/{campaign_id}/{publication_id}/placement-status", response_model=PlacementStatusResponse)
def update_placement_status(
    campaign_id: str,
    publication_id: str,
    body: PlacementStatusRequest,
    user_id: str = Depends(get_current_user_id),
    orders: InsertionOrderService = Depends(get_order_service),
):
    """Change one placement's status; reports whether the order was confirmed or rejected."""
    result = orders.update_placement_status(
        campaign_id, publication_id, body.placement_id, body.status.value, user_id, body.notes
    )
    return PlacementStatusResponse(
        order_confirmed=result.order_confirmed,
        order_rejected=result.order_rejected,
    )

@orders_router.delete("/{campaign_id}/{publication_id}")
def rescind_order(
    campaign_id: str,
    publication_id: str,
    user_id: str = Depends(get_current_user_id),
    orders: InsertionOrderService = Depends(get_order_service),
):
    """Soft-delete an order."""
    orders.rescind_order(campaign_id, publication_id, user_id)
    return {"success": True}
