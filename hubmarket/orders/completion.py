"""
Placement completion.

Digital placements have no proof to upload, so once a campaign's flight is
over they are marked delivered automatically. The check runs lazily when an
order is read; there is no scheduler.
"""

from datetime import datetime
from typing import Callable, List

from pydantic import BaseModel
from sqlalchemy.orm import Session

from hubmarket.campaigns.store import CampaignStore
from hubmarket.database import utcnow
from hubmarket.delivery.channels import is_digital
from hubmarket.utils.logging import setup_logger
from .models import (
    LIVE_PLACEMENT_STATUSES,
    InsertionOrder,
    OrderStatus,
    PlacementStatus,
    can_transition,
)

logger = setup_logger(__name__)

SYSTEM_USER = "system"

class CompletionResult(BaseModel):
    """Digital placements examined and moved to delivered."""
    checked: int = 0
    completed: int = 0

class PlacementCompletionService:
    """Marks digital placements delivered after the campaign end date."""

    def __init__(self, db: Session, campaign_store: CampaignStore, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.campaign_store = campaign_store
        self.clock = clock

    def check_digital_placements_for_campaign_end(self, order_id: str) -> CompletionResult:
        """
        Complete live digital placements of an order whose campaign has ended.

        Idempotent: once every digital placement is delivered the call performs
        no writes and reports ``completed == 0``.

        Args:
            order_id: Insertion order to check

        Returns:
            CompletionResult: Number of digital placements checked and completed
        """
        order = (
            self.db.query(InsertionOrder)
            .filter(InsertionOrder.id == order_id, InsertionOrder.deleted_at.is_(None))
            .first()
        )
        if order is None:
            return CompletionResult()

        campaign = self.campaign_store.get(order.campaign_id)
        now = self.clock()
        if campaign is None or campaign.end_date is None or campaign.end_date > now:
            return CompletionResult()

        items = [item for item in campaign.publication_items(order.publication_id) if not item.is_excluded]
        digital = [item for item in items if is_digital(item.channel)]

        statuses = dict(order.placement_statuses or {})
        completed = 0
        for item in digital:
            current = statuses.get(item.item_path, PlacementStatus.PENDING.value)
            if current in {s.value for s in LIVE_PLACEMENT_STATUSES}:
                statuses[item.item_path] = PlacementStatus.DELIVERED.value
                order.record_placement_status(
                    item.item_path, PlacementStatus.DELIVERED.value, SYSTEM_USER, now,
                    "Campaign ended; digital placement auto-completed",
                )
                completed += 1

        if completed:
            order.placement_statuses = statuses
            self._advance_order_status(order, [statuses.get(i.item_path, PlacementStatus.PENDING.value) for i in items], now)
            self.db.flush()
            logger.info(f"Auto-completed {completed} digital placements on order {order.id}")

        return CompletionResult(checked=len(digital), completed=completed)

    def _advance_order_status(self, order: InsertionOrder, placement_statuses: List[str], now: datetime) -> None:
        """Move the order forward along legal transitions to match its placements."""
        live = [s for s in placement_statuses if s != PlacementStatus.REJECTED.value]
        started = any(
            s in (PlacementStatus.IN_PRODUCTION.value, PlacementStatus.DELIVERED.value) for s in live
        )

        if order.status == OrderStatus.CONFIRMED.value and started \
                and can_transition(order.status, OrderStatus.IN_PRODUCTION.value):
            order.status = OrderStatus.IN_PRODUCTION.value
            order.record_status(order.status, SYSTEM_USER, now)

        all_delivered = bool(live) and all(s == PlacementStatus.DELIVERED.value for s in live)
        if order.status == OrderStatus.IN_PRODUCTION.value and all_delivered \
                and can_transition(order.status, OrderStatus.DELIVERED.value):
            order.status = OrderStatus.DELIVERED.value
            order.record_status(order.status, SYSTEM_USER, now, "All placements delivered")
