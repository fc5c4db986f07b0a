"""
Insertion order models.

An insertion order is the contract between one campaign and one publication.
Placement statuses, delivery goal overrides and histories are stored as JSON
maps on the order row.
"""

import uuid
from enum import Enum
from typing import Any, Dict, List

from sqlalchemy import JSON, Column, DateTime, Index, String, text

from hubmarket.database import Base, SoftDeleteMixin, TimestampMixin
from hubmarket.delivery.models import DeliveryGoalOverride

class OrderStatus(str, Enum):
    """Order lifecycle states."""
    DRAFT = "draft"
    SENT = "sent"
    CONFIRMED = "confirmed"
    IN_PRODUCTION = "in_production"
    DELIVERED = "delivered"
    REJECTED = "rejected"

class PlacementStatus(str, Enum):
    """Per-placement lifecycle states."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    IN_PRODUCTION = "in_production"
    DELIVERED = "delivered"

VALID_STATUS_TRANSITIONS: Dict[OrderStatus, List[OrderStatus]] = {
    OrderStatus.DRAFT: [OrderStatus.SENT],
    OrderStatus.SENT: [OrderStatus.CONFIRMED, OrderStatus.REJECTED],
    OrderStatus.CONFIRMED: [OrderStatus.IN_PRODUCTION, OrderStatus.REJECTED],
    OrderStatus.IN_PRODUCTION: [OrderStatus.DELIVERED],
    OrderStatus.DELIVERED: [],
    OrderStatus.REJECTED: [],
}

TERMINAL_ORDER_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.REJECTED})
ACTIVE_ORDER_STATUSES = (OrderStatus.CONFIRMED, OrderStatus.IN_PRODUCTION)
REPORTING_ORDER_STATUSES = ACTIVE_ORDER_STATUSES + (OrderStatus.DELIVERED,)

# Placements that count as accepted by the publication
COMMITTED_PLACEMENT_STATUSES = frozenset({
    PlacementStatus.ACCEPTED,
    PlacementStatus.IN_PRODUCTION,
    PlacementStatus.DELIVERED,
})
# Placements the completion service may still move to delivered
LIVE_PLACEMENT_STATUSES = frozenset({PlacementStatus.ACCEPTED, PlacementStatus.IN_PRODUCTION})

def allowed_transitions(current: str) -> List[OrderStatus]:
    try:
        return VALID_STATUS_TRANSITIONS[OrderStatus(current)]
    except ValueError:
        return []

def can_transition(current: str, new: str) -> bool:
    return OrderStatus(new) in allowed_transitions(current)

def _new_id() -> str:
    return uuid.uuid4().hex

class InsertionOrder(Base, TimestampMixin, SoftDeleteMixin):
    """Publication insertion order."""

    __tablename__ = "publication_insertion_orders"
    __table_args__ = (
        Index(
            "uq_order_campaign_publication_active",
            "campaign_id",
            "publication_id",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    id = Column(String(32), primary_key=True, default=_new_id)
    campaign_id = Column(String(64), nullable=False, index=True)
    campaign_name = Column(String(255), nullable=True)
    publication_id = Column(String(64), nullable=False, index=True)
    publication_name = Column(String(255), nullable=True)
    hub_id = Column(String(64), nullable=False, index=True)
    status = Column(String(32), nullable=False, default=OrderStatus.DRAFT.value, index=True)

    placement_statuses = Column(JSON, nullable=False, default=dict)
    delivery_goals = Column(JSON, nullable=False, default=dict)
    status_history = Column(JSON, nullable=False, default=list)
    placement_status_history = Column(JSON, nullable=False, default=list)
    messages = Column(JSON, nullable=False, default=list)

    last_viewed_by_hub = Column(DateTime, nullable=True)
    last_viewed_by_publication = Column(DateTime, nullable=True)
    generated_at = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    confirmation_date = Column(DateTime, nullable=True)

    def placement_status(self, placement_id: str) -> str:
        return (self.placement_statuses or {}).get(placement_id, PlacementStatus.PENDING.value)

    def goal_overrides(self) -> Dict[str, DeliveryGoalOverride]:
        """Delivery goal overrides keyed by placement id."""
        return {
            placement_id: DeliveryGoalOverride.model_validate(goal)
            for placement_id, goal in (self.delivery_goals or {}).items()
            if isinstance(goal, dict)
        }

    def record_status(self, status: str, changed_by: str, at, notes: str = None) -> None:
        entry: Dict[str, Any] = {"status": status, "timestamp": at.isoformat(), "changedBy": changed_by}
        if notes:
            entry["notes"] = notes
        self.status_history = list(self.status_history or []) + [entry]

    def record_placement_status(self, placement_id: str, status: str, changed_by: str, at, notes: str = None) -> None:
        entry: Dict[str, Any] = {
            "placementId": placement_id,
            "status": status,
            "timestamp": at.isoformat(),
            "changedBy": changed_by,
        }
        if notes:
            entry["notes"] = notes
        self.placement_status_history = list(self.placement_status_history or []) + [entry]

    def __repr__(self) -> str:
        return f"<InsertionOrder {self.campaign_id}/{self.publication_id} {self.status}>"
