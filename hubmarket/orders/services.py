"""
Insertion order service.

Order lookup and scoping, the order status state machine and placement
status updates that cascade to the order.
"""

from datetime import datetime
from typing import Callable, List, Optional

from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hubmarket.campaigns.store import CampaignStore
from hubmarket.database import utcnow
from hubmarket.errors import (
    AccessDeniedError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from hubmarket.integrations.notifications import Notifier, safe_notify
from hubmarket.integrations.permissions import PermissionsService
from hubmarket.utils.logging import setup_logger
from .models import (
    COMMITTED_PLACEMENT_STATUSES,
    TERMINAL_ORDER_STATUSES,
    InsertionOrder,
    OrderStatus,
    PlacementStatus,
    allowed_transitions,
)

logger = setup_logger(__name__)

class PlacementUpdateResult(BaseModel):
    """Outcome of a placement status change."""
    order_confirmed: bool = False
    order_rejected: bool = False

class InsertionOrderService:
    """Service for reading and transitioning insertion orders."""

    def __init__(
        self,
        db: Session,
        campaign_store: CampaignStore,
        permissions: PermissionsService,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.db = db
        self.campaign_store = campaign_store
        self.permissions = permissions
        self.notifier = notifier
        self.clock = clock

    # Lookup and scoping

    def _active(self):
        return self.db.query(InsertionOrder).filter(InsertionOrder.deleted_at.is_(None))

    def get_order(self, order_id: str) -> InsertionOrder:
        order = self._active().filter(InsertionOrder.id == order_id).first()
        if order is None:
            raise NotFoundError("Insertion order not found", "get_order", {"orderId": order_id})
        return order

    def get_order_for(self, campaign_id: str, publication_id: str) -> InsertionOrder:
        order = (
            self._active()
            .filter(
                InsertionOrder.campaign_id == campaign_id,
                InsertionOrder.publication_id == str(publication_id),
            )
            .first()
        )
        if order is None:
            raise NotFoundError(
                "Insertion order not found",
                "get_order_for",
                {"campaignId": campaign_id, "publicationId": publication_id},
            )
        return order

    def is_hub_side(self, order: InsertionOrder, user_id: str) -> bool:
        return self.permissions.can_access_hub(user_id, order.hub_id)

    def ensure_access(self, order: InsertionOrder, user_id: str, operation: str, hub_only: bool = False) -> None:
        """
        Check the caller may see ``order``.

        Hub members and admins see every order of their hub. Publication users
        see their publication's orders except drafts, which are reported as
        missing rather than forbidden.

        Raises:
            AccessDeniedError: Caller has no relation to the order
            NotFoundError: Publication user asked for a draft order
        """
        if self.is_hub_side(order, user_id):
            return
        if hub_only:
            raise AccessDeniedError("Hub access required", operation, {"orderId": order.id})
        if not self.permissions.can_access_publication(user_id, order.publication_id):
            raise AccessDeniedError(
                "Access denied to this publication",
                operation,
                {"publicationId": order.publication_id},
            )
        if order.status == OrderStatus.DRAFT.value:
            raise NotFoundError("Insertion order not found", operation, {"orderId": order.id})

    def accessible_publications(self, user_id: str, publication_id: Optional[str], operation: str) -> Optional[List[str]]:
        """
        Publication ids visible to the caller, None meaning unrestricted.

        Raises:
            AccessDeniedError: ``publication_id`` was requested but is not accessible
        """
        if self.permissions.is_admin(user_id):
            return [str(publication_id)] if publication_id else None
        publications = [str(p) for p in self.permissions.get_user_publications(user_id)]
        if publication_id:
            if str(publication_id) not in publications:
                raise AccessDeniedError(
                    "Access denied to this publication", operation, {"publicationId": publication_id}
                )
            return [str(publication_id)]
        return publications

    def list_orders(
        self,
        user_id: str,
        publication_id: Optional[str] = None,
        statuses: Optional[List[str]] = None
    ) -> List[InsertionOrder]:
        """Orders visible to the caller; drafts only for hub members and admins."""
        query = self._active()
        if statuses:
            query = query.filter(InsertionOrder.status.in_([str(s) for s in statuses]))

        if self.permissions.is_admin(user_id):
            if publication_id:
                query = query.filter(InsertionOrder.publication_id == str(publication_id))
            return query.order_by(InsertionOrder.created_at.desc()).all()

        publications = self.accessible_publications(user_id, publication_id, "list_orders")
        hubs = [str(h) for h in self.permissions.get_user_hubs(user_id)]
        publication_scope = InsertionOrder.publication_id.in_(publications) & (
            InsertionOrder.status != OrderStatus.DRAFT.value
        )
        if publication_id:
            query = query.filter(publication_scope)
        else:
            query = query.filter(or_(publication_scope, InsertionOrder.hub_id.in_(hubs)))
        return query.order_by(InsertionOrder.created_at.desc()).all()

    # Lifecycle

    def generate_orders_for_campaign(self, campaign_id: str, user_id: str) -> List[InsertionOrder]:
        """
        Create one draft order per selected publication lacking an order.

        Returns:
            List[InsertionOrder]: Newly created orders

        Raises:
            ConflictError: A live order for one of the publications was created concurrently
        """
        campaign = self.campaign_store.get(campaign_id)
        if campaign is None:
            raise NotFoundError("Campaign not found", "generate_orders", {"campaignId": campaign_id})
        if not self.permissions.can_access_hub(user_id, campaign.hub_id):
            raise AccessDeniedError("Hub access required", "generate_orders", {"campaignId": campaign_id})

        existing = {
            order.publication_id
            for order in self._active().filter(InsertionOrder.campaign_id == campaign_id).all()
        }
        now = self.clock()
        created = []
        for publication in campaign.publications():
            publication_id = str(publication.get("publicationId"))
            if publication_id in existing:
                continue
            goals = {
                item.item_path: {"goalType": item.delivery_goal.goal_type, "goalValue": item.delivery_goal.goal_value}
                for item in campaign.publication_items(publication_id)
                if item.delivery_goal is not None and not item.is_excluded
            }
            order = InsertionOrder(
                campaign_id=campaign_id,
                campaign_name=campaign.name,
                publication_id=publication_id,
                publication_name=publication.get("publicationName"),
                hub_id=campaign.hub_id,
                status=OrderStatus.DRAFT.value,
                placement_statuses={},
                delivery_goals=goals,
                status_history=[],
                placement_status_history=[],
                messages=[],
                generated_at=now,
            )
            order.record_status(OrderStatus.DRAFT.value, user_id, now)
            self.db.add(order)
            created.append(order)

        try:
            self.db.flush()
        except IntegrityError as e:
            # A concurrent generate created one of the live orders first
            raise ConflictError(
                "Insertion order already exists for this campaign and publication",
                "generate_orders",
                {"campaignId": campaign_id},
            ) from e
        logger.info(f"Generated {len(created)} insertion orders for campaign {campaign_id}")
        return created

    def rescind_order(self, campaign_id: str, publication_id: str, user_id: str) -> InsertionOrder:
        order = self.get_order_for(campaign_id, publication_id)
        self.ensure_access(order, user_id, "rescind_order", hub_only=True)
        order.soft_delete()
        self.db.flush()
        logger.info(f"Rescinded order {order.id} for {campaign_id}/{publication_id}")
        return order

    def _apply_status(self, order: InsertionOrder, new_status: OrderStatus, changed_by: str, notes: Optional[str] = None) -> None:
        now = self.clock()
        order.status = new_status.value
        order.record_status(new_status.value, changed_by, now, notes)
        if new_status == OrderStatus.SENT:
            order.sent_at = now
        elif new_status == OrderStatus.CONFIRMED:
            order.confirmation_date = now

    def update_status(
        self,
        campaign_id: str,
        publication_id: str,
        new_status: str,
        user_id: str,
        notes: Optional[str] = None
    ) -> InsertionOrder:
        """
        Move an order along the state machine.

        Raises:
            ValidationError: Unknown status or status unchanged
            InvalidTransitionError: Transition not allowed from the current status
        """
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise ValidationError(
                f"Invalid status: {new_status}", "update_status", {"allowed": [s.value for s in OrderStatus]}
            )

        order = self.get_order_for(campaign_id, publication_id)
        self.ensure_access(order, user_id, "update_status")

        if order.status == target.value:
            raise ValidationError("Status is already set to this value", "update_status", {"status": order.status})
        allowed = allowed_transitions(order.status)
        if target not in allowed:
            raise InvalidTransitionError(order.status, target.value, "update_status", [s.value for s in allowed])

        self._apply_status(order, target, user_id, notes)
        self.db.flush()
        safe_notify(self.notifier, f"order_{target.value}", {
            "orderId": order.id,
            "campaignId": order.campaign_id,
            "publicationId": order.publication_id,
            "hubId": order.hub_id,
            "changedBy": user_id,
        })
        return order

    def update_placement_status(
        self,
        campaign_id: str,
        publication_id: str,
        placement_id: str,
        status: str,
        user_id: str,
        notes: Optional[str] = None
    ) -> PlacementUpdateResult:
        """
        Set one placement's status and cascade to the order.

        Accepting the last outstanding placement of a ``sent`` order confirms
        it; rejecting every placement of a ``sent`` or ``confirmed`` order
        rejects it.

        Returns:
            PlacementUpdateResult: Flags telling whether the order status changed
        """
        try:
            target = PlacementStatus(status)
        except ValueError:
            raise ValidationError(
                f"Invalid placement status: {status}",
                "update_placement_status",
                {"allowed": [s.value for s in PlacementStatus]},
            )

        order = self.get_order_for(campaign_id, publication_id)
        self.ensure_access(order, user_id, "update_placement_status")

        if order.status == OrderStatus.DRAFT.value:
            raise ValidationError("Draft orders cannot receive placement updates", "update_placement_status")
        if OrderStatus(order.status) in TERMINAL_ORDER_STATUSES:
            raise ValidationError(
                f"Order is {order.status} and can no longer change", "update_placement_status"
            )

        campaign = self.campaign_store.get(campaign_id)
        items = [item for item in campaign.publication_items(publication_id) if not item.is_excluded] \
            if campaign else []
        if placement_id not in {item.item_path for item in items}:
            raise NotFoundError(
                "Placement not found in this order", "update_placement_status", {"placementId": placement_id}
            )

        now = self.clock()
        statuses = dict(order.placement_statuses or {})
        statuses[placement_id] = target.value
        order.placement_statuses = statuses
        order.record_placement_status(placement_id, target.value, user_id, now, notes)

        result = PlacementUpdateResult()
        item_statuses = [statuses.get(item.item_path, PlacementStatus.PENDING.value) for item in items]

        if target == PlacementStatus.ACCEPTED and order.status == OrderStatus.SENT.value:
            committed = sum(1 for s in item_statuses if PlacementStatus(s) in COMMITTED_PLACEMENT_STATUSES)
            if items and committed == len(items):
                self._apply_status(order, OrderStatus.CONFIRMED, user_id, "All placements accepted")
                result.order_confirmed = True

        if target == PlacementStatus.REJECTED and order.status in (
            OrderStatus.SENT.value, OrderStatus.CONFIRMED.value
        ):
            if items and all(s == PlacementStatus.REJECTED.value for s in item_statuses):
                self._apply_status(order, OrderStatus.REJECTED, user_id, "All placements rejected")
                result.order_rejected = True

        self.db.flush()

        if result.order_confirmed or result.order_rejected:
            event = "order_confirmed" if result.order_confirmed else "order_rejected"
            safe_notify(self.notifier, event, {
                "orderId": order.id,
                "campaignId": order.campaign_id,
                "publicationId": order.publication_id,
                "hubId": order.hub_id,
            })
        return result
