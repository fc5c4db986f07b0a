"""Tests for the insertion order service."""

import pytest

from hubmarket.errors import AccessDeniedError, ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from hubmarket.orders.models import InsertionOrder, OrderStatus, allowed_transitions, can_transition
from hubmarket.tests.factories import (
    ADMIN,
    HUB_ID,
    HUB_USER,
    OTHER_PUB_ID,
    OTHER_PUB_USER,
    OUTSIDER,
    PUB_ID,
    PUB_USER,
    item,
)

TWO_PLACEMENTS = {PUB_ID: [item("print/full-page", "print", currentFrequency=4), item("web/leaderboard", "website")]}

class TestTransitions:
    """Test cases for the order state machine table."""

    @pytest.mark.parametrize("current,new", [
        ("draft", "sent"),
        ("sent", "confirmed"),
        ("sent", "rejected"),
        ("confirmed", "in_production"),
        ("confirmed", "rejected"),
        ("in_production", "delivered"),
    ])
    def test_allowed(self, current, new):
        assert can_transition(current, new)

    @pytest.mark.parametrize("current,new", [
        ("draft", "confirmed"),
        ("sent", "delivered"),
        ("in_production", "confirmed"),
        ("rejected", "draft"),
        ("delivered", "in_production"),
    ])
    def test_not_allowed(self, current, new):
        assert not can_transition(current, new)

    def test_terminal_states(self):
        assert allowed_transitions("delivered") == []
        assert allowed_transitions("rejected") == []
        assert allowed_transitions("unknown") == []

class TestAccess:
    """Test cases for order visibility."""

    def test_hub_and_publication_users_see_order(self, order_service, make_order):
        order = make_order()
        for user_id in (ADMIN, HUB_USER, PUB_USER):
            order_service.ensure_access(order, user_id, "test")

    def test_other_publication_is_denied(self, order_service, make_order):
        order = make_order()
        with pytest.raises(AccessDeniedError):
            order_service.ensure_access(order, OTHER_PUB_USER, "test")
        with pytest.raises(AccessDeniedError):
            order_service.ensure_access(order, OUTSIDER, "test")

    def test_draft_is_not_found_for_publication(self, order_service, make_order):
        order = make_order(status="draft")
        order_service.ensure_access(order, HUB_USER, "test")
        with pytest.raises(NotFoundError):
            order_service.ensure_access(order, PUB_USER, "test")

    def test_hub_only(self, order_service, make_order):
        order = make_order()
        with pytest.raises(AccessDeniedError):
            order_service.ensure_access(order, PUB_USER, "test", hub_only=True)

    def test_list_orders_scoping(self, order_service, make_order):
        visible = make_order()
        make_order(campaign_id="camp-2", status="draft")
        other = make_order(publication_id=OTHER_PUB_ID)

        assert [o.id for o in order_service.list_orders(PUB_USER)] == [visible.id]
        assert {o.id for o in order_service.list_orders(OTHER_PUB_USER)} == {other.id}
        assert len(order_service.list_orders(HUB_USER)) == 3
        assert len(order_service.list_orders(ADMIN, publication_id=PUB_ID)) == 2
        assert len(order_service.list_orders(ADMIN, statuses=["draft"])) == 1

    def test_list_orders_for_foreign_publication(self, order_service, make_order):
        make_order()
        with pytest.raises(AccessDeniedError):
            order_service.list_orders(PUB_USER, publication_id=OTHER_PUB_ID)

class TestUpdateStatus:
    """Test cases for InsertionOrderService.update_status."""

    def test_send_draft(self, order_service, make_order, notifier):
        order = make_order(status="draft")
        updated = order_service.update_status(order.campaign_id, PUB_ID, "sent", HUB_USER, notes="Please review")

        assert updated.status == "sent"
        assert updated.sent_at is not None
        assert updated.status_history[-1]["status"] == "sent"
        assert updated.status_history[-1]["changedBy"] == HUB_USER
        assert updated.status_history[-1]["notes"] == "Please review"
        notifier.notify.assert_called_once()
        assert notifier.notify.call_args[0][0] == "order_sent"

    def test_confirm_sets_confirmation_date(self, order_service, make_order):
        order = make_order(status="sent")
        updated = order_service.update_status(order.campaign_id, PUB_ID, "confirmed", PUB_USER)
        assert updated.confirmation_date is not None

    def test_same_status(self, order_service, make_order):
        order = make_order(status="confirmed")
        with pytest.raises(ValidationError) as exc_info:
            order_service.update_status(order.campaign_id, PUB_ID, "confirmed", HUB_USER)
        assert exc_info.value.message == "Status is already set to this value"

    def test_invalid_transition(self, order_service, make_order):
        order = make_order(status="draft")
        with pytest.raises(InvalidTransitionError) as exc_info:
            order_service.update_status(order.campaign_id, PUB_ID, "delivered", HUB_USER)
        assert exc_info.value.details["allowed"] == ["sent"]
        assert exc_info.value.status_code == 400

    def test_unknown_status(self, order_service, make_order):
        order = make_order()
        with pytest.raises(ValidationError):
            order_service.update_status(order.campaign_id, PUB_ID, "shipped", HUB_USER)

    def test_notifier_failure_does_not_fail_update(self, order_service, make_order, notifier):
        notifier.notify.side_effect = RuntimeError("smtp down")
        order = make_order(status="draft")
        assert order_service.update_status(order.campaign_id, PUB_ID, "sent", HUB_USER).status == "sent"

class TestUpdatePlacementStatus:
    """Test cases for InsertionOrderService.update_placement_status."""

    def test_accepting_last_placement_confirms_order(self, order_service, make_campaign, make_order, notifier):
        make_campaign(inventory=TWO_PLACEMENTS)
        order = make_order(status="sent")

        first = order_service.update_placement_status("camp-1", PUB_ID, "print/full-page", "accepted", PUB_USER)
        assert not first.order_confirmed
        assert order.status == "sent"

        second = order_service.update_placement_status("camp-1", PUB_ID, "web/leaderboard", "accepted", PUB_USER)
        assert second.order_confirmed
        assert order.status == OrderStatus.CONFIRMED.value
        assert order.confirmation_date is not None
        assert [h["placementId"] for h in order.placement_status_history] == ["print/full-page", "web/leaderboard"]
        assert notifier.notify.call_args[0][0] == "order_confirmed"

    def test_rejected_placement_blocks_confirmation(self, order_service, make_campaign, make_order):
        make_campaign(inventory=TWO_PLACEMENTS)
        order = make_order(status="sent")

        order_service.update_placement_status("camp-1", PUB_ID, "print/full-page", "rejected", PUB_USER)
        result = order_service.update_placement_status("camp-1", PUB_ID, "web/leaderboard", "accepted", PUB_USER)

        assert not result.order_confirmed
        assert order.status == "sent"

    def test_rejecting_every_placement_rejects_order(self, order_service, make_campaign, make_order, notifier):
        make_campaign(inventory=TWO_PLACEMENTS)
        order = make_order(status="confirmed")

        order_service.update_placement_status("camp-1", PUB_ID, "print/full-page", "rejected", PUB_USER)
        result = order_service.update_placement_status("camp-1", PUB_ID, "web/leaderboard", "rejected", PUB_USER)

        assert result.order_rejected
        assert order.status == "rejected"
        assert notifier.notify.call_args[0][0] == "order_rejected"

    def test_excluded_items_are_not_placements(self, order_service, make_campaign, make_order):
        make_campaign(inventory={PUB_ID: [
            item("print/full-page", "print"),
            item("print/half-page", "print", isExcluded=True),
        ]})
        make_order(status="sent")

        result = order_service.update_placement_status("camp-1", PUB_ID, "print/full-page", "accepted", PUB_USER)
        assert result.order_confirmed
        with pytest.raises(NotFoundError):
            order_service.update_placement_status("camp-1", PUB_ID, "print/half-page", "accepted", PUB_USER)

    def test_draft_order_rejects_updates(self, order_service, make_campaign, make_order):
        make_campaign()
        make_order(status="draft")
        with pytest.raises(ValidationError):
            order_service.update_placement_status("camp-1", PUB_ID, "print/full-page", "accepted", HUB_USER)

    def test_terminal_order_rejects_updates(self, order_service, make_campaign, make_order):
        make_campaign()
        make_order(status="delivered")
        with pytest.raises(ValidationError):
            order_service.update_placement_status("camp-1", PUB_ID, "print/full-page", "accepted", PUB_USER)

    def test_unknown_placement(self, order_service, make_campaign, make_order):
        make_campaign()
        make_order(status="sent")
        with pytest.raises(NotFoundError):
            order_service.update_placement_status("camp-1", PUB_ID, "print/missing", "accepted", PUB_USER)

    def test_invalid_placement_status(self, order_service, make_campaign, make_order):
        make_campaign()
        make_order(status="sent")
        with pytest.raises(ValidationError):
            order_service.update_placement_status("camp-1", PUB_ID, "print/full-page", "approved", PUB_USER)

class TestGenerateAndRescind:
    """Test cases for order generation and rescinding."""

    def test_generate_creates_drafts_once(self, order_service, make_campaign):
        make_campaign(inventory={
            PUB_ID: [item("web/a", "website", deliveryGoal={"goalType": "impressions", "goalValue": 5000})],
            OTHER_PUB_ID: [item("print/a", "print")],
        })

        created = order_service.generate_orders_for_campaign("camp-1", HUB_USER)
        assert {o.publication_id for o in created} == {PUB_ID, OTHER_PUB_ID}
        assert {o.status for o in created} == {"draft"}
        by_pub = {o.publication_id: o for o in created}
        assert by_pub[PUB_ID].delivery_goals == {"web/a": {"goalType": "impressions", "goalValue": 5000}}

        assert order_service.generate_orders_for_campaign("camp-1", HUB_USER) == []

    def test_generate_conflicts_with_concurrent_order(self, order_service, db, make_campaign):
        make_campaign()
        # Pending and unflushed, so the existing-orders query cannot see it
        db.add(InsertionOrder(
            campaign_id="camp-1",
            publication_id=PUB_ID,
            hub_id=HUB_ID,
            status="draft",
            placement_statuses={},
            delivery_goals={},
            status_history=[],
            placement_status_history=[],
            messages=[],
        ))

        with pytest.raises(ConflictError) as exc_info:
            order_service.generate_orders_for_campaign("camp-1", HUB_USER)

        assert exc_info.value.status_code == 409
        assert exc_info.value.details == {"campaignId": "camp-1"}
        db.rollback()

    def test_generate_requires_hub_access(self, order_service, make_campaign):
        make_campaign()
        with pytest.raises(AccessDeniedError):
            order_service.generate_orders_for_campaign("camp-1", PUB_USER)

    def test_generate_unknown_campaign(self, order_service):
        with pytest.raises(NotFoundError):
            order_service.generate_orders_for_campaign("missing", HUB_USER)

    def test_rescind_soft_deletes(self, order_service, make_order):
        order = make_order()
        order_service.rescind_order("camp-1", PUB_ID, HUB_USER)
        assert order.deleted_at is not None
        with pytest.raises(NotFoundError):
            order_service.get_order(order.id)

    def test_rescind_allows_new_order(self, order_service, db, make_campaign, make_order):
        make_campaign()
        make_order()
        order_service.rescind_order("camp-1", PUB_ID, HUB_USER)
        db.commit()

        created = order_service.generate_orders_for_campaign("camp-1", HUB_USER)
        db.commit()
        assert len(created) == 1
