"""
Performance entry service.

Creation, correction and listing of performance entries. Every write drops
the cached daily trends of the entry's campaign.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.orm import Session

from hubmarket.config import reporting_config
from hubmarket.database import to_utc_naive, utcnow
from hubmarket.errors import AccessDeniedError, NotFoundError, ValidationError
from hubmarket.orders.models import InsertionOrder
from hubmarket.orders.services import InsertionOrderService
from hubmarket.utils.cache import ReportCache
from hubmarket.utils.logging import setup_logger
from hubmarket.utils.numbers import compute_ctr
from .models import METRIC_FIELDS, EntrySource, PerformanceEntry, ValidationStatus
from .schemas import (
    OrderEntriesResponse,
    OrderEntriesSummary,
    PerformanceEntryCreate,
    PerformanceEntryOut,
    PerformanceEntryUpdate,
)
from .store import PerformanceEntryStore

logger = setup_logger(__name__)

IMMUTABLE_FIELDS = ("order_id", "campaign_id", "publication_id", "entered_by", "entered_at")
REQUIRED_FIELDS = {"item_path": "itemPath", "channel": "channel", "date_start": "dateStart"}

def _schema_errors(exc: SchemaValidationError) -> List[Dict[str, Any]]:
    return [
        {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
        for error in exc.errors()
    ]

class PerformanceEntryService:
    """Service for managing performance entries."""

    def __init__(
        self,
        db: Session,
        orders: InsertionOrderService,
        cache: Optional[ReportCache] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.db = db
        self.store = PerformanceEntryStore(db)
        self.orders = orders
        self.cache = cache
        self.clock = clock

    def _invalidate(self, campaign_id: str) -> None:
        if self.cache is not None:
            self.cache.invalidate_campaign(campaign_id)

    def _order_for_entry(self, payload: PerformanceEntryCreate, user_id: str, operation: str) -> InsertionOrder:
        try:
            order = self.orders.get_order(payload.order_id)
        except NotFoundError:
            raise ValidationError("Order does not exist", operation, {"orderId": payload.order_id})
        if order.campaign_id != payload.campaign_id or order.publication_id != str(payload.publication_id):
            raise ValidationError(
                "Order does not belong to this campaign and publication",
                operation,
                {"orderId": order.id},
            )
        self.orders.ensure_access(order, user_id, operation)
        return order

    def _build(self, payload: PerformanceEntryCreate, order: InsertionOrder, user_id: str) -> PerformanceEntry:
        metrics = payload.metrics.model_dump()
        now = self.clock()
        entry = PerformanceEntry(
            order_id=order.id,
            campaign_id=order.campaign_id,
            publication_id=order.publication_id,
            publication_name=payload.publication_name or order.publication_name,
            item_path=payload.item_path,
            item_name=payload.item_name,
            channel=payload.channel.strip().lower(),
            dimensions=payload.dimensions,
            date_start=to_utc_naive(payload.date_start),
            date_end=to_utc_naive(payload.date_end),
            source=payload.source.value,
            validation_status=payload.validation_status.value if payload.validation_status else None,
            entered_by=user_id,
            entered_at=now,
            notes=payload.notes,
            **{name: metrics.get(name) for name in METRIC_FIELDS},
        )
        entry.ctr = compute_ctr(entry.clicks, entry.impressions)
        return entry

    def get(self, entry_id: str, user_id: str) -> PerformanceEntry:
        entry = self.store.get(entry_id)
        if entry is None:
            raise NotFoundError("Performance entry not found", "get_entry", {"entryId": entry_id})
        self.orders.ensure_access(self.orders.get_order(entry.order_id), user_id, "get_entry")
        return entry

    def list(
        self,
        user_id: str,
        order_id: Optional[str] = None,
        campaign_id: Optional[str] = None,
        publication_id: Optional[str] = None,
        channel: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> List[PerformanceEntry]:
        """Entries visible to the caller matching the filters, at most one page."""
        page = reporting_config.max_entries_page
        limit = min(limit, page) if limit else page
        if order_id:
            self.orders.ensure_access(self.orders.get_order(order_id), user_id, "list_entries")
            publications = None
        else:
            publications = self.orders.accessible_publications(user_id, publication_id, "list_entries")
        return self.store.list(
            order_id=order_id,
            campaign_id=campaign_id,
            publication_ids=publications,
            channel=channel,
            date_from=to_utc_naive(date_from),
            date_to=to_utc_naive(date_to),
            limit=limit,
        )

    def order_entries(self, order_id: str, user_id: str) -> OrderEntriesResponse:
        """All entries of one order with totals; flagged entries are listed but not totalled."""
        order = self.orders.get_order(order_id)
        self.orders.ensure_access(order, user_id, "order_entries")
        entries = self.store.list(order_id=order.id)

        summary = OrderEntriesSummary()
        for entry in entries:
            summary.total_entries += 1
            summary.by_channel[entry.channel] = summary.by_channel.get(entry.channel, 0) + 1
            if entry.is_flagged:
                continue
            summary.total_impressions += entry.impressions or 0
            summary.total_clicks += entry.clicks or 0
            summary.total_units += entry.units

        return OrderEntriesResponse(
            entries=[PerformanceEntryOut.from_entry(entry) for entry in entries],
            summary=summary,
        )

    def create(self, payload: PerformanceEntryCreate, user_id: str) -> PerformanceEntry:
        order = self._order_for_entry(payload, user_id, "create_entry")
        entry = self.store.add(self._build(payload, order, user_id))
        self._invalidate(entry.campaign_id)
        logger.info(f"Created performance entry {entry.id} for order {order.id} ({entry.channel})")
        return entry

    def bulk_create(self, raw_entries: List[Dict[str, Any]], user_id: str) -> List[PerformanceEntry]:
        """
        Validate every entry first, then insert all of them.

        Raises:
            ValidationError: At least one entry is invalid; ``details.errors``
                lists the problems by index and nothing is inserted
        """
        errors: List[Dict[str, Any]] = []
        prepared = []
        for index, raw in enumerate(raw_entries):
            raw = dict(raw)
            raw.setdefault("source", EntrySource.IMPORT.value)
            try:
                payload = PerformanceEntryCreate.model_validate(raw)
                order = self._order_for_entry(payload, user_id, "bulk_create_entries")
            except SchemaValidationError as e:
                errors.append({"index": index, "errors": _schema_errors(e)})
                continue
            except (ValidationError, AccessDeniedError, NotFoundError) as e:
                errors.append({"index": index, "errors": [{"field": "orderId", "message": e.message}]})
                continue
            prepared.append((payload, order))

        if errors:
            raise ValidationError(
                f"{len(errors)} of {len(raw_entries)} entries are invalid",
                "bulk_create_entries",
                {"errors": errors},
            )

        created = [self.store.add(self._build(payload, order, user_id)) for payload, order in prepared]
        for campaign_id in {entry.campaign_id for entry in created}:
            self._invalidate(campaign_id)
        logger.info(f"Bulk created {len(created)} performance entries")
        return created

    def update(self, entry_id: str, payload: PerformanceEntryUpdate, user_id: str) -> PerformanceEntry:
        """Apply editable fields; order, campaign and publication never change."""
        entry = self.get(entry_id, user_id)
        changes = payload.model_dump(exclude_unset=True)
        cleared = [
            alias for name, alias in REQUIRED_FIELDS.items()
            if name in changes and (changes[name] is None or str(changes[name]).strip() == "")
        ]
        if cleared:
            raise ValidationError(
                "Required fields cannot be cleared", "update_entry",
                {"errors": [{"field": alias, "message": "may not be null or empty"} for alias in cleared]},
            )

        metrics = changes.pop("metrics", None) or {}
        for name, value in metrics.items():
            if name in METRIC_FIELDS:
                setattr(entry, name, value)
        for name, value in changes.items():
            if name in IMMUTABLE_FIELDS:
                continue
            if name in ("date_start", "date_end"):
                value = to_utc_naive(value)
            if name == "channel" and value:
                value = value.strip().lower()
            setattr(entry, name, value)

        if entry.date_start is None:
            raise ValidationError("dateStart is required", "update_entry")
        if entry.date_end is not None and entry.date_end < entry.date_start:
            raise ValidationError("dateEnd cannot be before dateStart", "update_entry")

        entry.ctr = compute_ctr(entry.clicks, entry.impressions)
        entry.updated_by = user_id
        entry.updated_at = self.clock()
        self.db.flush()
        self._invalidate(entry.campaign_id)
        return entry

    def delete(self, entry_id: str, user_id: str) -> None:
        entry = self.get(entry_id, user_id)
        entry.soft_delete()
        entry.updated_by = user_id
        self.db.flush()
        self._invalidate(entry.campaign_id)
        logger.info(f"Soft-deleted performance entry {entry_id}")

    def set_validation_status(self, entry_id: str, status: ValidationStatus, user_id: str) -> PerformanceEntry:
        """Flag or clear an entry; only hub members and admins may do this."""
        entry = self.store.get(entry_id)
        if entry is None:
            raise NotFoundError("Performance entry not found", "set_validation_status", {"entryId": entry_id})
        order = self.orders.get_order(entry.order_id)
        self.orders.ensure_access(order, user_id, "set_validation_status", hub_only=True)

        entry.validation_status = ValidationStatus(status).value
        entry.updated_by = user_id
        entry.updated_at = self.clock()
        self.db.flush()
        self._invalidate(entry.campaign_id)
        logger.info(f"Entry {entry_id} validation status set to {entry.validation_status}")
        return entry
