"""Performance entry routes."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from hubmarket.api.deps import get_current_user_id, get_entry_service
from .schemas import (
    BulkEntryRequest,
    OrderEntriesResponse,
    PerformanceEntryCreate,
    PerformanceEntryOut,
    PerformanceEntryUpdate,
    ValidationStatusUpdate,
)
from .services import PerformanceEntryService

entries_router = APIRouter(prefix="/performance-entries", tags=["performance"])

@entries_router.get("", response_model=List[PerformanceEntryOut])
def list_entries(
    order_id: Optional[str] = Query(None, alias="orderId"),
    campaign_id: Optional[str] = Query(None, alias="campaignId"),
    publication_id: Optional[str] = Query(None, alias="publicationId"),
    channel: Optional[str] = None,
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    limit: Optional[int] = Query(None, ge=1),
    user_id: str = Depends(get_current_user_id),
    service: PerformanceEntryService = Depends(get_entry_service),
):
    entries = service.list(
        user_id,
        order_id=order_id,
        campaign_id=campaign_id,
        publication_id=publication_id,
        channel=channel,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
    )
    return [PerformanceEntryOut.from_entry(entry) for entry in entries]

@entries_router.get("/order/{order_id}", response_model=OrderEntriesResponse)
def order_entries(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
    service: PerformanceEntryService = Depends(get_entry_service),
):
    return service.order_entries(order_id, user_id)

@entries_router.get("/{entry_id}", response_model=PerformanceEntryOut)
def get_entry(
    entry_id: str,
    user_id: str = Depends(get_current_user_id),
    service: PerformanceEntryService = Depends(get_entry_service),
):
    return PerformanceEntryOut.from_entry(service.get(entry_id, user_id))

@entries_router.post("", response_model=PerformanceEntryOut, status_code=201)
def create_entry(
    body: PerformanceEntryCreate,
    user_id: str = Depends(get_current_user_id),
    service: PerformanceEntryService = Depends(get_entry_service),
):
    return PerformanceEntryOut.from_entry(service.create(body, user_id))

@entries_router.post("/bulk", status_code=201)
def bulk_create_entries(
    body: BulkEntryRequest,
    user_id: str = Depends(get_current_user_id),
    service: PerformanceEntryService = Depends(get_entry_service),
):
    """Create many entries at once; nothing is stored if any entry is invalid."""
    created = service.bulk_create(body.entries, user_id)
    return {
        "created": len(created),
        "entries": [PerformanceEntryOut.from_entry(entry).model_dump(mode="json", by_alias=True) for entry in created],
    }

@entries_router.put("/{entry_id}", response_model=PerformanceEntryOut)
def update_entry(
    entry_id: str,
    body: PerformanceEntryUpdate,
    user_id: str = Depends(get_current_user_id),
    service: PerformanceEntryService = Depends(get_entry_service),
):
    return PerformanceEntryOut.from_entry(service.update(entry_id, body, user_id))

@entries_router.put("/{entry_id}/validation", response_model=PerformanceEntryOut)
def set_validation_status(
    entry_id: str,
    body: ValidationStatusUpdate,
    user_id: str = Depends(get_current_user_id),
    service: PerformanceEntryService = Depends(get_entry_service),
):
    """Flag an entry as bad data (or clear the flag)."""
    return PerformanceEntryOut.from_entry(service.set_validation_status(entry_id, body.validation_status, user_id))

@entries_router.delete("/{entry_id}")
def delete_entry(
    entry_id: str,
    user_id: str = Depends(get_current_user_id),
    service: PerformanceEntryService = Depends(get_entry_service),
):
    service.delete(entry_id, user_id)
    return {"success": True}
