"""Request and response schemas for performance entries."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import Field, model_validator

from hubmarket.schemas import ApiModel
from .models import EntrySource, ValidationStatus

class EntryMetrics(ApiModel):
    """Reported metrics; every value is optional and non-negative."""
    impressions: Optional[int] = Field(None, ge=0)
    clicks: Optional[int] = Field(None, ge=0)
    reach: Optional[int] = Field(None, ge=0)
    insertions: Optional[int] = Field(None, ge=0)
    spots_aired: Optional[int] = Field(None, ge=0)
    downloads: Optional[int] = Field(None, ge=0)
    circulation: Optional[int] = Field(None, ge=0)
    posts: Optional[int] = Field(None, ge=0)

class PerformanceEntryCreate(ApiModel):
    """Body of a new performance entry."""
    order_id: str = Field(..., min_length=1)
    campaign_id: str = Field(..., min_length=1)
    publication_id: str = Field(..., min_length=1)
    publication_name: Optional[str] = None
    item_path: str = Field(..., min_length=1)
    item_name: str = Field(..., min_length=1)
    channel: str = Field(..., min_length=1)
    dimensions: Optional[Dict[str, Any]] = None
    date_start: datetime
    date_end: Optional[datetime] = None
    metrics: EntryMetrics = Field(default_factory=EntryMetrics)
    source: EntrySource = EntrySource.MANUAL
    validation_status: Optional[ValidationStatus] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_date_range(self):
        if self.date_end is not None and self.date_end < self.date_start:
            raise ValueError("dateEnd cannot be before dateStart")
        return self

class PerformanceEntryUpdate(ApiModel):
    """Editable fields of an entry; ownership fields are not accepted."""
    item_path: Optional[str] = None
    item_name: Optional[str] = None
    channel: Optional[str] = None
    dimensions: Optional[Dict[str, Any]] = None
    date_start: Optional[datetime] = None
    date_end: Optional[datetime] = None
    metrics: Optional[EntryMetrics] = None
    notes: Optional[str] = None

class BulkEntryRequest(ApiModel):
    """Bulk import body; entries are validated individually."""
    entries: List[Dict[str, Any]] = Field(..., min_length=1)

class ValidationStatusUpdate(ApiModel):
    validation_status: ValidationStatus

class PerformanceEntryOut(ApiModel):
    """Stored entry as returned to callers."""
    id: str
    order_id: str
    campaign_id: str
    publication_id: str
    publication_name: Optional[str] = None
    item_path: str
    item_name: Optional[str] = None
    channel: str
    dimensions: Optional[Dict[str, Any]] = None
    date_start: datetime
    date_end: Optional[datetime] = None
    metrics: EntryMetrics
    ctr: Optional[float] = None
    source: str
    validation_status: Optional[str] = None
    entered_by: str
    entered_at: datetime
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    notes: Optional[str] = None

    @classmethod
    def from_entry(cls, entry) -> "PerformanceEntryOut":
        metrics = EntryMetrics(
            impressions=entry.impressions,
            clicks=entry.clicks,
            reach=entry.reach,
            insertions=entry.insertions,
            spots_aired=entry.spots_aired,
            downloads=entry.downloads,
            circulation=entry.circulation,
            posts=entry.posts,
        )
        return cls(
            id=entry.id,
            order_id=entry.order_id,
            campaign_id=entry.campaign_id,
            publication_id=entry.publication_id,
            publication_name=entry.publication_name,
            item_path=entry.item_path,
            item_name=entry.item_name,
            channel=entry.channel,
            dimensions=entry.dimensions,
            date_start=entry.date_start,
            date_end=entry.date_end,
            metrics=metrics,
            ctr=entry.ctr,
            source=entry.source,
            validation_status=entry.validation_status,
            entered_by=entry.entered_by,
            entered_at=entry.entered_at,
            updated_by=entry.updated_by,
            updated_at=entry.updated_at,
            notes=entry.notes,
        )

class OrderEntriesSummary(ApiModel):
    total_entries: int = 0
    total_impressions: int = 0
    total_clicks: int = 0
    total_units: int = 0
    by_channel: Dict[str, int] = Field(default_factory=dict)

class OrderEntriesResponse(ApiModel):
    entries: List[PerformanceEntryOut]
    summary: OrderEntriesSummary
