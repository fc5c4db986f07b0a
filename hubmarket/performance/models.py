"""
Performance entry models.

One row per reported or tracked observation for a placement over a date
range. Rows are never hard-deleted; bad data is corrected by flagging it
through ``validation_status``.
"""

import uuid
from enum import Enum

from sqlalchemy import JSON, Column, DateTime, Float, Index, Integer, String, Text

from hubmarket.database import Base, SoftDeleteMixin

class EntrySource(str, Enum):
    """Where an entry came from."""
    MANUAL = "manual"
    IMPORT = "import"
    AUTOMATED = "automated"

class ValidationStatus(str, Enum):
    """Data-quality tag of an entry."""
    OK = "ok"
    BAD_PIXEL = "bad_pixel"
    INVALID_ORDER_ID = "invalid_orderId"
    INVALID_TRAFFIC = "invalid_traffic"

QUALITY_FLAGS = frozenset({
    ValidationStatus.BAD_PIXEL.value,
    ValidationStatus.INVALID_ORDER_ID.value,
    ValidationStatus.INVALID_TRAFFIC.value,
})

METRIC_FIELDS = (
    "impressions",
    "clicks",
    "reach",
    "insertions",
    "spots_aired",
    "downloads",
    "circulation",
    "posts",
)

def _new_id() -> str:
    return uuid.uuid4().hex

class PerformanceEntry(Base, SoftDeleteMixin):
    """Performance observation for one placement."""

    __tablename__ = "performance_entries"
    __table_args__ = (
        Index("ix_performance_order_channel_deleted", "order_id", "channel", "deleted_at"),
        Index("ix_performance_campaign_date", "campaign_id", "date_start"),
    )

    id = Column(String(32), primary_key=True, default=_new_id)
    order_id = Column(String(32), nullable=False)
    campaign_id = Column(String(64), nullable=False)
    publication_id = Column(String(64), nullable=False, index=True)
    publication_name = Column(String(255), nullable=True)
    item_path = Column(String(512), nullable=False)
    item_name = Column(String(255), nullable=True)
    channel = Column(String(64), nullable=False)
    dimensions = Column(JSON, nullable=True)

    date_start = Column(DateTime, nullable=False)
    date_end = Column(DateTime, nullable=True)

    impressions = Column(Integer, nullable=True)
    clicks = Column(Integer, nullable=True)
    ctr = Column(Float, nullable=True)
    reach = Column(Integer, nullable=True)
    insertions = Column(Integer, nullable=True)
    spots_aired = Column(Integer, nullable=True)
    downloads = Column(Integer, nullable=True)
    circulation = Column(Integer, nullable=True)
    posts = Column(Integer, nullable=True)

    source = Column(String(16), nullable=False, default=EntrySource.MANUAL.value)
    validation_status = Column(String(32), nullable=True)

    entered_by = Column(String(64), nullable=False)
    entered_at = Column(DateTime, nullable=False)
    updated_by = Column(String(64), nullable=True)
    updated_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    @property
    def is_flagged(self) -> bool:
        return self.validation_status in QUALITY_FLAGS

    @property
    def units(self) -> int:
        """Offline volume: insertions, spots, downloads and posts."""
        return sum(getattr(self, name) or 0 for name in ("insertions", "spots_aired", "downloads", "posts"))

    def __repr__(self) -> str:
        return f"<PerformanceEntry {self.id} {self.order_id}:{self.channel}>"
