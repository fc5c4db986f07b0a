"""Proof-of-performance models."""

import uuid
from enum import Enum

from sqlalchemy import Column, DateTime, Integer, String, Text

from hubmarket.database import Base, SoftDeleteMixin

class ProofFileType(str, Enum):
    """Kinds of evidence a publication can upload."""
    TEARSHEET = "tearsheet"
    AFFIDAVIT = "affidavit"
    ATTESTATION = "attestation"
    SCREENSHOT = "screenshot"
    AUDIO_LOG = "audio_log"
    VIDEO_CLIP = "video_clip"
    REPORT = "report"
    EPISODE_LINK = "episode_link"
    INVOICE = "invoice"
    OTHER = "other"

class VerificationStatus(str, Enum):
    """Reviewer decision on a proof."""
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"

def _new_id() -> str:
    return uuid.uuid4().hex

class ProofOfPerformance(Base, SoftDeleteMixin):
    """Uploaded evidence for an order or one of its placements."""

    __tablename__ = "proof_of_performance"

    id = Column(String(32), primary_key=True, default=_new_id)
    order_id = Column(String(32), nullable=False, index=True)
    campaign_id = Column(String(64), nullable=False, index=True)
    publication_id = Column(String(64), nullable=False, index=True)
    publication_name = Column(String(255), nullable=True)
    item_path = Column(String(512), nullable=True)
    item_name = Column(String(255), nullable=True)
    channel = Column(String(64), nullable=True)

    file_type = Column(String(32), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_url = Column(Text, nullable=False)
    storage_key = Column(String(1024), nullable=True)
    file_size = Column(Integer, nullable=True)
    mime_type = Column(String(128), nullable=True)
    description = Column(Text, nullable=True)
    run_date = Column(DateTime, nullable=True)
    run_date_end = Column(DateTime, nullable=True)

    uploaded_by = Column(String(64), nullable=False)
    uploaded_at = Column(DateTime, nullable=False)
    verification_status = Column(String(16), nullable=False, default=VerificationStatus.PENDING.value)
    verified_by = Column(String(64), nullable=True)
    verified_at = Column(DateTime, nullable=True)
    verification_notes = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ProofOfPerformance {self.id} {self.verification_status}>"
