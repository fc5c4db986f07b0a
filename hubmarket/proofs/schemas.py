"""Request and response schemas for proofs of performance."""

from datetime import datetime
from typing import Dict, List, Optional
from pydantic import Field

from hubmarket.schemas import ApiModel
from .models import ProofFileType, VerificationStatus

class ProofCreate(ApiModel):
    """Metadata of an uploaded proof; the file itself is already in the blob store."""
    order_id: str = Field(..., min_length=1)
    campaign_id: str = Field(..., min_length=1)
    publication_id: str = Field(..., min_length=1)
    publication_name: Optional[str] = None
    item_path: Optional[str] = None
    item_name: Optional[str] = None
    channel: Optional[str] = None
    file_type: ProofFileType
    file_name: str = Field(..., min_length=1)
    file_url: str = Field(..., min_length=1)
    storage_key: Optional[str] = None
    file_size: Optional[int] = Field(None, ge=0)
    mime_type: Optional[str] = None
    description: Optional[str] = None
    run_date: Optional[datetime] = None
    run_date_end: Optional[datetime] = None

class ProofVerification(ApiModel):
    """Reviewer decision."""
    status: VerificationStatus
    notes: Optional[str] = None

class ProofOut(ApiModel):
    id: str
    order_id: str
    campaign_id: str
    publication_id: str
    publication_name: Optional[str] = None
    item_path: Optional[str] = None
    item_name: Optional[str] = None
    channel: Optional[str] = None
    file_type: str
    file_name: str
    file_url: str
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    description: Optional[str] = None
    run_date: Optional[datetime] = None
    run_date_end: Optional[datetime] = None
    uploaded_by: str
    uploaded_at: datetime
    verification_status: str
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    verification_notes: Optional[str] = None

class ProofSummary(ApiModel):
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)

class OrderProofsResponse(ApiModel):
    proofs: List[ProofOut]
    summary: ProofSummary
