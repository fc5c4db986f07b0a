"""
Request-scoped dependencies.

Services are built per request from the request's database session and the
collaborators stored on ``app.state`` at startup.
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from hubmarket.campaigns.store import CampaignStore
from hubmarket.database import get_session
from hubmarket.delivery.reconciler import DeliveryReconciler
from hubmarket.integrations.notifications import Notifier
from hubmarket.integrations.permissions import PermissionsService, SqlPermissionsService
from hubmarket.integrations.storage import BlobStore
from hubmarket.orders.completion import PlacementCompletionService
from hubmarket.orders.services import InsertionOrderService
from hubmarket.performance.services import PerformanceEntryService
from hubmarket.performance.store import PerformanceEntryStore
from hubmarket.proofs.services import ProofService
from hubmarket.reporting.services import ReportingService
from hubmarket.utils.cache import ReportCache

def get_db(db: Session = Depends(get_session)) -> Session:
    return db

def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Caller identity forwarded by the authenticating gateway."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id

def get_permissions(db: Session = Depends(get_db)) -> PermissionsService:
    return SqlPermissionsService(db)

def get_notifier(request: Request) -> Optional[Notifier]:
    return getattr(request.app.state, "notifier", None)

def get_blob_store(request: Request) -> Optional[BlobStore]:
    return getattr(request.app.state, "blob_store", None)

def get_report_cache(request: Request) -> Optional[ReportCache]:
    return getattr(request.app.state, "report_cache", None)

def get_campaign_store(db: Session = Depends(get_db)) -> CampaignStore:
    return CampaignStore(db)

def get_order_service(
    db: Session = Depends(get_db),
    campaigns: CampaignStore = Depends(get_campaign_store),
    permissions: PermissionsService = Depends(get_permissions),
    notifier: Optional[Notifier] = Depends(get_notifier),
) -> InsertionOrderService:
    return InsertionOrderService(db, campaigns, permissions, notifier)

def get_completion_service(
    db: Session = Depends(get_db),
    campaigns: CampaignStore = Depends(get_campaign_store),
) -> PlacementCompletionService:
    return PlacementCompletionService(db, campaigns)

def get_reconciler(
    db: Session = Depends(get_db),
    campaigns: CampaignStore = Depends(get_campaign_store),
) -> DeliveryReconciler:
    return DeliveryReconciler(PerformanceEntryStore(db), campaigns)

def get_entry_service(
    db: Session = Depends(get_db),
    orders: InsertionOrderService = Depends(get_order_service),
    cache: Optional[ReportCache] = Depends(get_report_cache),
) -> PerformanceEntryService:
    return PerformanceEntryService(db, orders, cache)

def get_proof_service(
    db: Session = Depends(get_db),
    orders: InsertionOrderService = Depends(get_order_service),
    blob_store: Optional[BlobStore] = Depends(get_blob_store),
    notifier: Optional[Notifier] = Depends(get_notifier),
) -> ProofService:
    return ProofService(db, orders, blob_store, notifier)

def get_reporting_service(
    db: Session = Depends(get_db),
    orders: InsertionOrderService = Depends(get_order_service),
    reconciler: DeliveryReconciler = Depends(get_reconciler),
    cache: Optional[ReportCache] = Depends(get_report_cache),
) -> ReportingService:
    return ReportingService(db, orders, reconciler, cache)
