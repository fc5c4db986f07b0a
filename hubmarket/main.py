"""
Main FastAPI application module.

This module sets up the FastAPI application with all routes and middleware.
"""

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hubmarket.config import reporting_config, server_config
from hubmarket.errors import register_exception_handlers
from hubmarket.integrations.notifications import LoggingNotifier, Notifier
from hubmarket.integrations.storage import BlobStore, GCSBlobStore
from hubmarket.orders.routes import orders_router
from hubmarket.performance.routes import entries_router
from hubmarket.proofs.routes import proofs_router
from hubmarket.reporting.routes import reporting_router
from hubmarket.utils.cache import ReportCache
from hubmarket.utils.logging import setup_logger

logger = setup_logger(__name__)

def _default_blob_store() -> Optional[BlobStore]:
    try:
        return GCSBlobStore()
    except Exception as e:
        logger.warning(f"Blob store unavailable, stored proof URLs will be served as-is: {e}")
        return None

def create_app(
    notifier: Optional[Notifier] = None,
    blob_store: Optional[BlobStore] = None,
    report_cache: Optional[ReportCache] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        notifier: Notification collaborator, defaults to logging only
        blob_store: Signed URL provider, defaults to Google Cloud Storage
        report_cache: Daily trend cache, created from settings when enabled

    Returns:
        FastAPI: Configured application
    """
    app = FastAPI(
        title="Hubmarket Delivery Tracking",
        description="Insertion order delivery tracking and reconciliation",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=server_config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.state.notifier = notifier or LoggingNotifier()
    app.state.blob_store = blob_store
    if report_cache is None and reporting_config.cache_enabled:
        report_cache = ReportCache()
    app.state.report_cache = report_cache

    app.include_router(orders_router)
    app.include_router(entries_router)
    app.include_router(proofs_router)
    app.include_router(reporting_router)

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app

def build_default_app() -> FastAPI:
    """Application wired with the production collaborators."""
    return create_app(blob_store=_default_blob_store())
