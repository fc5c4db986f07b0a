"""
Shared fixtures: in-memory database, seeded permissions and data factories.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hubmarket.campaigns.models import Campaign
from hubmarket.campaigns.store import CampaignStore
from hubmarket.database import get_session, init_db, utcnow
from hubmarket.integrations.permissions import SqlPermissionsService, UserPermission, UserProfile
from hubmarket.orders.models import InsertionOrder
from hubmarket.orders.services import InsertionOrderService
from hubmarket.performance.models import PerformanceEntry
from hubmarket.tests.factories import (
    ADMIN,
    HUB_ID,
    HUB_USER,
    OTHER_PUB_ID,
    OTHER_PUB_USER,
    PUB_ID,
    PUB_USER,
    item,
)


@pytest.fixture
def engine():
    """In-memory SQLite shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()

@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    _seed_permissions(session)
    yield session
    session.close()

def _seed_permissions(session) -> None:
    session.add_all([
        UserProfile(user_id=ADMIN, is_admin=True),
        UserProfile(user_id=HUB_USER, is_admin=False),
        UserPermission(user_id=HUB_USER, resource_type="hub", resource_id=HUB_ID),
        UserPermission(user_id=PUB_USER, resource_type="publication", resource_id=PUB_ID),
        UserPermission(user_id=OTHER_PUB_USER, resource_type="publication", resource_id=OTHER_PUB_ID),
    ])
    session.commit()

@pytest.fixture
def permissions(db):
    return SqlPermissionsService(db)

@pytest.fixture
def notifier():
    return Mock()

@pytest.fixture
def campaign_store(db):
    return CampaignStore(db)

@pytest.fixture
def order_service(db, campaign_store, permissions, notifier):
    return InsertionOrderService(db, campaign_store, permissions, notifier)


@pytest.fixture
def make_campaign(db):
    """Create a campaign with inventory per publication id."""
    def _make(
        campaign_id: str = "camp-1",
        inventory: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        hub_id: str = HUB_ID,
    ) -> Campaign:
        inventory = inventory if inventory is not None else {PUB_ID: [item("print/full-page", "print", currentFrequency=4)]}
        now = utcnow()
        campaign = Campaign(
            campaign_id=campaign_id,
            name=f"Campaign {campaign_id}",
            hub_id=hub_id,
            start_date=start or now - timedelta(days=30),
            end_date=end or now + timedelta(days=30),
            selected_inventory={
                "publications": [
                    {"publicationId": pub_id, "publicationName": f"Publication {pub_id}", "inventoryItems": items}
                    for pub_id, items in inventory.items()
                ]
            },
        )
        db.add(campaign)
        db.commit()
        return campaign
    return _make

@pytest.fixture
def make_order(db):
    def _make(
        campaign_id: str = "camp-1",
        publication_id: str = PUB_ID,
        status: str = "confirmed",
        placement_statuses: Optional[Dict[str, str]] = None,
        delivery_goals: Optional[Dict[str, Any]] = None,
        hub_id: str = HUB_ID,
    ) -> InsertionOrder:
        order = InsertionOrder(
            campaign_id=campaign_id,
            campaign_name=f"Campaign {campaign_id}",
            publication_id=publication_id,
            publication_name=f"Publication {publication_id}",
            hub_id=hub_id,
            status=status,
            placement_statuses=placement_statuses or {},
            delivery_goals=delivery_goals or {},
            status_history=[],
            placement_status_history=[],
            messages=[],
        )
        db.add(order)
        db.commit()
        return order
    return _make

@pytest.fixture
def make_entry(db):
    def _make(order: InsertionOrder, **fields) -> PerformanceEntry:
        data = {
            "order_id": order.id,
            "campaign_id": order.campaign_id,
            "publication_id": order.publication_id,
            "publication_name": order.publication_name,
            "item_path": "print/full-page",
            "item_name": "full-page",
            "channel": "print",
            "date_start": datetime(2024, 3, 1, 12, 0),
            "source": "manual",
            "entered_by": PUB_USER,
            "entered_at": utcnow(),
        }
        data.update(fields)
        entry = PerformanceEntry(**data)
        db.add(entry)
        db.commit()
        return entry
    return _make

@pytest.fixture
def app(db, notifier):
    from hubmarket.main import create_app

    blob_store = Mock()
    blob_store.get_signed_url.return_value = "https://storage.example.com/signed"
    application = create_app(notifier=notifier, blob_store=blob_store, report_cache=None)

    def _session_override():
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise

    application.dependency_overrides[get_session] = _session_override
    return application

@pytest.fixture
def client(app):
    return TestClient(app)

