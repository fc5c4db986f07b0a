"""
Campaign models.

Campaigns are owned by the campaign builder; this service only reads the
selected inventory and the flight dates.
"""

from typing import Any, Dict, List

from sqlalchemy import JSON, Column, DateTime, Integer, String

from hubmarket.database import Base, SoftDeleteMixin, TimestampMixin
from hubmarket.delivery.models import InventoryItem

class Campaign(Base, TimestampMixin, SoftDeleteMixin):
    """A hub campaign with its selected publication inventory."""

    __tablename__ = "campaigns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    campaign_id = Column(String(64), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    hub_id = Column(String(64), nullable=False, index=True)
    status = Column(String(32), nullable=False, default="active")
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    # {"publications": [{"publicationId", "publicationName", "inventoryItems": [...]}]}
    selected_inventory = Column(JSON, nullable=False, default=dict)

    def publications(self) -> List[Dict[str, Any]]:
        return list((self.selected_inventory or {}).get("publications") or [])

    def publication_ids(self) -> List[str]:
        return [str(pub.get("publicationId")) for pub in self.publications() if pub.get("publicationId") is not None]

    def publication_entry(self, publication_id: str) -> Dict[str, Any]:
        for pub in self.publications():
            if str(pub.get("publicationId")) == str(publication_id):
                return pub
        return {}

    def publication_items(self, publication_id: str) -> List[InventoryItem]:
        """Inventory items selected for one publication."""
        raw_items = self.publication_entry(publication_id).get("inventoryItems") or []
        return [InventoryItem.model_validate(item) for item in raw_items if _has_path(item)]

    def __repr__(self) -> str:
        return f"<Campaign {self.campaign_id}>"

def _has_path(item: Dict[str, Any]) -> bool:
    return bool(item.get("itemPath") or item.get("sourcePath"))
