"""Read-only campaign access."""

from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from .models import Campaign

class CampaignStore:
    """Looks up campaigns by their public campaign id."""

    def __init__(self, db: Session):
        self.db = db

    def _active(self):
        return self.db.query(Campaign).filter(Campaign.deleted_at.is_(None))

    def get(self, campaign_id: str) -> Optional[Campaign]:
        return self._active().filter(Campaign.campaign_id == campaign_id).first()

    def get_many(self, campaign_ids: Iterable[str]) -> Dict[str, Campaign]:
        """Campaigns keyed by campaign id; missing ids are simply absent."""
        ids = list(campaign_ids)
        if not ids:
            return {}
        rows = self._active().filter(Campaign.campaign_id.in_(ids)).all()
        return {campaign.campaign_id: campaign for campaign in rows}
