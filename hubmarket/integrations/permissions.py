"""
Permissions collaborator.

Access checks are answered by a ``PermissionsService``. The default
implementation reads user profiles and resource grants from the database;
tests and other deployments can inject any other implementation.
"""

from abc import ABC, abstractmethod
from typing import List

from sqlalchemy import Boolean, Column, Integer, String, UniqueConstraint
from sqlalchemy.orm import Session

from hubmarket.database import Base

class UserProfile(Base):
    """Role flags of a user."""

    __tablename__ = "user_profiles"

    user_id = Column(String(64), primary_key=True)
    is_admin = Column(Boolean, nullable=False, default=False)

class UserPermission(Base):
    """Grant of a user on a publication or hub."""

    __tablename__ = "user_permissions"
    __table_args__ = (UniqueConstraint("user_id", "resource_type", "resource_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    resource_type = Column(String(16), nullable=False)  # publication | hub
    resource_id = Column(String(64), nullable=False)

class PermissionsService(ABC):
    """Boolean access checks used at the API boundary."""

    @abstractmethod
    def is_admin(self, user_id: str) -> bool:
        """Admins bypass every other check."""

    @abstractmethod
    def get_user_publications(self, user_id: str) -> List[str]:
        """Publication ids the user may act for."""

    @abstractmethod
    def get_user_hubs(self, user_id: str) -> List[str]:
        """Hub ids the user belongs to."""

    def can_access_publication(self, user_id: str, publication_id: str) -> bool:
        if self.is_admin(user_id):
            return True
        return str(publication_id) in self.get_user_publications(user_id)

    def can_access_hub(self, user_id: str, hub_id: str) -> bool:
        if self.is_admin(user_id):
            return True
        return str(hub_id) in self.get_user_hubs(user_id)

class SqlPermissionsService(PermissionsService):
    """Permissions backed by the ``user_profiles``/``user_permissions`` tables."""

    def __init__(self, db: Session):
        self.db = db

    def is_admin(self, user_id: str) -> bool:
        profile = self.db.get(UserProfile, user_id)
        return bool(profile and profile.is_admin)

    def _resources(self, user_id: str, resource_type: str) -> List[str]:
        rows = (
            self.db.query(UserPermission.resource_id)
            .filter(
                UserPermission.user_id == user_id,
                UserPermission.resource_type == resource_type,
            )
            .all()
        )
        return [str(row.resource_id) for row in rows]

    def get_user_publications(self, user_id: str) -> List[str]:
        return self._resources(user_id, "publication")

    def get_user_hubs(self, user_id: str) -> List[str]:
        return self._resources(user_id, "hub")
