"""
Database connection and session management
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from hubmarket.config import database_config

def _engine_kwargs(url: str) -> dict:
    kwargs = {"pool_pre_ping": database_config.pool_pre_ping, "echo": database_config.echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    return kwargs

engine = create_engine(database_config.url, **_engine_kwargs(database_config.url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()

def utcnow() -> datetime:
    """Naive UTC timestamp; every stored datetime is naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def to_utc_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC, leave naive values untouched."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value

class TimestampMixin:
    """Mixin for created_at and updated_at timestamps"""

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

class SoftDeleteMixin:
    """Mixin for soft delete functionality"""

    deleted_at = Column(DateTime, nullable=True, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        self.deleted_at = utcnow()

def get_session():
    """Dependency for getting sync database session"""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

def init_db(bind=None) -> None:
    """Create all tables registered on Base."""
    # Model modules register their tables on import
    from hubmarket.campaigns import models as _campaigns  # noqa: F401
    from hubmarket.orders import models as _orders  # noqa: F401
    from hubmarket.performance import models as _performance  # noqa: F401
    from hubmarket.proofs import models as _proofs  # noqa: F401
    from hubmarket.integrations import permissions as _permissions  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
