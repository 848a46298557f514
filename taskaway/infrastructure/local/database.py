"""
SQLite database configuration and ORM models.

This module defines the SQLAlchemy ORM models and database initialization.
Datetimes are stored as naive UTC.
"""

from functools import lru_cache
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from taskaway.core.config import get_settings
from taskaway.utils.datetime_utils import now_utc, to_naive_utc


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


def _utcnow_naive():
    return to_naive_utc(now_utc())


# ===========================================
# ORM Models
# ===========================================


class TaskORM(Base):
    """Task ORM model (templates and generated instances)."""

    __tablename__ = "tasks"
    __table_args__ = (
        # At most one instance per template per generation period
        UniqueConstraint("parent_template_id", "period_bucket", name="uq_tasks_template_period"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    owner_id = Column(String(255), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default="Submitted", index=True)
    assigned_to = Column(String(255), nullable=True)
    assigned_role = Column(String(50), nullable=True)
    credit_cost = Column(Integer, default=1)
    due_date = Column(DateTime, nullable=True)
    files = Column(JSON, nullable=True, default=list)

    # Recurrence
    is_recurring = Column(Boolean, default=False, index=True)
    recurrence = Column(JSON, nullable=True)
    recurrence_end_date = Column(DateTime, nullable=True)
    parent_template_id = Column(String(36), nullable=True, index=True)
    first_generated_instance_id = Column(String(36), nullable=True)
    period_bucket = Column(String(16), nullable=True)

    is_archived = Column(Boolean, default=False)
    created_at = Column(DateTime, default=_utcnow_naive, index=True)
    updated_at = Column(DateTime, default=_utcnow_naive, index=True)


# ===========================================
# Database Session Management
# ===========================================


@lru_cache()
def get_engine():
    """Get async engine instance."""
    settings = get_settings()
    return create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG)


def get_session_factory():
    """Get async session factory."""
    engine = get_engine()
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db():
    """Initialize database tables."""
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db():
    """Close pooled connections."""
    await get_engine().dispose()
