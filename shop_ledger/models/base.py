"""
Engine, sessions and the declarative base.

Every model derives from Base. Shop-scoped models add
TenantMixin, mutable accounts and documents add AuditedMixin
(soft delete via deleted_at). Request handlers get their session
from get_db().
"""

from datetime import datetime

from sqlalchemy import create_engine, DateTime, String
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Mapped, mapped_column

from shop_ledger.config import get_settings

# Stale pooled connections are detected before use.
engine = create_engine(get_settings().DATABASE_URL, pool_pre_ping=True)

# The action boundary commits or rolls back. A posting and the
# balance update it causes always share one transaction.
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


class Base(DeclarativeBase):
    pass


class TenantMixin:
    """Columns shared by every shop-scoped row."""

    shop_id: Mapped[str] = mapped_column(
        String(36), nullable=False, index=True
    )
    created_by: Mapped[str | None] = mapped_column(
        String(36), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )


class AuditedMixin(TenantMixin):
    """Mutable, soft-deletable rows."""

    updated_by: Mapped[str | None] = mapped_column(
        String(36), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True, default=None
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


def get_db():
    """FastAPI dependency: one session per request, always closed."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
