"""
Audit log model.

Records significant events (soft deletes, transfers, rejected
concurrent writes, reconciliation repairs) so that every change
to a balance can be traced back to who did it and why.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, Text, event
from sqlalchemy.orm import Mapped, mapped_column

from shop_ledger.exceptions import ImmutableEntryError
from shop_ledger.models.base import Base


class AuditLog(Base):
    """
    Immutable record of a system event.

    Like ledger entries, audit logs are append-only.
    """

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    shop_id: Mapped[str | None] = mapped_column(
        String(36), nullable=True, index=True
    )
    actor_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    details: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )


@event.listens_for(AuditLog, "before_update")
def _refuse_update(mapper, connection, target):
    raise ImmutableEntryError(f"Audit record {target.id} is immutable")


@event.listens_for(AuditLog, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise ImmutableEntryError(f"Audit record {target.id} is immutable")
