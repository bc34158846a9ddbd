# tenant_access/models/membership.py

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from tenant_access.db.base import Base
from tenant_access.models.timestamps import utcnow


class Membership(Base):
    __tablename__ = "memberships"
    __table_args__ = (
        # at most one membership per (account, tenant), enforced by the database
        UniqueConstraint("tenant_id", "account_id", name="uq_memberships_tenant_account"),
        Index("ix_memberships_tenant_created_at", "tenant_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )

    # tenant_access.core.roles.Role value
    role: Mapped[str] = mapped_column(String(30), nullable=False, default="EMPLOYEE")

    # Permission values, catalog order. Always reassigned, never mutated in place.
    permissions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )
