import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from tenant_access.db.base import Base
from tenant_access.models.timestamps import utcnow


class Invite(Base):
    """
    Outstanding invitation. Rows are deleted on acceptance or cancellation,
    so every stored row is pending and the (tenant_id, email) constraint is
    the one-outstanding-invite rule.
    """

    __tablename__ = "invites"
    __table_args__ = (
        UniqueConstraint("token", name="uq_invites_token"),
        UniqueConstraint("tenant_id", "email", name="uq_invites_tenant_email"),
        Index("ix_invites_tenant_created_at", "tenant_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
    )

    email: Mapped[str] = mapped_column(String(320), nullable=False)
    role: Mapped[str] = mapped_column(String(30), nullable=False, default="EMPLOYEE")

    token: Mapped[str] = mapped_column(String(200), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
