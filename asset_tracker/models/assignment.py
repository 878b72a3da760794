import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from asset_tracker.core.clock import utcnow
from asset_tracker.core.db import Base
from asset_tracker.models.enums import AssignmentStatus, check_in

if TYPE_CHECKING:
    from .asset import Asset
    from .military_base import MilitaryBase
    from .user import User


class Assignment(Base):
    """
    Custody of one asset by one person.

    ACTIVE is the only open status; RETURNED, LOST, DAMAGED and EXPENDED are
    terminal. At most one ACTIVE assignment exists per asset.
    """
    __tablename__ = "assignments"
    __table_args__ = (
        CheckConstraint(check_in("status", AssignmentStatus), name="assignment_status_check"),
        Index("ix_assignments_asset_status", "asset_id", "status"),
        Index("ix_assignments_base_date", "base_id", "assignment_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    asset_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("assets.id"), nullable=False)
    assigned_to_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    base_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("bases.id"), nullable=False)

    assignment_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    expected_return_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    actual_return_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=AssignmentStatus.ACTIVE.value)

    assigned_by_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    purpose: Mapped[str | None] = mapped_column(String(200), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    asset: Mapped["Asset"] = relationship("Asset")
    assigned_to: Mapped["User"] = relationship("User", foreign_keys=[assigned_to_id])
    assigned_by: Mapped["User"] = relationship("User", foreign_keys=[assigned_by_id])
    base: Mapped["MilitaryBase"] = relationship("MilitaryBase")
