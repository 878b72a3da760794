import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from asset_tracker.core.clock import utcnow
from asset_tracker.core.db import Base
from asset_tracker.models.enums import ExpenditureReason, ExpenditureStatus, check_in

if TYPE_CHECKING:
    from .asset import Asset
    from .equipment_type import EquipmentType
    from .military_base import MilitaryBase
    from .user import User


class Expenditure(Base):
    """
    Permanent consumption of a quantity of one equipment type at a base.

    Status flow: PENDING -> APPROVED -> COMPLETED, with CANCELLED reachable
    from PENDING and APPROVED. Backing assets are only touched on COMPLETED.
    """
    __tablename__ = "expenditures"
    __table_args__ = (
        CheckConstraint(check_in("status", ExpenditureStatus), name="expenditure_status_check"),
        CheckConstraint(check_in("reason", ExpenditureReason), name="expenditure_reason_check"),
        CheckConstraint("quantity >= 1", name="expenditure_quantity_check"),
        Index("ix_expenditures_base_date", "base_id", "expenditure_date"),
        Index("ix_expenditures_type_date", "equipment_type_id", "expenditure_date"),
        Index("ix_expenditures_status_date", "status", "expenditure_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    equipment_type_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("equipment_types.id"), nullable=False)
    base_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("bases.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    expenditure_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    reason: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ExpenditureStatus.PENDING.value)

    authorized_by_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    approved_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    approved_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    completed_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    operation_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    equipment_type: Mapped["EquipmentType"] = relationship("EquipmentType")
    base: Mapped["MilitaryBase"] = relationship("MilitaryBase")
    authorized_by: Mapped["User"] = relationship("User", foreign_keys=[authorized_by_id])
    approved_by: Mapped[Optional["User"]] = relationship("User", foreign_keys=[approved_by_id])
    completed_by: Mapped[Optional["User"]] = relationship("User", foreign_keys=[completed_by_id])
    lines: Mapped[List["ExpenditureLine"]] = relationship(
        "ExpenditureLine",
        back_populates="expenditure",
        cascade="all, delete-orphan",
        order_by="ExpenditureLine.position",
    )


class ExpenditureLine(Base):
    """One backing (asset, quantity) pair of an expenditure."""
    __tablename__ = "expenditure_lines"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="expenditure_line_quantity_check"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    expenditure_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("expenditures.id", ondelete="CASCADE"), nullable=False, index=True
    )
    asset_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("assets.id"), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    expenditure: Mapped["Expenditure"] = relationship("Expenditure", back_populates="lines")
    asset: Mapped["Asset"] = relationship("Asset")
