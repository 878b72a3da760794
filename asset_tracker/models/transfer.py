import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from asset_tracker.core.clock import utcnow
from asset_tracker.core.db import Base
from asset_tracker.models.enums import TransferStatus, check_in

if TYPE_CHECKING:
    from .asset import Asset
    from .equipment_type import EquipmentType
    from .military_base import MilitaryBase
    from .user import User


class Transfer(Base):
    """
    Movement of a quantity of one equipment type between two bases.

    Status flow:
    - INITIATED: assets reserved (IN_TRANSIT), awaiting approval
    - IN_TRANSIT: approved, on the move
    - COMPLETED: assets re-homed at to_base and AVAILABLE again
    - CANCELLED: assets released back to AVAILABLE at from_base
    """
    __tablename__ = "transfers"
    __table_args__ = (
        CheckConstraint(check_in("status", TransferStatus), name="transfer_status_check"),
        CheckConstraint("total_quantity >= 1", name="transfer_total_quantity_check"),
        CheckConstraint("from_base_id <> to_base_id", name="transfer_distinct_bases_check"),
        Index("ix_transfers_from_date", "from_base_id", "transfer_date"),
        Index("ix_transfers_to_date", "to_base_id", "transfer_date"),
        Index("ix_transfers_status_date", "status", "transfer_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    from_base_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("bases.id"), nullable=False)
    to_base_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("bases.id"), nullable=False)
    equipment_type_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("equipment_types.id"), nullable=False)

    total_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=TransferStatus.INITIATED.value, index=True)

    initiated_by_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    approved_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    completed_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)

    transfer_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    completion_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    transport_details: Mapped[str] = mapped_column(Text, nullable=False, default="No transport details provided")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    from_base: Mapped["MilitaryBase"] = relationship("MilitaryBase", foreign_keys=[from_base_id])
    to_base: Mapped["MilitaryBase"] = relationship("MilitaryBase", foreign_keys=[to_base_id])
    equipment_type: Mapped["EquipmentType"] = relationship("EquipmentType")
    initiated_by: Mapped["User"] = relationship("User", foreign_keys=[initiated_by_id])
    approved_by: Mapped[Optional["User"]] = relationship("User", foreign_keys=[approved_by_id])
    completed_by: Mapped[Optional["User"]] = relationship("User", foreign_keys=[completed_by_id])
    lines: Mapped[List["TransferLine"]] = relationship(
        "TransferLine",
        back_populates="transfer",
        cascade="all, delete-orphan",
        order_by="TransferLine.position",
    )


class TransferLine(Base):
    """One (asset, quantity) leg of a transfer."""
    __tablename__ = "transfer_lines"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="transfer_line_quantity_check"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    transfer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("transfers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    asset_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("assets.id"), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    transfer: Mapped["Transfer"] = relationship("Transfer", back_populates="lines")
    asset: Mapped["Asset"] = relationship("Asset")
