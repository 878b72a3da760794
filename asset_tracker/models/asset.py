import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from asset_tracker.core.clock import utcnow
from asset_tracker.core.db import Base
from asset_tracker.models.enums import AssetCondition, AssetStatus, check_in

if TYPE_CHECKING:
    from .equipment_type import EquipmentType
    from .military_base import MilitaryBase
    from .purchase import Purchase


class Asset(Base):
    """
    One tracked unit, or a batch of a fungible item, sitting at a base.

    Status flow is driven by the workflows, never set freely:
    - AVAILABLE -> IN_TRANSIT (transfer initiated) -> AVAILABLE at destination
    - AVAILABLE -> ASSIGNED (assignment) -> AVAILABLE / MAINTENANCE / EXPENDED
    - AVAILABLE | ASSIGNED -> EXPENDED (expenditure completed)
    """
    __tablename__ = "assets"
    __table_args__ = (
        CheckConstraint(check_in("status", AssetStatus), name="asset_status_check"),
        CheckConstraint(check_in("condition", AssetCondition), name="asset_condition_check"),
        CheckConstraint("quantity >= 0", name="asset_quantity_check"),
        Index("ix_assets_pool", "equipment_type_id", "current_base_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    serial_number: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    equipment_type_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("equipment_types.id"), nullable=False
    )
    current_base_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bases.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=AssetStatus.AVAILABLE.value)
    condition: Mapped[str] = mapped_column(String(20), nullable=False, default=AssetCondition.NEW.value)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    purchase_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("purchases.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    equipment_type: Mapped["EquipmentType"] = relationship("EquipmentType")
    current_base: Mapped["MilitaryBase"] = relationship("MilitaryBase")
    purchase: Mapped[Optional["Purchase"]] = relationship("Purchase", back_populates="assets")
