import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from asset_tracker.core.clock import utcnow
from asset_tracker.core.db import Base
from asset_tracker.models.enums import PurchaseStatus, check_in

if TYPE_CHECKING:
    from .asset import Asset
    from .equipment_type import EquipmentType
    from .military_base import MilitaryBase
    from .user import User


class Purchase(Base):
    """
    Procurement record. ``total_amount`` is always quantity * unit_price.
    Delivery creates the backing asset at ``base_id``.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        CheckConstraint(check_in("status", PurchaseStatus), name="purchase_status_check"),
        CheckConstraint("quantity >= 1", name="purchase_quantity_check"),
        CheckConstraint("unit_price >= 0", name="purchase_unit_price_check"),
        Index("ix_purchases_base_date", "base_id", "purchase_date"),
        Index("ix_purchases_type_date", "equipment_type_id", "purchase_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    base_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("bases.id"), nullable=False)
    equipment_type_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("equipment_types.id"), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)

    supplier_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    supplier_contact: Mapped[str | None] = mapped_column(String(120), nullable=True)
    supplier_address: Mapped[str | None] = mapped_column(String(200), nullable=True)

    purchase_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    delivery_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=PurchaseStatus.ORDERED.value)

    created_by_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    base: Mapped["MilitaryBase"] = relationship("MilitaryBase")
    equipment_type: Mapped["EquipmentType"] = relationship("EquipmentType")
    created_by: Mapped["User"] = relationship("User")
    assets: Mapped[List["Asset"]] = relationship("Asset", back_populates="purchase")
