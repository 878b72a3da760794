from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from decimal import Decimal
import uuid

from asset_tracker.models.enums import PurchaseStatus
from asset_tracker.schemas.common import AssetRef, BaseRef, EquipmentTypeRef, UserRef


class PurchaseCreate(BaseModel):
    base_id: uuid.UUID
    equipment_type_id: uuid.UUID
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0, max_digits=14, decimal_places=2)
    supplier_name: str | None = Field(default=None, max_length=120)
    supplier_contact: str | None = Field(default=None, max_length=120)
    supplier_address: str | None = Field(default=None, max_length=200)
    purchase_date: datetime | None = None
    delivery_date: datetime | None = None
    status: PurchaseStatus | None = None
    notes: str | None = None


class PurchaseUpdate(BaseModel):
    base_id: uuid.UUID | None = None
    equipment_type_id: uuid.UUID | None = None
    quantity: int | None = Field(default=None, ge=1)
    unit_price: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=2)
    supplier_name: str | None = Field(default=None, max_length=120)
    supplier_contact: str | None = Field(default=None, max_length=120)
    supplier_address: str | None = Field(default=None, max_length=200)
    purchase_date: datetime | None = None
    delivery_date: datetime | None = None
    status: PurchaseStatus | None = None
    notes: str | None = None


class PurchaseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    base: BaseRef
    equipment_type: EquipmentTypeRef
    quantity: int
    unit_price: Decimal
    total_amount: Decimal
    supplier_name: str | None = None
    supplier_contact: str | None = None
    supplier_address: str | None = None
    purchase_date: datetime
    delivery_date: datetime | None = None
    status: str
    created_by: UserRef
    assets: list[AssetRef] = []
    notes: str | None = None
    created_at: datetime
