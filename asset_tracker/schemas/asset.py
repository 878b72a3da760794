from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
import uuid

from asset_tracker.models.enums import AssetCondition, AssetStatus
from asset_tracker.schemas.common import BaseRef, EquipmentTypeRef


class AssetCreate(BaseModel):
    equipment_type_id: uuid.UUID
    current_base_id: uuid.UUID
    quantity: int | None = Field(default=1, ge=0)
    status: AssetStatus | None = None
    condition: AssetCondition | None = None
    purchase_id: uuid.UUID | None = None
    serial_number: str | None = Field(default=None, max_length=32)


class AssetUpdate(BaseModel):
    status: AssetStatus | None = None
    condition: AssetCondition | None = None
    quantity: int | None = Field(default=None, ge=0)
    serial_number: str | None = Field(default=None, min_length=1, max_length=32)


class AssetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    serial_number: str
    equipment_type: EquipmentTypeRef
    current_base: BaseRef
    status: str
    condition: str
    quantity: int
    purchase_id: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime
