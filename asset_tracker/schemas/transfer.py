from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
import uuid

from asset_tracker.schemas.common import AssetRef, BaseRef, EquipmentTypeRef, UserRef


class TransferCreate(BaseModel):
    from_base_id: uuid.UUID
    to_base_id: uuid.UUID
    equipment_type_id: uuid.UUID
    quantity: int = Field(ge=1)
    asset_ids: list[uuid.UUID] | None = None
    transfer_date: datetime | None = None
    transport_details: str | None = None
    notes: str | None = None


class TransferUpdate(BaseModel):
    transport_details: str | None = None
    notes: str | None = None


class TransferLineOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    asset: AssetRef
    quantity: int


class TransferOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    from_base: BaseRef
    to_base: BaseRef
    equipment_type: EquipmentTypeRef
    lines: list[TransferLineOut]
    total_quantity: int
    status: str
    initiated_by: UserRef
    approved_by: UserRef | None = None
    completed_by: UserRef | None = None
    transfer_date: datetime
    completion_date: datetime | None = None
    transport_details: str
    notes: str | None = None
    created_at: datetime
