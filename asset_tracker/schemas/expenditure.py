from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
import uuid

from asset_tracker.models.enums import ExpenditureReason
from asset_tracker.schemas.common import AssetRef, BaseRef, EquipmentTypeRef, UserRef


class ExpenditureCreate(BaseModel):
    equipment_type_id: uuid.UUID
    base_id: uuid.UUID
    quantity: int = Field(ge=1)
    reason: ExpenditureReason
    asset_ids: list[uuid.UUID] | None = None
    expenditure_date: datetime | None = None
    operation_details: str | None = None
    notes: str | None = None


class ExpenditureUpdate(BaseModel):
    quantity: int | None = Field(default=None, ge=1)
    reason: ExpenditureReason | None = None
    expenditure_date: datetime | None = None
    operation_details: str | None = None
    notes: str | None = None


class CancelIn(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class ExpenditureLineOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    asset: AssetRef
    quantity: int


class ExpenditureOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    equipment_type: EquipmentTypeRef
    base: BaseRef
    quantity: int
    expenditure_date: datetime
    reason: str
    lines: list[ExpenditureLineOut]
    status: str
    authorized_by: UserRef
    approved_by: UserRef | None = None
    approved_date: datetime | None = None
    completed_by: UserRef | None = None
    completed_date: datetime | None = None
    operation_details: str | None = None
    notes: str | None = None
