from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
import uuid

from asset_tracker.models.enums import AssetCondition, AssignmentStatus
from asset_tracker.schemas.common import AssetRef, BaseRef, UserRef


class AssignmentCreate(BaseModel):
    asset_id: uuid.UUID
    assigned_to_id: uuid.UUID
    expected_return_date: datetime | None = None
    purpose: str | None = Field(default=None, max_length=200)
    notes: str | None = None


class AssignmentUpdate(BaseModel):
    expected_return_date: datetime | None = None
    purpose: str | None = Field(default=None, max_length=200)
    notes: str | None = None


class ReturnIn(BaseModel):
    condition: AssetCondition | None = None


class LossIn(BaseModel):
    status: AssignmentStatus


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    asset: AssetRef
    assigned_to: UserRef
    base: BaseRef
    assignment_date: datetime
    expected_return_date: datetime | None = None
    actual_return_date: datetime | None = None
    status: str
    assigned_by: UserRef
    purpose: str | None = None
    notes: str | None = None
