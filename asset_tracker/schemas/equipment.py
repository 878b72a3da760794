from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
import uuid

from asset_tracker.models.enums import EquipmentCategory


class EquipmentTypeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    category: EquipmentCategory
    code: str = Field(min_length=1, max_length=32)
    description: str | None = None


class EquipmentTypeUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    category: EquipmentCategory | None = None
    code: str | None = Field(default=None, min_length=1, max_length=32)
    description: str | None = None
    is_active: bool | None = None


class EquipmentTypeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    category: str
    code: str
    description: str | None = None
    is_active: bool
    created_at: datetime
