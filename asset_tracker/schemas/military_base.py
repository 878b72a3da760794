from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
import uuid


class BaseCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    code: str = Field(min_length=1, max_length=32)
    location: str = Field(min_length=1, max_length=200)
    contact_info: str | None = Field(default=None, max_length=200)


class BaseUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    code: str | None = Field(default=None, min_length=1, max_length=32)
    location: str | None = Field(default=None, min_length=1, max_length=200)
    contact_info: str | None = Field(default=None, max_length=200)
    is_active: bool | None = None


class BaseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    code: str
    location: str
    contact_info: str
    is_active: bool
    created_at: datetime
