from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
import uuid

from asset_tracker.models.enums import Role
from asset_tracker.schemas.common import BaseRef


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=64)
    fullname: str = Field(min_length=1, max_length=120)
    # Argon2 copes with long passwords; cap at 200 chars anyway.
    password: str = Field(min_length=8, max_length=200)
    role: Role = Role.USER
    assigned_base_id: uuid.UUID | None = None


class RoleUpdate(BaseModel):
    role: Role


class BaseAssignmentUpdate(BaseModel):
    assigned_base_id: uuid.UUID | None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    fullname: str
    role: str
    is_admin: bool
    is_active: bool
    assigned_base: BaseRef | None = None
    created_at: datetime
