"""
Shared output fragments: the populated references embedded in workflow
records, and list pagination.
"""
from pydantic import BaseModel, ConfigDict
import uuid


class BaseRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    code: str
    location: str


class EquipmentTypeRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    category: str
    code: str


class UserRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    fullname: str


class AssetRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    serial_number: str
    status: str
    condition: str
    quantity: int


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_records: int
    has_next: bool
    has_prev: bool


class DeletedOut(BaseModel):
    deleted_id: uuid.UUID
    status: str | None = None
    serial_number: str | None = None
