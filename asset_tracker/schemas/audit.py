from pydantic import BaseModel, ConfigDict
from datetime import datetime
import uuid

from asset_tracker.schemas.common import Pagination


class AuditLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    action: str
    model: str
    record_id: uuid.UUID
    user_id: uuid.UUID | None = None
    details: dict | None = None
    created_at: datetime


class AuditLogPage(BaseModel):
    logs: list[AuditLogOut]
    pagination: Pagination
