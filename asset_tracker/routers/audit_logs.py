import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from asset_tracker.deps import get_db, require_roles
from asset_tracker.models.enums import Role
from asset_tracker.models.user import User
from asset_tracker.schemas.audit import AuditLogOut, AuditLogPage
from asset_tracker.services import audit_service

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("", response_model=AuditLogPage)
def list_audit_logs(
    model: str | None = None,
    action: str | None = None,
    user_id: uuid.UUID | None = None,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles(Role.ADMIN)),
):
    logs, pagination = audit_service.list_logs(db, model=model, action=action, user_id=user_id, page=page, limit=limit)
    return AuditLogPage(logs=[AuditLogOut.model_validate(entry) for entry in logs], pagination=pagination)
