import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session
from asset_tracker.deps import get_current_user, get_db, require_roles
from asset_tracker.models.enums import Role
from asset_tracker.models.military_base import MilitaryBase
from asset_tracker.models.user import User
from asset_tracker.schemas.military_base import BaseCreate, BaseOut, BaseUpdate
from asset_tracker.services import access, audit_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bases", tags=["bases"])

admin_only = require_roles(Role.ADMIN)


def _ensure_unique(db: Session, name: str | None, code: str | None, exclude_id=None):
    conds = []
    if name:
        conds.append(MilitaryBase.name == name)
    if code:
        conds.append(MilitaryBase.code == code.upper())
    if not conds:
        return
    q = db.query(MilitaryBase).filter(or_(*conds))
    if exclude_id is not None:
        q = q.filter(MilitaryBase.id != exclude_id)
    if q.first():
        raise HTTPException(status_code=400, detail="Base name or code already exists")


@router.post("", response_model=BaseOut, status_code=201)
def create_base(payload: BaseCreate, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    _ensure_unique(db, payload.name, payload.code)
    base = MilitaryBase(
        name=payload.name,
        code=payload.code.upper(),
        location=payload.location,
    )
    if payload.contact_info:
        base.contact_info = payload.contact_info
    try:
        db.add(base)
        db.flush()
        audit_service.record(db, admin, "create", "Base", base.id, code=base.code)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(base)
    logger.info(f"[Bases] Created {base.code}")
    return BaseOut.model_validate(base)


@router.get("", response_model=list[BaseOut])
def list_bases(
    active: bool | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    q = db.query(MilitaryBase)
    if access.is_base_commander(user):
        q = q.filter(MilitaryBase.id == user.assigned_base_id)
    if active is not None:
        q = q.filter(MilitaryBase.is_active.is_(active))
    return [BaseOut.model_validate(b) for b in q.order_by(MilitaryBase.name).all()]


@router.get("/{base_id}", response_model=BaseOut)
def get_base(base_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    base = db.get(MilitaryBase, base_id)
    if not base:
        raise HTTPException(status_code=404, detail="Base not found")
    if access.is_base_commander(user) and not access.can_access_base(user, base.id):
        raise HTTPException(status_code=403, detail="Access denied. You can only view your assigned base")
    return BaseOut.model_validate(base)


@router.patch("/{base_id}", response_model=BaseOut)
def update_base(
    base_id: uuid.UUID,
    payload: BaseUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only),
):
    base = db.get(MilitaryBase, base_id)
    if not base:
        raise HTTPException(status_code=404, detail="Base not found")
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    _ensure_unique(db, data.get("name"), data.get("code"), exclude_id=base.id)
    if "code" in data:
        data["code"] = data["code"].upper()

    try:
        for key, value in data.items():
            setattr(base, key, value)
        audit_service.record(db, admin, "update", "Base", base.id, fields=sorted(data))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(base)
    return BaseOut.model_validate(base)
