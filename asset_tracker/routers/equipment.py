import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session
from asset_tracker.deps import get_current_user, get_db, require_roles
from asset_tracker.models.enums import EquipmentCategory, Role
from asset_tracker.models.equipment_type import EquipmentType
from asset_tracker.models.user import User
from asset_tracker.schemas.equipment import EquipmentTypeCreate, EquipmentTypeOut, EquipmentTypeUpdate
from asset_tracker.services import audit_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/equipment-types", tags=["equipment"])

admin_only = require_roles(Role.ADMIN)


def _ensure_unique(db: Session, name: str | None, code: str | None, exclude_id=None):
    conds = []
    if name:
        conds.append(EquipmentType.name == name)
    if code:
        conds.append(EquipmentType.code == code.upper())
    if not conds:
        return
    q = db.query(EquipmentType).filter(or_(*conds))
    if exclude_id is not None:
        q = q.filter(EquipmentType.id != exclude_id)
    if q.first():
        raise HTTPException(status_code=400, detail="Equipment type name or code already exists")


@router.post("", response_model=EquipmentTypeOut, status_code=201)
def create_equipment_type(
    payload: EquipmentTypeCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only),
):
    _ensure_unique(db, payload.name, payload.code)
    et = EquipmentType(
        name=payload.name,
        category=payload.category.value,
        code=payload.code.upper(),
        description=payload.description,
    )
    try:
        db.add(et)
        db.flush()
        audit_service.record(db, admin, "create", "EquipmentType", et.id, code=et.code)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(et)
    logger.info(f"[Equipment] Created {et.code}")
    return EquipmentTypeOut.model_validate(et)


@router.get("", response_model=list[EquipmentTypeOut])
def list_equipment_types(
    category: EquipmentCategory | None = None,
    active: bool | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    q = db.query(EquipmentType)
    if category:
        q = q.filter(EquipmentType.category == category.value)
    if active is not None:
        q = q.filter(EquipmentType.is_active.is_(active))
    return [EquipmentTypeOut.model_validate(e) for e in q.order_by(EquipmentType.name).all()]


@router.get("/{equipment_type_id}", response_model=EquipmentTypeOut)
def get_equipment_type(
    equipment_type_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    et = db.get(EquipmentType, equipment_type_id)
    if not et:
        raise HTTPException(status_code=404, detail="Equipment type not found")
    return EquipmentTypeOut.model_validate(et)


@router.patch("/{equipment_type_id}", response_model=EquipmentTypeOut)
def update_equipment_type(
    equipment_type_id: uuid.UUID,
    payload: EquipmentTypeUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only),
):
    et = db.get(EquipmentType, equipment_type_id)
    if not et:
        raise HTTPException(status_code=404, detail="Equipment type not found")
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    _ensure_unique(db, data.get("name"), data.get("code"), exclude_id=et.id)
    if "code" in data:
        data["code"] = data["code"].upper()
    if "category" in data:
        data["category"] = data["category"].value

    try:
        for key, value in data.items():
            setattr(et, key, value)
        audit_service.record(db, admin, "update", "EquipmentType", et.id, fields=sorted(data))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(et)
    return EquipmentTypeOut.model_validate(et)
