import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from asset_tracker.core.security import hash_password
from asset_tracker.deps import get_current_user, get_db, require_roles
from asset_tracker.models.enums import Role
from asset_tracker.models.military_base import MilitaryBase
from asset_tracker.models.user import User
from asset_tracker.schemas.user import BaseAssignmentUpdate, RoleUpdate, UserCreate, UserOut
from asset_tracker.services import audit_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

admin_only = require_roles(Role.ADMIN)


def _get_user(db: Session, user_id: uuid.UUID) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _check_base(db: Session, base_id):
    if base_id is not None and not db.get(MilitaryBase, base_id):
        raise HTTPException(status_code=404, detail="Base not found")


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return UserOut.model_validate(user)


@router.post("", response_model=UserOut, status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    if db.query(User).filter(User.username == payload.username).first():
        raise HTTPException(status_code=400, detail="Username already used")
    if payload.role == Role.BASE_COMMANDER and payload.assigned_base_id is None:
        raise HTTPException(status_code=400, detail="Base commanders must have an assigned base")
    _check_base(db, payload.assigned_base_id)

    user = User(
        username=payload.username,
        fullname=payload.fullname,
        password_hash=hash_password(payload.password),
        role=payload.role.value,
        assigned_base_id=payload.assigned_base_id,
    )
    try:
        db.add(user)
        db.flush()
        audit_service.record(db, admin, "create", "User", user.id, role=user.role)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    logger.info(f"[Users] Created {user.username} ({user.role})")
    return UserOut.model_validate(user)


@router.get("", response_model=list[UserOut])
def list_users(
    role: Role | None = None,
    base_id: uuid.UUID | None = None,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only),
):
    q = db.query(User)
    if role:
        q = q.filter(User.role == role.value)
    if base_id:
        q = q.filter(User.assigned_base_id == base_id)
    return [UserOut.model_validate(u) for u in q.order_by(User.username).all()]


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: uuid.UUID, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    return UserOut.model_validate(_get_user(db, user_id))


@router.patch("/{user_id}/role", response_model=UserOut)
def change_role(
    user_id: uuid.UUID,
    payload: RoleUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only),
):
    user = _get_user(db, user_id)
    if payload.role == Role.BASE_COMMANDER and user.assigned_base_id is None:
        raise HTTPException(status_code=400, detail="Assign a base before promoting to base commander")

    try:
        user.role = payload.role.value
        audit_service.record(db, admin, "change_role", "User", user.id, role=user.role)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    logger.info(f"[Users] {user.username} is now {user.role}")
    return UserOut.model_validate(user)


@router.patch("/{user_id}/base", response_model=UserOut)
def assign_base(
    user_id: uuid.UUID,
    payload: BaseAssignmentUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only),
):
    user = _get_user(db, user_id)
    _check_base(db, payload.assigned_base_id)
    if payload.assigned_base_id is None and user.role == Role.BASE_COMMANDER.value:
        raise HTTPException(status_code=400, detail="Base commanders must have an assigned base")

    try:
        user.assigned_base_id = payload.assigned_base_id
        audit_service.record(db, admin, "assign_base", "User", user.id, base_id=payload.assigned_base_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    return UserOut.model_validate(user)
