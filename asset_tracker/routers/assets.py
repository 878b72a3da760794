import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from asset_tracker.deps import get_current_user, get_db, require_roles
from asset_tracker.models.enums import AssetCondition, AssetStatus, Role
from asset_tracker.models.user import User
from asset_tracker.schemas.asset import AssetCreate, AssetOut, AssetUpdate
from asset_tracker.schemas.common import DeletedOut
from asset_tracker.services import asset_service

router = APIRouter(prefix="/assets", tags=["assets"])

logistics = require_roles(Role.LOGISTICS_OFFICER)
staff = require_roles(Role.BASE_COMMANDER, Role.LOGISTICS_OFFICER)


@router.post("", response_model=AssetOut, status_code=201)
def create_asset(payload: AssetCreate, db: Session = Depends(get_db), user: User = Depends(logistics)):
    return AssetOut.model_validate(asset_service.create_asset(db, user, payload))


@router.get("", response_model=list[AssetOut])
def list_assets(
    base_id: uuid.UUID | None = None,
    equipment_type_id: uuid.UUID | None = None,
    status: AssetStatus | None = None,
    condition: AssetCondition | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(staff),
):
    assets = asset_service.list_assets(
        db, user,
        base_id=base_id,
        equipment_type_id=equipment_type_id,
        status=status.value if status else None,
        condition=condition.value if condition else None,
    )
    return [AssetOut.model_validate(a) for a in assets]


@router.get("/base", response_model=list[AssetOut])
def my_base_assets(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if not user.assigned_base_id:
        raise HTTPException(status_code=400, detail="User has no assigned base")
    assets = asset_service.list_assets(db, user, base_id=user.assigned_base_id)
    return [AssetOut.model_validate(a) for a in assets]


@router.get("/{asset_id}", response_model=AssetOut)
def get_asset(asset_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(staff)):
    return AssetOut.model_validate(asset_service.get_asset(db, user, asset_id))


@router.patch("/{asset_id}", response_model=AssetOut)
def update_asset(
    asset_id: uuid.UUID,
    payload: AssetUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(staff),
):
    return AssetOut.model_validate(asset_service.update_asset(db, user, asset_id, payload))


@router.delete("/{asset_id}", response_model=DeletedOut)
def delete_asset(
    asset_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(Role.ADMIN)),
):
    return DeletedOut(**asset_service.delete_asset(db, user, asset_id))
