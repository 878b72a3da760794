import uuid
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from asset_tracker.deps import get_db, require_roles
from asset_tracker.models.enums import PurchaseStatus, Role
from asset_tracker.models.user import User
from asset_tracker.schemas.common import DeletedOut
from asset_tracker.schemas.purchase import PurchaseCreate, PurchaseOut, PurchaseUpdate
from asset_tracker.services import purchase_service

router = APIRouter(prefix="/purchases", tags=["purchases"])

logistics = require_roles(Role.LOGISTICS_OFFICER)
staff = require_roles(Role.BASE_COMMANDER, Role.LOGISTICS_OFFICER)


@router.post("", response_model=PurchaseOut, status_code=201)
def create_purchase(payload: PurchaseCreate, db: Session = Depends(get_db), user: User = Depends(logistics)):
    return PurchaseOut.model_validate(purchase_service.create(db, user, payload))


@router.get("", response_model=list[PurchaseOut])
def list_purchases(
    base_id: uuid.UUID | None = None,
    equipment_type_id: uuid.UUID | None = None,
    status: PurchaseStatus | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(staff),
):
    purchases = purchase_service.list_purchases(
        db, user,
        base_id=base_id,
        equipment_type_id=equipment_type_id,
        status=status.value if status else None,
        start_date=start_date,
        end_date=end_date,
    )
    return [PurchaseOut.model_validate(p) for p in purchases]


@router.get("/{purchase_id}", response_model=PurchaseOut)
def get_purchase(purchase_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(staff)):
    return PurchaseOut.model_validate(purchase_service.get_purchase(db, user, purchase_id))


@router.patch("/{purchase_id}", response_model=PurchaseOut)
def update_purchase(
    purchase_id: uuid.UUID,
    payload: PurchaseUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(logistics),
):
    return PurchaseOut.model_validate(purchase_service.update(db, user, purchase_id, payload))


@router.delete("/{purchase_id}", response_model=DeletedOut)
def delete_purchase(purchase_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(logistics)):
    return DeletedOut(**purchase_service.delete(db, user, purchase_id))
