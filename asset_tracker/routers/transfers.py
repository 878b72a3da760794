import uuid
from typing import Literal

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from asset_tracker.deps import get_db, require_roles
from asset_tracker.models.enums import Role, TransferStatus
from asset_tracker.models.user import User
from asset_tracker.schemas.transfer import TransferCreate, TransferOut, TransferUpdate
from asset_tracker.services import transfer_service

router = APIRouter(prefix="/transfers", tags=["transfers"])

logistics = require_roles(Role.LOGISTICS_OFFICER)
staff = require_roles(Role.BASE_COMMANDER, Role.LOGISTICS_OFFICER)
commander = require_roles(Role.BASE_COMMANDER)


@router.post("", response_model=TransferOut, status_code=201)
def initiate_transfer(payload: TransferCreate, db: Session = Depends(get_db), user: User = Depends(staff)):
    return TransferOut.model_validate(transfer_service.initiate(db, user, payload))


@router.get("", response_model=list[TransferOut])
def list_transfers(
    status: TransferStatus | None = None,
    from_base_id: uuid.UUID | None = None,
    to_base_id: uuid.UUID | None = None,
    equipment_type_id: uuid.UUID | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(staff),
):
    transfers = transfer_service.list_transfers(
        db, user,
        status=status.value if status else None,
        from_base_id=from_base_id,
        to_base_id=to_base_id,
        equipment_type_id=equipment_type_id,
    )
    return [TransferOut.model_validate(t) for t in transfers]


@router.get("/base", response_model=list[TransferOut])
def my_base_transfers(
    direction: Literal["in", "out", "all"] = "all",
    db: Session = Depends(get_db),
    user: User = Depends(commander),
):
    return [TransferOut.model_validate(t) for t in transfer_service.list_for_base(db, user, direction)]


@router.get("/{transfer_id}", response_model=TransferOut)
def get_transfer(transfer_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(staff)):
    return TransferOut.model_validate(transfer_service.get_transfer(db, user, transfer_id))


@router.post("/{transfer_id}/approve", response_model=TransferOut)
def approve_transfer(transfer_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(logistics)):
    return TransferOut.model_validate(transfer_service.approve(db, user, transfer_id))


@router.post("/{transfer_id}/complete", response_model=TransferOut)
def complete_transfer(transfer_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(staff)):
    return TransferOut.model_validate(transfer_service.complete(db, user, transfer_id))


@router.post("/{transfer_id}/cancel", response_model=TransferOut)
def cancel_transfer(transfer_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(staff)):
    return TransferOut.model_validate(transfer_service.cancel(db, user, transfer_id))


@router.patch("/{transfer_id}", response_model=TransferOut)
def update_transfer(
    transfer_id: uuid.UUID,
    payload: TransferUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(staff),
):
    return TransferOut.model_validate(transfer_service.update(db, user, transfer_id, payload))
