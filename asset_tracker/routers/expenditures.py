import uuid
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from asset_tracker.deps import get_db, require_roles
from asset_tracker.models.enums import ExpenditureReason, ExpenditureStatus, Role
from asset_tracker.models.user import User
from asset_tracker.schemas.common import DeletedOut
from asset_tracker.schemas.expenditure import CancelIn, ExpenditureCreate, ExpenditureOut, ExpenditureUpdate
from asset_tracker.services import expenditure_service

router = APIRouter(prefix="/expenditures", tags=["expenditures"])

staff = require_roles(Role.BASE_COMMANDER, Role.LOGISTICS_OFFICER)
commander = require_roles(Role.BASE_COMMANDER)


@router.post("", response_model=ExpenditureOut, status_code=201)
def create_expenditure(payload: ExpenditureCreate, db: Session = Depends(get_db), user: User = Depends(staff)):
    return ExpenditureOut.model_validate(expenditure_service.create(db, user, payload))


@router.get("", response_model=list[ExpenditureOut])
def list_expenditures(
    base_id: uuid.UUID | None = None,
    status: ExpenditureStatus | None = None,
    reason: ExpenditureReason | None = None,
    equipment_type_id: uuid.UUID | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(staff),
):
    expenditures = expenditure_service.list_expenditures(
        db, user,
        base_id=base_id,
        status=status.value if status else None,
        reason=reason.value if reason else None,
        equipment_type_id=equipment_type_id,
        start_date=start_date,
        end_date=end_date,
    )
    return [ExpenditureOut.model_validate(e) for e in expenditures]


@router.get("/base", response_model=list[ExpenditureOut])
def my_base_expenditures(
    status: ExpenditureStatus | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(commander),
):
    expenditures = expenditure_service.list_for_base(db, user, status=status.value if status else None)
    return [ExpenditureOut.model_validate(e) for e in expenditures]


@router.get("/{expenditure_id}", response_model=ExpenditureOut)
def get_expenditure(expenditure_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(staff)):
    return ExpenditureOut.model_validate(expenditure_service.get_expenditure(db, user, expenditure_id))


@router.post("/{expenditure_id}/approve", response_model=ExpenditureOut)
def approve_expenditure(expenditure_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(staff)):
    return ExpenditureOut.model_validate(expenditure_service.approve(db, user, expenditure_id))


@router.post("/{expenditure_id}/complete", response_model=ExpenditureOut)
def complete_expenditure(expenditure_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(staff)):
    return ExpenditureOut.model_validate(expenditure_service.complete(db, user, expenditure_id))


@router.post("/{expenditure_id}/cancel", response_model=ExpenditureOut)
def cancel_expenditure(
    expenditure_id: uuid.UUID,
    payload: CancelIn | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(staff),
):
    reason = payload.reason if payload else None
    return ExpenditureOut.model_validate(expenditure_service.cancel(db, user, expenditure_id, reason))


@router.patch("/{expenditure_id}", response_model=ExpenditureOut)
def update_expenditure(
    expenditure_id: uuid.UUID,
    payload: ExpenditureUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(staff),
):
    return ExpenditureOut.model_validate(expenditure_service.update(db, user, expenditure_id, payload))


@router.delete("/{expenditure_id}", response_model=DeletedOut)
def delete_expenditure(
    expenditure_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(Role.ADMIN)),
):
    return DeletedOut(**expenditure_service.delete(db, user, expenditure_id))
