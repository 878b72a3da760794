import uuid
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from asset_tracker.deps import get_current_user, get_db, require_roles
from asset_tracker.models.enums import AssignmentStatus, Role
from asset_tracker.models.user import User
from asset_tracker.schemas.assignment import AssignmentCreate, AssignmentOut, AssignmentUpdate, LossIn, ReturnIn
from asset_tracker.schemas.common import DeletedOut
from asset_tracker.services import assignment_service

router = APIRouter(prefix="/assignments", tags=["assignments"])

commander = require_roles(Role.BASE_COMMANDER)


@router.post("", response_model=AssignmentOut, status_code=201)
def create_assignment(payload: AssignmentCreate, db: Session = Depends(get_db), user: User = Depends(commander)):
    return AssignmentOut.model_validate(assignment_service.create(db, user, payload))


@router.get("", response_model=list[AssignmentOut])
def list_assignments(
    base_id: uuid.UUID | None = None,
    status: AssignmentStatus | None = None,
    assigned_to_id: uuid.UUID | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(commander),
):
    assignments = assignment_service.list_assignments(
        db, user,
        base_id=base_id,
        status=status.value if status else None,
        assigned_to_id=assigned_to_id,
        start_date=start_date,
        end_date=end_date,
    )
    return [AssignmentOut.model_validate(a) for a in assignments]


@router.get("/base", response_model=list[AssignmentOut])
def my_base_assignments(db: Session = Depends(get_db), user: User = Depends(commander)):
    return [AssignmentOut.model_validate(a) for a in assignment_service.list_for_base(db, user)]


@router.get("/{assignment_id}", response_model=AssignmentOut)
def get_assignment(assignment_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return AssignmentOut.model_validate(assignment_service.get_assignment(db, user, assignment_id))


@router.post("/{assignment_id}/return", response_model=AssignmentOut)
def return_assignment(
    assignment_id: uuid.UUID,
    payload: ReturnIn | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(commander),
):
    condition = payload.condition if payload else None
    return AssignmentOut.model_validate(assignment_service.return_asset(db, user, assignment_id, condition))


@router.post("/{assignment_id}/loss", response_model=AssignmentOut)
def mark_lost_or_damaged(
    assignment_id: uuid.UUID,
    payload: LossIn,
    db: Session = Depends(get_db),
    user: User = Depends(commander),
):
    return AssignmentOut.model_validate(
        assignment_service.mark_lost_or_damaged(db, user, assignment_id, payload.status)
    )


@router.patch("/{assignment_id}", response_model=AssignmentOut)
def update_assignment(
    assignment_id: uuid.UUID,
    payload: AssignmentUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(commander),
):
    return AssignmentOut.model_validate(assignment_service.update(db, user, assignment_id, payload))


@router.delete("/{assignment_id}", response_model=DeletedOut)
def delete_assignment(assignment_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(commander)):
    return DeletedOut(**assignment_service.delete(db, user, assignment_id))
