"""
Assignment Workflow

ACTIVE -> RETURNED | LOST | DAMAGED | EXPENDED. Every transition also moves
the asset's status (and sometimes condition) in the same transaction.
"""
import logging

from sqlalchemy.orm import Session

from asset_tracker.core.clock import to_naive_utc, utcnow
from asset_tracker.core.db import allocation_lock, transaction
from asset_tracker.core.errors import AccessDeniedError, InvalidStateError, NotFoundError, ValidationError
from asset_tracker.models.assignment import Assignment
from asset_tracker.models.enums import AssetCondition, AssetStatus, AssignmentStatus
from asset_tracker.models.user import User
from asset_tracker.services import access, audit_service
from asset_tracker.services.asset_service import get_asset_or_404
from asset_tracker.services.state import transition

logger = logging.getLogger(__name__)

# Asset status / condition left behind by each loss outcome
LOSS_OUTCOMES = {
    AssignmentStatus.LOST.value: (AssetStatus.EXPENDED.value, AssetCondition.UNSERVICEABLE.value),
    AssignmentStatus.DAMAGED.value: (AssetStatus.MAINTENANCE.value, AssetCondition.POOR.value),
}


def get_assignment_or_404(db: Session, assignment_id) -> Assignment:
    assignment = db.get(Assignment, assignment_id)
    if not assignment:
        raise NotFoundError("Assignment not found")
    return assignment


def _ensure_scope(actor, assignment: Assignment) -> None:
    access.ensure_base_access(actor, assignment.base_id, "You can only manage assignments for your assigned base")


def _active_for_asset(db: Session, asset_id):
    return (
        db.query(Assignment)
        .filter(Assignment.asset_id == asset_id, Assignment.status == AssignmentStatus.ACTIVE.value)
        .first()
    )


def create(db: Session, actor, payload) -> Assignment:
    asset = get_asset_or_404(db, payload.asset_id)
    assignee = db.get(User, payload.assigned_to_id)
    if not assignee:
        raise NotFoundError("Assignee not found")

    access.ensure_base_access(actor, asset.current_base_id, "You can only assign assets from your assigned base")

    if not access.is_admin(actor) and str(assignee.assigned_base_id) != str(asset.current_base_id):
        raise ValidationError("Cannot assign asset to personnel from a different base")

    expected = to_naive_utc(payload.expected_return_date)
    if expected is not None and expected <= utcnow():
        raise ValidationError("Expected return date must be after assignment date")

    with allocation_lock(asset.current_base_id, asset.equipment_type_id):
        with transaction(db):
            db.refresh(asset)
            if asset.status != AssetStatus.AVAILABLE.value:
                raise InvalidStateError(
                    f"Asset is not available for assignment. Current status: {asset.status}",
                    current_status=asset.status,
                )
            if _active_for_asset(db, asset.id):
                raise InvalidStateError("Asset is already assigned")

            assignment = Assignment(
                asset_id=asset.id,
                assigned_to_id=assignee.id,
                base_id=asset.current_base_id,
                expected_return_date=expected,
                status=AssignmentStatus.ACTIVE.value,
                assigned_by_id=actor.id,
                purpose=payload.purpose,
                notes=payload.notes,
            )
            asset.status = AssetStatus.ASSIGNED.value
            db.add(assignment)
            db.flush()
            audit_service.record(
                db, actor, "create", "Assignment", assignment.id,
                asset_id=asset.id, assigned_to_id=assignee.id,
            )

    db.refresh(assignment)
    logger.info(f"[Assignment] {asset.serial_number} assigned to {assignee.username}")
    return assignment


def return_asset(db: Session, actor, assignment_id, condition: AssetCondition | None = None) -> Assignment:
    assignment = get_assignment_or_404(db, assignment_id)
    _ensure_scope(actor, assignment)

    with transaction(db):
        transition(
            db, assignment, [AssignmentStatus.ACTIVE], AssignmentStatus.RETURNED.value, "returned",
            actual_return_date=utcnow(),
        )
        asset = assignment.asset
        asset.status = AssetStatus.AVAILABLE.value
        if condition is not None:
            asset.condition = condition.value
        audit_service.record(db, actor, "return", "Assignment", assignment.id, condition=asset.condition)

    db.refresh(assignment)
    logger.info(f"[Assignment] {assignment.id} returned")
    return assignment


def mark_lost_or_damaged(db: Session, actor, assignment_id, status: AssignmentStatus) -> Assignment:
    new_status = status.value if hasattr(status, "value") else status
    outcome = LOSS_OUTCOMES.get(new_status)
    if outcome is None:
        raise ValidationError("Status must be LOST or DAMAGED")

    assignment = get_assignment_or_404(db, assignment_id)
    _ensure_scope(actor, assignment)

    with transaction(db):
        transition(
            db, assignment, [AssignmentStatus.ACTIVE], new_status, f"marked as {new_status}",
            actual_return_date=utcnow(),
        )
        asset = assignment.asset
        asset.status, asset.condition = outcome
        audit_service.record(db, actor, new_status.lower(), "Assignment", assignment.id, asset_id=asset.id)

    db.refresh(assignment)
    logger.info(f"[Assignment] {assignment.id} marked {new_status}")
    return assignment


def update(db: Session, actor, assignment_id, payload) -> Assignment:
    assignment = get_assignment_or_404(db, assignment_id)
    _ensure_scope(actor, assignment)
    if assignment.status != AssignmentStatus.ACTIVE.value:
        raise InvalidStateError("Can only update active assignments", current_status=assignment.status)

    data = payload.model_dump(exclude_unset=True)
    if "expected_return_date" in data:
        expected = to_naive_utc(data["expected_return_date"])
        if expected is not None and expected <= assignment.assignment_date:
            raise ValidationError("Expected return date must be after assignment date")
        data["expected_return_date"] = expected

    with transaction(db):
        for field in ("expected_return_date", "purpose", "notes"):
            if field in data:
                setattr(assignment, field, data[field])
        audit_service.record(db, actor, "update", "Assignment", assignment.id, fields=sorted(data))

    db.refresh(assignment)
    return assignment


def delete(db: Session, actor, assignment_id) -> dict:
    assignment = get_assignment_or_404(db, assignment_id)
    _ensure_scope(actor, assignment)
    deleted = {"deleted_id": assignment.id, "status": assignment.status}

    with transaction(db):
        if assignment.status == AssignmentStatus.ACTIVE.value:
            assignment.asset.status = AssetStatus.AVAILABLE.value
        audit_service.record(db, actor, "delete", "Assignment", assignment.id, status=assignment.status)
        db.delete(assignment)

    logger.info(f"[Assignment] Deleted {deleted['deleted_id']}")
    return deleted


def list_assignments(db: Session, actor, base_id=None, status=None, assigned_to_id=None, start_date=None, end_date=None):
    q = db.query(Assignment)
    base_id = access.scoped_base_id(actor, base_id)
    if base_id:
        q = q.filter(Assignment.base_id == base_id)
    if status:
        q = q.filter(Assignment.status == status)
    if assigned_to_id:
        q = q.filter(Assignment.assigned_to_id == assigned_to_id)
    if start_date:
        q = q.filter(Assignment.assignment_date >= to_naive_utc(start_date))
    if end_date:
        q = q.filter(Assignment.assignment_date <= to_naive_utc(end_date))
    return q.order_by(Assignment.assignment_date.desc()).all()


def list_for_base(db: Session, actor):
    if not actor.assigned_base_id:
        raise ValidationError("User has no assigned base")
    return (
        db.query(Assignment)
        .filter(Assignment.base_id == actor.assigned_base_id)
        .order_by(Assignment.assignment_date.desc())
        .all()
    )


def get_assignment(db: Session, actor, assignment_id) -> Assignment:
    assignment = get_assignment_or_404(db, assignment_id)
    if not (access.can_access_base(actor, assignment.base_id) or access.is_actor(actor, assignment.assigned_to_id)):
        raise AccessDeniedError("Access denied. You can only view assignments from your base")
    return assignment
