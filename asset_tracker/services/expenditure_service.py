"""
Expenditure Workflow

PENDING -> APPROVED -> COMPLETED, CANCELLED from PENDING or APPROVED.

Creation only records which assets back the expenditure; nothing is consumed
until ``complete``, which re-checks the backing assets under the pool lock
and then marks them EXPENDED. Completion cascades into Assignment: an ACTIVE
assignment on a wholly expended asset becomes EXPENDED too.
"""
import logging

from sqlalchemy.orm import Session

from asset_tracker.core.clock import to_naive_utc, utcnow
from asset_tracker.core.db import allocation_lock, serial_lock, transaction
from asset_tracker.core.errors import AccessDeniedError, InsufficientSupplyError, InvalidStateError, NotFoundError, ValidationError
from asset_tracker.models.assignment import Assignment
from asset_tracker.models.enums import AssetCondition, AssetStatus, AssignmentStatus, ExpenditureStatus
from asset_tracker.models.expenditure import Expenditure, ExpenditureLine
from asset_tracker.services import access, audit_service
from asset_tracker.services.allocation import allocate, held_by_open_expenditures
from asset_tracker.services.asset_service import get_base_or_404, get_equipment_type_or_404, split_asset
from asset_tracker.services.state import transition

logger = logging.getLogger(__name__)

# Expenditure may claim assets that are currently issued to someone
ELIGIBLE_STATUSES = (AssetStatus.AVAILABLE, AssetStatus.ASSIGNED)

OPEN_STATUSES = (ExpenditureStatus.PENDING, ExpenditureStatus.APPROVED)


def get_expenditure_or_404(db: Session, expenditure_id) -> Expenditure:
    expenditure = db.get(Expenditure, expenditure_id)
    if not expenditure:
        raise NotFoundError("Expenditure not found")
    return expenditure


def _ensure_scope(actor, base_id, message="You can only manage expenditures for your assigned base") -> None:
    access.ensure_base_access(actor, base_id, message)


def _allocate_lines(db: Session, expenditure: Expenditure, quantity: int, asset_ids=None) -> None:
    allocation = allocate(
        db,
        expenditure.base_id,
        expenditure.equipment_type_id,
        quantity,
        ELIGIBLE_STATUSES,
        asset_ids=asset_ids,
        held=held_by_open_expenditures(
            db, expenditure.base_id, expenditure.equipment_type_id, exclude_expenditure_id=expenditure.id
        ),
    )
    if allocation.is_short:
        raise InsufficientSupplyError(requested=quantity, available=allocation.total_allocated)

    expenditure.lines.clear()
    db.flush()
    for position, line in enumerate(allocation.lines):
        expenditure.lines.append(ExpenditureLine(asset_id=line.asset.id, quantity=line.quantity, position=position))


def create(db: Session, actor, payload) -> Expenditure:
    if payload.quantity is None or payload.quantity <= 0:
        raise ValidationError("quantity must be > 0")
    get_base_or_404(db, payload.base_id)
    get_equipment_type_or_404(db, payload.equipment_type_id)
    _ensure_scope(actor, payload.base_id, "You can only create expenditures for your assigned base")

    with allocation_lock(payload.base_id, payload.equipment_type_id):
        with transaction(db):
            expenditure = Expenditure(
                equipment_type_id=payload.equipment_type_id,
                base_id=payload.base_id,
                quantity=payload.quantity,
                reason=payload.reason.value,
                status=ExpenditureStatus.PENDING.value,
                authorized_by_id=actor.id,
                operation_details=payload.operation_details,
                notes=payload.notes,
            )
            if payload.expenditure_date:
                expenditure.expenditure_date = to_naive_utc(payload.expenditure_date)
            db.add(expenditure)
            db.flush()
            _allocate_lines(db, expenditure, payload.quantity, payload.asset_ids)
            audit_service.record(
                db, actor, "create", "Expenditure", expenditure.id,
                quantity=expenditure.quantity, reason=expenditure.reason,
            )

    db.refresh(expenditure)
    logger.info(
        f"[Expenditure] {expenditure.id} created: {expenditure.quantity} x "
        f"{expenditure.equipment_type_id} at {expenditure.base_id}"
    )
    return expenditure


def approve(db: Session, actor, expenditure_id) -> Expenditure:
    expenditure = get_expenditure_or_404(db, expenditure_id)
    _ensure_scope(actor, expenditure.base_id)

    with transaction(db):
        transition(
            db, expenditure, [ExpenditureStatus.PENDING], ExpenditureStatus.APPROVED.value, "approved",
            approved_by_id=actor.id,
            approved_date=utcnow(),
        )
        audit_service.record(db, actor, "approve", "Expenditure", expenditure.id)

    db.refresh(expenditure)
    logger.info(f"[Expenditure] {expenditure.id} approved by {actor.id}")
    return expenditure


def _consume(db: Session, expenditure: Expenditure, line: ExpenditureLine, held: dict, now) -> None:
    asset = line.asset
    db.refresh(asset)
    free = asset.quantity - held.get(str(asset.id), 0)
    if (
        str(asset.current_base_id) != str(expenditure.base_id)
        or asset.status not in [s.value for s in ELIGIBLE_STATUSES]
        or free < line.quantity
    ):
        raise InvalidStateError(
            f"Asset {asset.serial_number} can no longer back this expenditure "
            f"(status {asset.status}, quantity {asset.quantity})",
            asset_id=str(asset.id),
        )

    if line.quantity < asset.quantity:
        part = split_asset(db, asset, line.quantity)
        line.asset_id = part.id
        line.asset = part
        asset = part
    else:
        active = (
            db.query(Assignment)
            .filter(Assignment.asset_id == asset.id, Assignment.status == AssignmentStatus.ACTIVE.value)
            .all()
        )
        for assignment in active:
            assignment.status = AssignmentStatus.EXPENDED.value
            assignment.actual_return_date = now
            logger.info(f"[Expenditure] Assignment {assignment.id} closed as EXPENDED")

    asset.status = AssetStatus.EXPENDED.value
    asset.condition = AssetCondition.UNSERVICEABLE.value


def complete(db: Session, actor, expenditure_id) -> Expenditure:
    expenditure = get_expenditure_or_404(db, expenditure_id)
    _ensure_scope(actor, expenditure.base_id)

    with allocation_lock(expenditure.base_id, expenditure.equipment_type_id), serial_lock():
        with transaction(db):
            now = utcnow()
            transition(
                db, expenditure, [ExpenditureStatus.APPROVED], ExpenditureStatus.COMPLETED.value, "completed",
                completed_by_id=actor.id,
                completed_date=now,
            )
            held = held_by_open_expenditures(
                db, expenditure.base_id, expenditure.equipment_type_id, exclude_expenditure_id=expenditure.id
            )
            for line in expenditure.lines:
                _consume(db, expenditure, line, held, now)
            audit_service.record(
                db, actor, "complete", "Expenditure", expenditure.id,
                assets=[line.asset_id for line in expenditure.lines],
            )

    db.refresh(expenditure)
    logger.info(f"[Expenditure] {expenditure.id} completed, {expenditure.quantity} units expended")
    return expenditure


def cancel(db: Session, actor, expenditure_id, reason: str | None = None) -> Expenditure:
    expenditure = get_expenditure_or_404(db, expenditure_id)
    _ensure_scope(actor, expenditure.base_id)

    notes = expenditure.notes
    if reason:
        notes = f"{notes}\nCancellation reason: {reason}" if notes else f"Cancellation reason: {reason}"

    with transaction(db):
        transition(db, expenditure, OPEN_STATUSES, ExpenditureStatus.CANCELLED.value, "cancelled", notes=notes)
        audit_service.record(db, actor, "cancel", "Expenditure", expenditure.id, reason=reason)

    db.refresh(expenditure)
    logger.info(f"[Expenditure] {expenditure.id} cancelled")
    return expenditure


def update(db: Session, actor, expenditure_id, payload) -> Expenditure:
    expenditure = get_expenditure_or_404(db, expenditure_id)
    _ensure_scope(actor, expenditure.base_id)
    if expenditure.status == ExpenditureStatus.COMPLETED.value:
        raise InvalidStateError("Cannot update completed expenditures", current_status=expenditure.status)

    data = payload.model_dump(exclude_unset=True)
    with allocation_lock(expenditure.base_id, expenditure.equipment_type_id):
        with transaction(db):
            if data.get("quantity") is not None and data["quantity"] != expenditure.quantity:
                if expenditure.status == ExpenditureStatus.CANCELLED.value:
                    raise InvalidStateError("Cannot change the quantity of a cancelled expenditure")
                _allocate_lines(db, expenditure, data["quantity"])
                expenditure.quantity = data["quantity"]
            if data.get("reason") is not None:
                expenditure.reason = data["reason"].value
            if data.get("expenditure_date") is not None:
                expenditure.expenditure_date = to_naive_utc(data["expenditure_date"])
            for field in ("operation_details", "notes"):
                if field in data:
                    setattr(expenditure, field, data[field])
            audit_service.record(db, actor, "update", "Expenditure", expenditure.id, fields=sorted(data))

    db.refresh(expenditure)
    return expenditure


def delete(db: Session, actor, expenditure_id) -> dict:
    expenditure = get_expenditure_or_404(db, expenditure_id)
    if expenditure.status == ExpenditureStatus.COMPLETED.value:
        raise InvalidStateError("Cannot delete completed expenditures", current_status=expenditure.status)
    deleted = {"deleted_id": expenditure.id, "status": expenditure.status}

    with transaction(db):
        audit_service.record(db, actor, "delete", "Expenditure", expenditure.id, status=expenditure.status)
        db.delete(expenditure)

    logger.info(f"[Expenditure] Deleted {deleted['deleted_id']}")
    return deleted


def _filtered(q, status=None, reason=None, equipment_type_id=None, start_date=None, end_date=None):
    if status:
        q = q.filter(Expenditure.status == status)
    if reason:
        q = q.filter(Expenditure.reason == reason)
    if equipment_type_id:
        q = q.filter(Expenditure.equipment_type_id == equipment_type_id)
    if start_date:
        q = q.filter(Expenditure.expenditure_date >= to_naive_utc(start_date))
    if end_date:
        q = q.filter(Expenditure.expenditure_date <= to_naive_utc(end_date))
    return q.order_by(Expenditure.expenditure_date.desc())


def list_expenditures(db: Session, actor, base_id=None, **filters):
    q = db.query(Expenditure)
    base_id = access.scoped_base_id(actor, base_id)
    if base_id:
        q = q.filter(Expenditure.base_id == base_id)
    return _filtered(q, **filters).all()


def list_for_base(db: Session, actor, **filters):
    if not actor.assigned_base_id:
        raise ValidationError("User has no assigned base")
    q = db.query(Expenditure).filter(Expenditure.base_id == actor.assigned_base_id)
    return _filtered(q, **filters).all()


def get_expenditure(db: Session, actor, expenditure_id) -> Expenditure:
    expenditure = get_expenditure_or_404(db, expenditure_id)
    if not access.can_access_base(actor, expenditure.base_id):
        raise AccessDeniedError("Access denied. You can only view expenditures from your base")
    return expenditure
