"""
Transfer Workflow

INITIATED -> IN_TRANSIT -> COMPLETED, with CANCELLED reachable from
INITIATED and IN_TRANSIT. Assets are reserved (IN_TRANSIT) at initiation and
re-homed at completion.
"""
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from asset_tracker.core.clock import to_naive_utc, utcnow
from asset_tracker.core.db import allocation_lock, serial_lock, transaction
from asset_tracker.core.errors import AccessDeniedError, InsufficientSupplyError, InvalidStateError, NotFoundError, ValidationError
from asset_tracker.models.enums import AssetStatus, TransferStatus
from asset_tracker.models.transfer import Transfer, TransferLine
from asset_tracker.services import access, audit_service
from asset_tracker.services.allocation import allocate, held_by_open_expenditures
from asset_tracker.services.asset_service import get_base_or_404, get_equipment_type_or_404, split_asset
from asset_tracker.services.state import transition

logger = logging.getLogger(__name__)

# Same policy whether assets are picked FIFO or listed explicitly
ELIGIBLE_STATUSES = (AssetStatus.AVAILABLE,)

OPEN_STATUSES = (TransferStatus.INITIATED, TransferStatus.IN_TRANSIT)


def get_transfer_or_404(db: Session, transfer_id) -> Transfer:
    transfer = db.get(Transfer, transfer_id)
    if not transfer:
        raise NotFoundError("Transfer not found")
    return transfer


def initiate(db: Session, actor, payload) -> Transfer:
    if payload.quantity is None or payload.quantity <= 0:
        raise ValidationError("quantity must be > 0")
    if str(payload.from_base_id) == str(payload.to_base_id):
        raise ValidationError("Source and destination bases must differ")

    get_base_or_404(db, payload.from_base_id)
    get_base_or_404(db, payload.to_base_id)
    get_equipment_type_or_404(db, payload.equipment_type_id)

    if access.is_base_commander(actor) and not access.can_access_any(
        actor, [payload.from_base_id, payload.to_base_id]
    ):
        raise AccessDeniedError("Base commanders can only initiate transfers involving their base")

    with allocation_lock(payload.from_base_id, payload.equipment_type_id), serial_lock():
        with transaction(db):
            allocation = allocate(
                db,
                payload.from_base_id,
                payload.equipment_type_id,
                payload.quantity,
                ELIGIBLE_STATUSES,
                asset_ids=payload.asset_ids,
                held=held_by_open_expenditures(db, payload.from_base_id, payload.equipment_type_id),
            )
            if allocation.is_short:
                raise InsufficientSupplyError(requested=payload.quantity, available=allocation.total_allocated)

            transfer = Transfer(
                from_base_id=payload.from_base_id,
                to_base_id=payload.to_base_id,
                equipment_type_id=payload.equipment_type_id,
                total_quantity=allocation.total_allocated,
                status=TransferStatus.INITIATED.value,
                initiated_by_id=actor.id,
                notes=payload.notes,
            )
            if payload.transport_details:
                transfer.transport_details = payload.transport_details
            if payload.transfer_date:
                transfer.transfer_date = to_naive_utc(payload.transfer_date)

            for position, line in enumerate(allocation.lines):
                asset = split_asset(db, line.asset, line.quantity) if line.is_partial else line.asset
                asset.status = AssetStatus.IN_TRANSIT.value
                transfer.lines.append(TransferLine(asset_id=asset.id, quantity=line.quantity, position=position))

            db.add(transfer)
            db.flush()
            audit_service.record(
                db, actor, "initiate", "Transfer", transfer.id,
                total_quantity=transfer.total_quantity,
                assets=[line.asset_id for line in transfer.lines],
            )

    db.refresh(transfer)
    logger.info(
        f"[Transfer] {transfer.id} initiated: {transfer.total_quantity} x {transfer.equipment_type_id} "
        f"{transfer.from_base_id} -> {transfer.to_base_id}"
    )
    return transfer


def approve(db: Session, actor, transfer_id) -> Transfer:
    transfer = get_transfer_or_404(db, transfer_id)

    with transaction(db):
        transition(
            db, transfer, [TransferStatus.INITIATED], TransferStatus.IN_TRANSIT.value, "approved",
            approved_by_id=actor.id,
        )
        audit_service.record(db, actor, "approve", "Transfer", transfer.id)

    db.refresh(transfer)
    logger.info(f"[Transfer] {transfer.id} approved by {actor.id}")
    return transfer


def complete(db: Session, actor, transfer_id) -> Transfer:
    transfer = get_transfer_or_404(db, transfer_id)
    if not (access.is_logistics(actor) or (
        access.is_base_commander(actor) and access.can_access_base(actor, transfer.to_base_id)
    )):
        raise AccessDeniedError("Only logistics, admins or the destination base commander can complete a transfer")

    with transaction(db):
        transition(
            db, transfer, [TransferStatus.IN_TRANSIT], TransferStatus.COMPLETED.value, "completed",
            completion_date=utcnow(),
            completed_by_id=actor.id,
        )
        for line in transfer.lines:
            line.asset.current_base_id = transfer.to_base_id
            line.asset.status = AssetStatus.AVAILABLE.value
        audit_service.record(db, actor, "complete", "Transfer", transfer.id, to_base_id=transfer.to_base_id)

    db.refresh(transfer)
    logger.info(f"[Transfer] {transfer.id} completed at base {transfer.to_base_id}")
    return transfer


def cancel(db: Session, actor, transfer_id) -> Transfer:
    transfer = get_transfer_or_404(db, transfer_id)
    if not (access.is_logistics(actor) or access.is_actor(actor, transfer.initiated_by_id)):
        raise AccessDeniedError("Only logistics, admins or the initiator can cancel a transfer")

    with transaction(db):
        transition(db, transfer, OPEN_STATUSES, TransferStatus.CANCELLED.value, "cancelled")
        # Reserved assets never left the source base
        for line in transfer.lines:
            if line.asset.status == AssetStatus.IN_TRANSIT.value:
                line.asset.status = AssetStatus.AVAILABLE.value
        audit_service.record(db, actor, "cancel", "Transfer", transfer.id)

    db.refresh(transfer)
    logger.info(f"[Transfer] {transfer.id} cancelled by {actor.id}")
    return transfer


def update(db: Session, actor, transfer_id, payload) -> Transfer:
    transfer = get_transfer_or_404(db, transfer_id)
    if transfer.status in (TransferStatus.COMPLETED.value, TransferStatus.CANCELLED.value):
        raise InvalidStateError("Cannot update completed or cancelled transfers", current_status=transfer.status)
    if not (
        access.is_actor(actor, transfer.initiated_by_id)
        or access.can_access_any(actor, [transfer.from_base_id, transfer.to_base_id])
    ):
        raise AccessDeniedError("You can only update transfers you initiated or involving your base")

    data = payload.model_dump(exclude_unset=True)
    with transaction(db):
        if "transport_details" in data and data["transport_details"] is not None:
            transfer.transport_details = data["transport_details"]
        if "notes" in data:
            transfer.notes = data["notes"]
        audit_service.record(db, actor, "update", "Transfer", transfer.id, fields=sorted(data))

    db.refresh(transfer)
    return transfer


def _scoped_query(db: Session, actor):
    q = db.query(Transfer)
    if access.is_base_commander(actor):
        home = actor.assigned_base_id
        q = q.filter(or_(Transfer.from_base_id == home, Transfer.to_base_id == home))
    return q


def list_transfers(db: Session, actor, status=None, from_base_id=None, to_base_id=None, equipment_type_id=None):
    q = _scoped_query(db, actor)
    if status:
        q = q.filter(Transfer.status == status)
    if from_base_id:
        q = q.filter(Transfer.from_base_id == from_base_id)
    if to_base_id:
        q = q.filter(Transfer.to_base_id == to_base_id)
    if equipment_type_id:
        q = q.filter(Transfer.equipment_type_id == equipment_type_id)
    return q.order_by(Transfer.transfer_date.desc()).all()


def list_for_base(db: Session, actor, direction: str = "all"):
    home = actor.assigned_base_id
    if not home:
        raise ValidationError("User has no assigned base")
    q = db.query(Transfer)
    if direction == "in":
        q = q.filter(Transfer.to_base_id == home)
    elif direction == "out":
        q = q.filter(Transfer.from_base_id == home)
    else:
        q = q.filter(or_(Transfer.from_base_id == home, Transfer.to_base_id == home))
    return q.order_by(Transfer.transfer_date.desc()).all()


def get_transfer(db: Session, actor, transfer_id) -> Transfer:
    transfer = get_transfer_or_404(db, transfer_id)
    if access.is_base_commander(actor) and not access.can_access_any(
        actor, [transfer.from_base_id, transfer.to_base_id]
    ):
        raise AccessDeniedError("Access denied. You can only view transfers involving your base")
    return transfer
