"""
Asset Pool: creation, serial numbering, lookups and the split used when a
workflow consumes only part of a batched asset.
"""
import logging
import re

from sqlalchemy import exists, or_, select
from sqlalchemy.orm import Session

from asset_tracker.core.db import allocation_lock, serial_lock, transaction
from asset_tracker.core.errors import InvalidStateError, NotFoundError, ValidationError
from asset_tracker.models.asset import Asset
from asset_tracker.models.assignment import Assignment
from asset_tracker.models.enums import AssetCondition, AssetStatus
from asset_tracker.models.equipment_type import EquipmentType
from asset_tracker.models.expenditure import ExpenditureLine
from asset_tracker.models.military_base import MilitaryBase
from asset_tracker.models.serial_counter import SerialCounter
from asset_tracker.models.transfer import TransferLine
from asset_tracker.services import access, audit_service
from asset_tracker.services.allocation import held_by_open_expenditures

logger = logging.getLogger(__name__)

SERIAL_PATTERN = re.compile(r"^A(\d+)$")
ASSET_SERIAL = "asset"

# Statuses an operator may set directly; everything else belongs to a workflow
MANUAL_STATUSES = {AssetStatus.AVAILABLE.value, AssetStatus.MAINTENANCE.value}


def _highest_serial(db: Session) -> int:
    highest = 0
    for (serial,) in db.query(Asset.serial_number).filter(Asset.serial_number.like("A%")):
        m = SERIAL_PATTERN.match(serial or "")
        if m:
            highest = max(highest, int(m.group(1)))
    return highest


def next_serial_number(db: Session) -> str:
    """
    One past the highest ``A<digits>`` serial, zero-padded to three digits.

    The ``serial_counters`` row is locked and bumped in the caller's
    transaction; callers hold ``serial_lock`` until they commit.
    """
    counter = db.execute(
        select(SerialCounter)
        .where(SerialCounter.name == ASSET_SERIAL)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if counter is None:
        counter = SerialCounter(name=ASSET_SERIAL, current_value=0)
        db.add(counter)

    # Manually entered serials can run ahead of the counter
    counter.current_value = max(counter.current_value or 0, _highest_serial(db)) + 1
    db.flush()
    return f"A{counter.current_value:03d}"


def get_base_or_404(db: Session, base_id) -> MilitaryBase:
    base = db.get(MilitaryBase, base_id)
    if not base:
        raise NotFoundError(f"Base {base_id} not found")
    return base


def get_equipment_type_or_404(db: Session, equipment_type_id) -> EquipmentType:
    et = db.get(EquipmentType, equipment_type_id)
    if not et:
        raise NotFoundError(f"Equipment type {equipment_type_id} not found")
    return et


def get_asset_or_404(db: Session, asset_id) -> Asset:
    asset = db.get(Asset, asset_id)
    if not asset:
        raise NotFoundError("Asset not found")
    return asset


def _ensure_serial_free(db: Session, serial: str, exclude_id=None) -> None:
    q = db.query(Asset.id).filter(Asset.serial_number == serial)
    if exclude_id is not None:
        q = q.filter(Asset.id != exclude_id)
    if q.first():
        raise ValidationError(f"Serial number {serial} already exists")


def new_asset(
    db: Session,
    *,
    equipment_type_id,
    base_id,
    quantity: int = 1,
    status: str = AssetStatus.AVAILABLE.value,
    condition: str = AssetCondition.NEW.value,
    purchase_id=None,
    serial_number: str | None = None,
) -> Asset:
    """Build and add an asset to the session (caller owns the transaction)."""
    if quantity < 0:
        raise ValidationError("quantity must be >= 0")
    serial = serial_number.strip() if serial_number else None
    if serial:
        _ensure_serial_free(db, serial)
    else:
        serial = next_serial_number(db)

    asset = Asset(
        serial_number=serial,
        equipment_type_id=equipment_type_id,
        current_base_id=base_id,
        status=status,
        condition=condition,
        quantity=quantity,
        purchase_id=purchase_id,
    )
    db.add(asset)
    db.flush()
    return asset


def split_asset(db: Session, asset: Asset, quantity: int) -> Asset:
    """
    Carve ``quantity`` units off a batched asset into a new record.

    The source keeps the remainder and its status; the new record copies
    type, base, status, condition and purchase link.
    """
    if quantity <= 0 or quantity >= asset.quantity:
        raise ValidationError(
            f"Cannot split {quantity} from asset {asset.serial_number} holding {asset.quantity}"
        )
    asset.quantity -= quantity
    part = new_asset(
        db,
        equipment_type_id=asset.equipment_type_id,
        base_id=asset.current_base_id,
        quantity=quantity,
        status=asset.status,
        condition=asset.condition,
        purchase_id=asset.purchase_id,
    )
    logger.info(f"[Asset] Split {quantity} off {asset.serial_number} into {part.serial_number}")
    return part


def create_asset(db: Session, actor, payload) -> Asset:
    get_equipment_type_or_404(db, payload.equipment_type_id)
    get_base_or_404(db, payload.current_base_id)
    access.ensure_base_access(actor, payload.current_base_id, "You can only create assets for your assigned base")

    with allocation_lock(payload.current_base_id, payload.equipment_type_id), serial_lock():
        with transaction(db):
            asset = new_asset(
                db,
                equipment_type_id=payload.equipment_type_id,
                base_id=payload.current_base_id,
                quantity=payload.quantity if payload.quantity is not None else 1,
                status=(payload.status or AssetStatus.AVAILABLE).value,
                condition=(payload.condition or AssetCondition.NEW).value,
                purchase_id=payload.purchase_id,
                serial_number=payload.serial_number,
            )
            audit_service.record(db, actor, "create", "Asset", asset.id, serial_number=asset.serial_number)

    db.refresh(asset)
    logger.info(f"[Asset] Created {asset.serial_number} at base {asset.current_base_id}")
    return asset


def list_assets(
    db: Session,
    actor,
    base_id=None,
    equipment_type_id=None,
    status: str | None = None,
    condition: str | None = None,
):
    q = db.query(Asset)
    base_id = access.scoped_base_id(actor, base_id)
    if base_id:
        q = q.filter(Asset.current_base_id == base_id)
    if equipment_type_id:
        q = q.filter(Asset.equipment_type_id == equipment_type_id)
    if status:
        q = q.filter(Asset.status == status)
    if condition:
        q = q.filter(Asset.condition == condition)
    return q.order_by(Asset.created_at.desc()).all()


def get_asset(db: Session, actor, asset_id) -> Asset:
    asset = get_asset_or_404(db, asset_id)
    access.ensure_base_access(actor, asset.current_base_id, "You can only view assets from your assigned base")
    return asset


def _ensure_quantity_editable(db: Session, asset: Asset, quantity: int) -> None:
    if asset.status not in MANUAL_STATUSES:
        raise InvalidStateError(
            f"Quantity of a {asset.status} asset is managed by its workflow",
            current_status=asset.status,
        )
    held = held_by_open_expenditures(db, asset.current_base_id, asset.equipment_type_id).get(str(asset.id), 0)
    if quantity < held:
        raise InvalidStateError(
            f"Quantity {quantity} is below the {held} held by open expenditures",
            held=held,
        )


def update_asset(db: Session, actor, asset_id, payload) -> Asset:
    asset = get_asset(db, actor, asset_id)
    data = payload.model_dump(exclude_unset=True)

    with allocation_lock(asset.current_base_id, asset.equipment_type_id), serial_lock():
        with transaction(db):
            db.refresh(asset)
            if "status" in data and data["status"] is not None:
                new_status = data["status"].value
                if new_status != asset.status:
                    if asset.status not in MANUAL_STATUSES or new_status not in MANUAL_STATUSES:
                        raise InvalidStateError(
                            f"Asset status {asset.status} cannot be changed to {new_status} directly"
                        )
                    asset.status = new_status
            if data.get("condition") is not None:
                asset.condition = data["condition"].value
            if data.get("quantity") is not None and data["quantity"] != asset.quantity:
                _ensure_quantity_editable(db, asset, data["quantity"])
                asset.quantity = data["quantity"]
            if data.get("serial_number"):
                serial = data["serial_number"].strip()
                _ensure_serial_free(db, serial, exclude_id=asset.id)
                asset.serial_number = serial
            audit_service.record(db, actor, "update", "Asset", asset.id, fields=sorted(data))

    db.refresh(asset)
    return asset


def is_referenced(db: Session, asset_id) -> bool:
    return db.query(
        or_(
            exists().where(TransferLine.asset_id == asset_id),
            exists().where(ExpenditureLine.asset_id == asset_id),
            exists().where(Assignment.asset_id == asset_id),
        )
    ).scalar()


def delete_asset(db: Session, actor, asset_id) -> dict:
    asset = get_asset_or_404(db, asset_id)
    deleted = {"deleted_id": asset.id, "serial_number": asset.serial_number}
    if is_referenced(db, asset.id):
        raise InvalidStateError(
            f"Asset {asset.serial_number} is referenced by workflow history and cannot be deleted"
        )
    with transaction(db):
        audit_service.record(db, actor, "delete", "Asset", asset.id, serial_number=asset.serial_number)
        db.delete(asset)
    logger.info(f"[Asset] Deleted {deleted['serial_number']}")
    return deleted
