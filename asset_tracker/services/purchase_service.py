"""
Purchases and their fulfillment.

A purchase reaching DELIVERED (at creation or later) produces one asset at
the purchase base holding the purchased quantity.
"""
import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from asset_tracker.core.clock import to_naive_utc, utcnow
from asset_tracker.core.db import allocation_lock, serial_lock, transaction
from asset_tracker.core.errors import InvalidStateError, NotFoundError, ValidationError
from asset_tracker.models.enums import AssetCondition, AssetStatus, PurchaseStatus
from asset_tracker.models.purchase import Purchase
from asset_tracker.services import access, audit_service
from asset_tracker.services.asset_service import get_base_or_404, get_equipment_type_or_404, new_asset

logger = logging.getLogger(__name__)

# Fields frozen once the goods have arrived
DELIVERED_LOCKED = ("quantity", "base_id", "equipment_type_id")


def get_purchase_or_404(db: Session, purchase_id) -> Purchase:
    purchase = db.get(Purchase, purchase_id)
    if not purchase:
        raise NotFoundError("Purchase not found")
    return purchase


def _total(quantity: int, unit_price) -> Decimal:
    return (Decimal(quantity) * Decimal(str(unit_price))).quantize(Decimal("0.01"))


def _deliver(db: Session, purchase: Purchase) -> None:
    if purchase.delivery_date is None:
        purchase.delivery_date = utcnow()
    asset = new_asset(
        db,
        equipment_type_id=purchase.equipment_type_id,
        base_id=purchase.base_id,
        quantity=purchase.quantity,
        status=AssetStatus.AVAILABLE.value,
        condition=AssetCondition.NEW.value,
        purchase_id=purchase.id,
    )
    logger.info(f"[Purchase] {purchase.id} delivered as asset {asset.serial_number} ({asset.quantity})")


def create(db: Session, actor, payload) -> Purchase:
    get_base_or_404(db, payload.base_id)
    get_equipment_type_or_404(db, payload.equipment_type_id)
    access.ensure_base_access(actor, payload.base_id, "You can only record purchases for your assigned base")

    status = (payload.status or PurchaseStatus.ORDERED).value
    with allocation_lock(payload.base_id, payload.equipment_type_id), serial_lock():
        with transaction(db):
            purchase = Purchase(
                base_id=payload.base_id,
                equipment_type_id=payload.equipment_type_id,
                quantity=payload.quantity,
                unit_price=payload.unit_price,
                total_amount=_total(payload.quantity, payload.unit_price),
                supplier_name=payload.supplier_name,
                supplier_contact=payload.supplier_contact,
                supplier_address=payload.supplier_address,
                delivery_date=to_naive_utc(payload.delivery_date),
                status=status,
                created_by_id=actor.id,
                notes=payload.notes,
            )
            if payload.purchase_date:
                purchase.purchase_date = to_naive_utc(payload.purchase_date)
            db.add(purchase)
            db.flush()
            if status == PurchaseStatus.DELIVERED.value:
                _deliver(db, purchase)
            audit_service.record(
                db, actor, "create", "Purchase", purchase.id,
                quantity=purchase.quantity, status=purchase.status,
            )

    db.refresh(purchase)
    logger.info(f"[Purchase] Created {purchase.id}: {purchase.quantity} x {purchase.equipment_type_id}")
    return purchase


def update(db: Session, actor, purchase_id, payload) -> Purchase:
    purchase = get_purchase_or_404(db, purchase_id)
    access.ensure_base_access(actor, purchase.base_id, "You can only update purchases for your assigned base")
    data = payload.model_dump(exclude_unset=True)

    if purchase.status == PurchaseStatus.CANCELLED.value:
        raise InvalidStateError("Cannot update cancelled purchases", current_status=purchase.status)
    if purchase.status == PurchaseStatus.DELIVERED.value:
        changed = [k for k in DELIVERED_LOCKED if k in data and str(data[k]) != str(getattr(purchase, k))]
        if changed:
            raise InvalidStateError(
                f"Cannot change {', '.join(changed)} of a delivered purchase", current_status=purchase.status
            )
        if data.get("status") is not None and data["status"].value != PurchaseStatus.DELIVERED.value:
            raise InvalidStateError("Delivered purchases cannot change status", current_status=purchase.status)

    if data.get("base_id"):
        get_base_or_404(db, data["base_id"])
        access.ensure_base_access(actor, data["base_id"], "You can only move purchases to your assigned base")
    if data.get("equipment_type_id"):
        get_equipment_type_or_404(db, data["equipment_type_id"])

    with serial_lock(), transaction(db):
        for key in ("base_id", "equipment_type_id", "quantity", "unit_price"):
            if data.get(key) is not None:
                setattr(purchase, key, data[key])
        for key in ("supplier_name", "supplier_contact", "supplier_address", "notes"):
            if key in data:
                setattr(purchase, key, data[key])
        for key in ("purchase_date", "delivery_date"):
            if data.get(key) is not None:
                setattr(purchase, key, to_naive_utc(data[key]))
        purchase.total_amount = _total(purchase.quantity, purchase.unit_price)

        new_status = data["status"].value if data.get("status") is not None else purchase.status
        if new_status != purchase.status:
            purchase.status = new_status
            if new_status == PurchaseStatus.DELIVERED.value:
                db.flush()
                _deliver(db, purchase)
        audit_service.record(db, actor, "update", "Purchase", purchase.id, fields=sorted(data))

    db.refresh(purchase)
    return purchase


def delete(db: Session, actor, purchase_id) -> dict:
    purchase = get_purchase_or_404(db, purchase_id)
    if purchase.status == PurchaseStatus.DELIVERED.value:
        raise InvalidStateError("Cannot delete delivered purchases", current_status=purchase.status)
    deleted = {"deleted_id": purchase.id, "status": purchase.status}

    with transaction(db):
        audit_service.record(db, actor, "delete", "Purchase", purchase.id, status=purchase.status)
        db.delete(purchase)

    logger.info(f"[Purchase] Deleted {deleted['deleted_id']}")
    return deleted


def list_purchases(db: Session, actor, base_id=None, equipment_type_id=None, status=None, start_date=None, end_date=None):
    q = db.query(Purchase)
    base_id = access.scoped_base_id(actor, base_id)
    if base_id:
        q = q.filter(Purchase.base_id == base_id)
    if equipment_type_id:
        q = q.filter(Purchase.equipment_type_id == equipment_type_id)
    if status:
        q = q.filter(Purchase.status == status)
    if start_date:
        q = q.filter(Purchase.purchase_date >= to_naive_utc(start_date))
    if end_date:
        q = q.filter(Purchase.purchase_date <= to_naive_utc(end_date))
    return q.order_by(Purchase.purchase_date.desc()).all()


def get_purchase(db: Session, actor, purchase_id) -> Purchase:
    purchase = get_purchase_or_404(db, purchase_id)
    access.ensure_base_access(actor, purchase.base_id, "Access denied. You can only view purchases from your base")
    return purchase
