"""
Dashboard Aggregator

Read-only. Every figure is recomputed from the asset and workflow tables
through the filter builders below, so ``metrics``, the breakdown and the
detail lists always agree on window and scope.

CANCELLED purchases are left out of every purchase figure on purpose: a
cancelled order never brought stock into the base.
"""
import calendar
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from asset_tracker.core.clock import to_naive_utc, utcnow
from asset_tracker.core.errors import ValidationError
from asset_tracker.models.asset import Asset
from asset_tracker.models.assignment import Assignment
from asset_tracker.models.enums import AssetStatus, AssignmentStatus, ExpenditureStatus, PurchaseStatus, TransferStatus
from asset_tracker.models.equipment_type import EquipmentType
from asset_tracker.models.expenditure import Expenditure
from asset_tracker.models.military_base import MilitaryBase
from asset_tracker.models.purchase import Purchase
from asset_tracker.models.transfer import Transfer
from asset_tracker.services import access
from asset_tracker.services.pagination import paginate

logger = logging.getLogger(__name__)


@dataclass
class DashboardFilter:
    start: datetime
    end: datetime
    base_id: object = None
    equipment_type_id: object = None
    statuses: list[str] = field(default_factory=list)


def period_window(start_date: datetime | None = None, end_date: datetime | None = None, now: datetime | None = None):
    """
    Explicit window when both bounds are given, else the calendar quarter
    containing ``now``. The quarter ends at 23:59:59 on its last day.
    """
    if start_date and end_date:
        start, end = to_naive_utc(start_date), to_naive_utc(end_date)
        if start > end:
            raise ValidationError("start_date must not be after end_date")
        return start, end

    now = now or utcnow()
    first_month = 3 * ((now.month - 1) // 3) + 1
    last_month = first_month + 2
    last_day = calendar.monthrange(now.year, last_month)[1]
    return (
        datetime(now.year, first_month, 1),
        datetime(now.year, last_month, last_day, 23, 59, 59),
    )


def build_filter(actor, start_date=None, end_date=None, base_id=None, equipment_type_id=None, statuses=None):
    start, end = period_window(start_date, end_date)
    return DashboardFilter(
        start=start,
        end=end,
        base_id=access.scoped_base_id(actor, base_id),
        equipment_type_id=equipment_type_id,
        statuses=[s.value if hasattr(s, "value") else s for s in (statuses or [])],
    )


# =====================================================
# FILTER BUILDERS
# =====================================================

def _asset_query(db: Session, f: DashboardFilter, created_until: datetime):
    q = db.query(func.coalesce(func.sum(Asset.quantity), 0)).filter(Asset.created_at <= created_until)
    if f.base_id:
        q = q.filter(Asset.current_base_id == f.base_id)
    if f.equipment_type_id:
        q = q.filter(Asset.equipment_type_id == f.equipment_type_id)
    if f.statuses:
        q = q.filter(Asset.status.in_(f.statuses))
    return q


def _purchase_query(q, f: DashboardFilter):
    q = q.filter(
        Purchase.purchase_date >= f.start,
        Purchase.purchase_date <= f.end,
        Purchase.status != PurchaseStatus.CANCELLED.value,
    )
    if f.base_id:
        q = q.filter(Purchase.base_id == f.base_id)
    if f.equipment_type_id:
        q = q.filter(Purchase.equipment_type_id == f.equipment_type_id)
    return q


def _transfer_query(q, f: DashboardFilter, direction: str):
    q = q.filter(
        Transfer.transfer_date >= f.start,
        Transfer.transfer_date <= f.end,
        Transfer.status == TransferStatus.COMPLETED.value,
    )
    if f.base_id:
        column = Transfer.to_base_id if direction == "in" else Transfer.from_base_id
        q = q.filter(column == f.base_id)
    if f.equipment_type_id:
        q = q.filter(Transfer.equipment_type_id == f.equipment_type_id)
    return q


def _expenditure_query(q, f: DashboardFilter):
    q = q.filter(
        Expenditure.expenditure_date >= f.start,
        Expenditure.expenditure_date <= f.end,
        Expenditure.status == ExpenditureStatus.COMPLETED.value,
    )
    if f.base_id:
        q = q.filter(Expenditure.base_id == f.base_id)
    if f.equipment_type_id:
        q = q.filter(Expenditure.equipment_type_id == f.equipment_type_id)
    return q


def _assignment_query(q, f: DashboardFilter):
    q = q.filter(Assignment.status == AssignmentStatus.ACTIVE.value)
    if f.base_id:
        q = q.filter(Assignment.base_id == f.base_id)
    if f.equipment_type_id:
        q = q.join(Asset, Asset.id == Assignment.asset_id).filter(Asset.equipment_type_id == f.equipment_type_id)
    return q


# =====================================================
# AGGREGATES
# =====================================================

def _purchase_summary(db: Session, f: DashboardFilter) -> dict:
    qty, amount, count = _purchase_query(
        db.query(
            func.coalesce(func.sum(Purchase.quantity), 0),
            func.coalesce(func.sum(Purchase.total_amount), 0),
            func.count(Purchase.id),
        ),
        f,
    ).one()
    return {"quantity": int(qty), "amount": Decimal(str(amount)), "transactions": int(count)}


def _transfer_summary(db: Session, f: DashboardFilter, direction: str) -> dict:
    qty, count = _transfer_query(
        db.query(func.coalesce(func.sum(Transfer.total_quantity), 0), func.count(Transfer.id)),
        f,
        direction,
    ).one()
    return {"quantity": int(qty), "transactions": int(count)}


def net_movement_breakdown(db: Session, f: DashboardFilter) -> dict:
    return {
        "period_start": f.start,
        "period_end": f.end,
        "purchases": _purchase_summary(db, f),
        "transfers_in": _transfer_summary(db, f, "in"),
        "transfers_out": _transfer_summary(db, f, "out"),
    }


def metrics(db: Session, f: DashboardFilter) -> dict:
    closing_until = min(f.end, utcnow())
    opening = int(_asset_query(db, f, f.start).scalar())
    closing = int(_asset_query(db, f, closing_until).scalar())

    breakdown = net_movement_breakdown(db, f)
    purchases = breakdown["purchases"]["quantity"]
    transfers_in = breakdown["transfers_in"]["quantity"]
    transfers_out = breakdown["transfers_out"]["quantity"]

    assigned = _assignment_query(db.query(func.count(Assignment.id)), f).scalar()
    expended = _expenditure_query(db.query(func.coalesce(func.sum(Expenditure.quantity), 0)), f).scalar()

    logger.debug(f"[Dashboard] base={f.base_id} type={f.equipment_type_id} {f.start} -> {f.end}")
    return {
        "period_start": f.start,
        "period_end": f.end,
        "metrics": {
            "opening_balance": opening,
            "closing_balance": closing,
            "net_movement": purchases + transfers_in - transfers_out,
            "assigned_count": int(assigned or 0),
            "expended_count": int(expended or 0),
        },
        "net_movement_breakdown": {
            "purchases": purchases,
            "transfers_in": transfers_in,
            "transfers_out": transfers_out,
        },
    }


# =====================================================
# DETAIL LISTS
# =====================================================

def purchases_detail(db: Session, f: DashboardFilter, page: int = 1, limit: int | None = None):
    q = _purchase_query(db.query(Purchase), f).order_by(Purchase.purchase_date.desc())
    return paginate(q, page, limit)


def transfers_detail(db: Session, f: DashboardFilter, direction: str, page: int = 1, limit: int | None = None):
    q = _transfer_query(db.query(Transfer), f, direction).order_by(Transfer.transfer_date.desc())
    return paginate(q, page, limit)


def filter_options(db: Session, actor) -> dict:
    bases = db.query(MilitaryBase)
    if access.is_base_commander(actor):
        bases = bases.filter(MilitaryBase.id == actor.assigned_base_id)
    return {
        "bases": bases.order_by(MilitaryBase.name).all(),
        "equipment_types": (
            db.query(EquipmentType).filter(EquipmentType.is_active.is_(True)).order_by(EquipmentType.name).all()
        ),
        "status_options": [s.value for s in AssetStatus],
    }
