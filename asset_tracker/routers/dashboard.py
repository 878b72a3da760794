import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from asset_tracker.deps import get_db, require_roles
from asset_tracker.models.enums import AssetStatus, Role
from asset_tracker.models.user import User
from asset_tracker.schemas.dashboard import (
    BreakdownOut,
    FilterOptionsOut,
    MetricsOut,
    PurchasesDetailOut,
    TransfersDetailOut,
)
from asset_tracker.schemas.common import BaseRef, EquipmentTypeRef
from asset_tracker.schemas.purchase import PurchaseOut
from asset_tracker.schemas.transfer import TransferOut
from asset_tracker.services import dashboard_service

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

staff = require_roles(Role.BASE_COMMANDER, Role.LOGISTICS_OFFICER)


def dashboard_filter(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    base_id: uuid.UUID | None = None,
    equipment_type_id: uuid.UUID | None = None,
    status: list[AssetStatus] | None = Query(default=None),
    user: User = Depends(staff),
) -> dashboard_service.DashboardFilter:
    return dashboard_service.build_filter(
        user,
        start_date=start_date,
        end_date=end_date,
        base_id=base_id,
        equipment_type_id=equipment_type_id,
        statuses=status,
    )


@router.get("/metrics", response_model=MetricsOut)
def metrics(f=Depends(dashboard_filter), db: Session = Depends(get_db)):
    return dashboard_service.metrics(db, f)


@router.get("/net-movement", response_model=BreakdownOut)
def net_movement(f=Depends(dashboard_filter), db: Session = Depends(get_db)):
    return dashboard_service.net_movement_breakdown(db, f)


@router.get("/purchases", response_model=PurchasesDetailOut)
def purchases_detail(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    f=Depends(dashboard_filter),
    db: Session = Depends(get_db),
):
    items, pagination = dashboard_service.purchases_detail(db, f, page, limit)
    return PurchasesDetailOut(purchases=[PurchaseOut.model_validate(p) for p in items], pagination=pagination)


@router.get("/transfers-in", response_model=TransfersDetailOut)
def transfers_in_detail(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    f=Depends(dashboard_filter),
    db: Session = Depends(get_db),
):
    items, pagination = dashboard_service.transfers_detail(db, f, "in", page, limit)
    return TransfersDetailOut(transfers=[TransferOut.model_validate(t) for t in items], pagination=pagination)


@router.get("/transfers-out", response_model=TransfersDetailOut)
def transfers_out_detail(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    f=Depends(dashboard_filter),
    db: Session = Depends(get_db),
):
    items, pagination = dashboard_service.transfers_detail(db, f, "out", page, limit)
    return TransfersDetailOut(transfers=[TransferOut.model_validate(t) for t in items], pagination=pagination)


@router.get("/filters", response_model=FilterOptionsOut)
def filter_options(db: Session = Depends(get_db), user: User = Depends(staff)):
    options = dashboard_service.filter_options(db, user)
    return FilterOptionsOut(
        bases=[BaseRef.model_validate(b) for b in options["bases"]],
        equipment_types=[EquipmentTypeRef.model_validate(e) for e in options["equipment_types"]],
        status_options=options["status_options"],
    )
