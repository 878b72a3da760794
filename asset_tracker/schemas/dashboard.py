"""
Pydantic schemas for the dashboard.
"""
from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal

from asset_tracker.schemas.common import BaseRef, EquipmentTypeRef, Pagination
from asset_tracker.schemas.purchase import PurchaseOut
from asset_tracker.schemas.transfer import TransferOut


class MetricsBlock(BaseModel):
    opening_balance: int
    closing_balance: int
    net_movement: int
    assigned_count: int
    expended_count: int


class MovementTotals(BaseModel):
    purchases: int
    transfers_in: int
    transfers_out: int


class MetricsOut(BaseModel):
    period_start: datetime
    period_end: datetime
    metrics: MetricsBlock
    net_movement_breakdown: MovementTotals


class MovementLine(BaseModel):
    quantity: int
    transactions: int


class PurchaseMovementLine(MovementLine):
    amount: Decimal


class BreakdownOut(BaseModel):
    period_start: datetime
    period_end: datetime
    purchases: PurchaseMovementLine
    transfers_in: MovementLine
    transfers_out: MovementLine


class PurchasesDetailOut(BaseModel):
    purchases: list[PurchaseOut]
    pagination: Pagination


class TransfersDetailOut(BaseModel):
    transfers: list[TransferOut]
    pagination: Pagination


class FilterOptionsOut(BaseModel):
    bases: list[BaseRef]
    equipment_types: list[EquipmentTypeRef]
    status_options: list[str]
