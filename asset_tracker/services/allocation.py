"""
Allocation Policy: pick which asset records satisfy a requested quantity.

Pure read + selection. Callers run it inside ``allocation_lock`` and a
``transaction`` and then mutate the chosen assets themselves.
"""
import logging
from dataclasses import dataclass, field

from sqlalchemy import func
from sqlalchemy.orm import Session

from asset_tracker.core.errors import AllocationError
from asset_tracker.models.asset import Asset
from asset_tracker.models.enums import ExpenditureStatus
from asset_tracker.models.expenditure import Expenditure, ExpenditureLine

logger = logging.getLogger(__name__)


@dataclass
class AllocationLine:
    asset: Asset
    quantity: int

    @property
    def is_partial(self) -> bool:
        return self.quantity < self.asset.quantity


@dataclass
class Allocation:
    requested: int
    lines: list[AllocationLine] = field(default_factory=list)

    @property
    def total_allocated(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def is_short(self) -> bool:
        return self.total_allocated < self.requested


def _free(asset, held) -> int:
    return asset.quantity - held.get(str(asset.id), 0)


def _take(assets, requested: int, held) -> list[AllocationLine]:
    lines = []
    remaining = requested
    for asset in assets:
        if remaining <= 0:
            break
        free = _free(asset, held)
        if free <= 0:
            continue
        qty = min(free, remaining)
        lines.append(AllocationLine(asset=asset, quantity=qty))
        remaining -= qty
    return lines


def held_by_open_expenditures(db: Session, base_id, equipment_type_id, exclude_expenditure_id=None) -> dict:
    """Quantity per asset already claimed by PENDING or APPROVED expenditures."""
    q = (
        db.query(ExpenditureLine.asset_id, func.sum(ExpenditureLine.quantity))
        .join(Expenditure, Expenditure.id == ExpenditureLine.expenditure_id)
        .filter(
            Expenditure.base_id == base_id,
            Expenditure.equipment_type_id == equipment_type_id,
            Expenditure.status.in_([ExpenditureStatus.PENDING.value, ExpenditureStatus.APPROVED.value]),
        )
    )
    if exclude_expenditure_id is not None:
        q = q.filter(Expenditure.id != exclude_expenditure_id)
    return {str(asset_id): int(qty or 0) for asset_id, qty in q.group_by(ExpenditureLine.asset_id)}


def allocate(
    db: Session,
    base_id,
    equipment_type_id,
    requested_quantity: int,
    eligible_statuses,
    asset_ids=None,
    held=None,
) -> Allocation:
    """
    Select assets at (base, equipment type) whose status is eligible.

    With ``asset_ids`` exactly those assets are used, in the given order,
    and any missing or ineligible id fails the whole call. Without, the
    oldest assets are consumed first. A shortfall is not an error here:
    compare ``total_allocated`` against the request.

    ``held`` maps asset id to a quantity already claimed by another open
    record; only the remainder of such an asset can be allocated.
    """
    held = {str(k): v for k, v in (held or {}).items()}
    statuses = [s.value if hasattr(s, "value") else s for s in eligible_statuses]

    if asset_ids:
        wanted = list(dict.fromkeys(asset_ids))
        found = {
            str(a.id): a
            for a in db.query(Asset).filter(Asset.id.in_(wanted)).with_for_update().all()
        }
        missing = [i for i in wanted if str(i) not in found]
        if missing:
            raise AllocationError("Some assets were not found", asset_ids=missing)

        ineligible = [
            a.id for a in found.values()
            if str(a.current_base_id) != str(base_id)
            or str(a.equipment_type_id) != str(equipment_type_id)
            or a.status not in statuses
            or _free(a, held) <= 0
        ]
        if ineligible:
            raise AllocationError(
                "Some assets are not eligible: they must be at the source base, of the requested "
                f"equipment type and in status {', '.join(statuses)}",
                asset_ids=ineligible,
            )
        candidates = [found[str(i)] for i in wanted]
    else:
        candidates = (
            db.query(Asset)
            .filter(
                Asset.current_base_id == base_id,
                Asset.equipment_type_id == equipment_type_id,
                Asset.status.in_(statuses),
                Asset.quantity > 0,
            )
            .order_by(Asset.created_at.asc(), Asset.serial_number.asc())
            .with_for_update()
            .all()
        )

    allocation = Allocation(requested=requested_quantity, lines=_take(candidates, requested_quantity, held))
    logger.debug(
        f"[Allocation] base={base_id} type={equipment_type_id} "
        f"requested={requested_quantity} allocated={allocation.total_allocated}"
    )
    return allocation

