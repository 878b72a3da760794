import pytest

from asset_tracker.core.errors import AccessDeniedError, InsufficientSupplyError, InvalidStateError
from asset_tracker.models.enums import (
    AssetCondition,
    AssetStatus,
    AssignmentStatus,
    ExpenditureReason,
    ExpenditureStatus,
)
from asset_tracker.models.expenditure import Expenditure
from asset_tracker.schemas.assignment import AssignmentCreate
from asset_tracker.schemas.expenditure import ExpenditureCreate, ExpenditureUpdate
from asset_tracker.schemas.transfer import TransferCreate
from asset_tracker.services import assignment_service, expenditure_service, transfer_service


def _create(db, actor, base, et, quantity, **kwargs):
    payload = ExpenditureCreate(
        equipment_type_id=et.id,
        base_id=base.id,
        quantity=quantity,
        reason=kwargs.pop("reason", ExpenditureReason.TRAINING),
        **kwargs,
    )
    return expenditure_service.create(db, actor, payload)


def _approve_and_complete(db, actor, expenditure):
    expenditure_service.approve(db, actor, expenditure.id)
    return expenditure_service.complete(db, actor, expenditure.id)


def test_insufficient_supply_persists_nothing(db, cmd_ftl, ftl, m4a1, make_asset):
    make_asset(ftl, m4a1, quantity=3)

    with pytest.raises(InsufficientSupplyError) as exc:
        _create(db, cmd_ftl, ftl, m4a1, 10)

    assert exc.value.requested == 10
    assert exc.value.available == 3
    assert "Available: 3, Requested: 10" in exc.value.message
    assert db.query(Expenditure).count() == 0


def test_create_does_not_touch_assets(db, cmd_ftl, ftl, m4a1, make_asset):
    asset = make_asset(ftl, m4a1, quantity=5)

    expenditure = _create(db, cmd_ftl, ftl, m4a1, 2)
    db.refresh(asset)

    assert expenditure.status == ExpenditureStatus.PENDING.value
    assert [(line.asset_id, line.quantity) for line in expenditure.lines] == [(asset.id, 2)]
    assert asset.status == AssetStatus.AVAILABLE.value
    assert asset.quantity == 5


def test_commander_restricted_to_home_base(db, cmd_ftl, ftb, m4a1, make_asset):
    make_asset(ftb, m4a1)

    with pytest.raises(AccessDeniedError):
        _create(db, cmd_ftl, ftb, m4a1, 1)


def test_complete_expends_assets(db, logistics, ftl, m4a1, make_asset):
    asset = make_asset(ftl, m4a1)

    expenditure = _approve_and_complete(db, logistics, _create(db, logistics, ftl, m4a1, 1))
    db.refresh(asset)

    assert expenditure.status == ExpenditureStatus.COMPLETED.value
    assert expenditure.completed_by_id == logistics.id
    assert expenditure.completed_date is not None
    assert asset.status == AssetStatus.EXPENDED.value
    assert asset.condition == AssetCondition.UNSERVICEABLE.value


def test_complete_cascades_into_active_assignment(db, cmd_ftl, soldier_ftl, ftl, m4a1, make_asset):
    asset = make_asset(ftl, m4a1)
    assignment = assignment_service.create(
        db, cmd_ftl, AssignmentCreate(asset_id=asset.id, assigned_to_id=soldier_ftl.id)
    )

    _approve_and_complete(db, cmd_ftl, _create(db, cmd_ftl, ftl, m4a1, 1, reason=ExpenditureReason.OPERATION))
    db.refresh(assignment)

    assert assignment.status == AssignmentStatus.EXPENDED.value
    assert assignment.actual_return_date is not None


def test_partial_line_is_split_at_completion(db, logistics, ftl, m4a1, make_asset):
    batch = make_asset(ftl, m4a1, quantity=100)

    expenditure = _approve_and_complete(db, logistics, _create(db, logistics, ftl, m4a1, 30))
    db.refresh(batch)

    [line] = expenditure.lines
    assert batch.quantity == 70
    assert batch.status == AssetStatus.AVAILABLE.value
    assert line.asset.id != batch.id
    assert line.asset.quantity == 30
    assert line.asset.status == AssetStatus.EXPENDED.value


def test_complete_requires_approval(db, logistics, ftl, m4a1, make_asset):
    make_asset(ftl, m4a1)
    expenditure = _create(db, logistics, ftl, m4a1, 1)

    with pytest.raises(InvalidStateError):
        expenditure_service.complete(db, logistics, expenditure.id)


def test_complete_twice_fails(db, logistics, ftl, m4a1, make_asset):
    make_asset(ftl, m4a1)
    expenditure = _approve_and_complete(db, logistics, _create(db, logistics, ftl, m4a1, 1))

    with pytest.raises(InvalidStateError):
        expenditure_service.complete(db, logistics, expenditure.id)


def test_complete_fails_when_asset_moved_away(db, logistics, ftl, ftb, m4a1, make_asset):
    asset = make_asset(ftl, m4a1)
    expenditure = _create(db, logistics, ftl, m4a1, 1, asset_ids=[asset.id])
    expenditure_service.approve(db, logistics, expenditure.id)

    # out-of-band move, bypassing the workflows
    asset.current_base_id = ftb.id
    db.commit()

    with pytest.raises(InvalidStateError):
        expenditure_service.complete(db, logistics, expenditure.id)
    db.refresh(expenditure)
    assert expenditure.status == ExpenditureStatus.APPROVED.value


def test_open_expenditures_hold_their_quantity(db, logistics, ftl, ftb, m4a1, make_asset):
    make_asset(ftl, m4a1, quantity=5)
    _create(db, logistics, ftl, m4a1, 4)

    with pytest.raises(InsufficientSupplyError) as exc:
        _create(db, logistics, ftl, m4a1, 2)
    assert exc.value.available == 1

    with pytest.raises(InsufficientSupplyError):
        transfer_service.initiate(
            db, logistics,
            TransferCreate(from_base_id=ftl.id, to_base_id=ftb.id, equipment_type_id=m4a1.id, quantity=2),
        )


def test_cancel_appends_reason(db, logistics, ftl, m4a1, make_asset):
    make_asset(ftl, m4a1)
    expenditure = _create(db, logistics, ftl, m4a1, 1, notes="Live fire")

    expenditure = expenditure_service.cancel(db, logistics, expenditure.id, reason="Exercise postponed")

    assert expenditure.status == ExpenditureStatus.CANCELLED.value
    assert expenditure.notes == "Live fire\nCancellation reason: Exercise postponed"


def test_cancel_completed_rejected(db, logistics, ftl, m4a1, make_asset):
    make_asset(ftl, m4a1)
    expenditure = _approve_and_complete(db, logistics, _create(db, logistics, ftl, m4a1, 1))

    with pytest.raises(InvalidStateError):
        expenditure_service.cancel(db, logistics, expenditure.id)


def test_cancel_releases_held_quantity(db, logistics, ftl, m4a1, make_asset):
    make_asset(ftl, m4a1, quantity=2)
    first = _create(db, logistics, ftl, m4a1, 2)
    expenditure_service.cancel(db, logistics, first.id)

    second = _create(db, logistics, ftl, m4a1, 2)

    assert second.status == ExpenditureStatus.PENDING.value


def test_update_quantity_reallocates(db, logistics, ftl, m4a1, make_asset):
    make_asset(ftl, m4a1, quantity=3, age_days=2)
    make_asset(ftl, m4a1, quantity=3, age_days=1)
    expenditure = _create(db, logistics, ftl, m4a1, 2)

    expenditure = expenditure_service.update(db, logistics, expenditure.id, ExpenditureUpdate(quantity=5))

    assert expenditure.quantity == 5
    assert [line.quantity for line in expenditure.lines] == [3, 2]


def test_update_and_delete_blocked_once_completed(db, admin, logistics, ftl, m4a1, make_asset):
    make_asset(ftl, m4a1)
    expenditure = _approve_and_complete(db, logistics, _create(db, logistics, ftl, m4a1, 1))

    with pytest.raises(InvalidStateError):
        expenditure_service.update(db, logistics, expenditure.id, ExpenditureUpdate(notes="edit"))
    with pytest.raises(InvalidStateError):
        expenditure_service.delete(db, admin, expenditure.id)


def test_pending_expenditure_can_be_deleted(db, admin, logistics, ftl, m4a1, make_asset):
    make_asset(ftl, m4a1)
    expenditure = _create(db, logistics, ftl, m4a1, 1)

    expenditure_service.delete(db, admin, expenditure.id)

    assert db.query(Expenditure).count() == 0
