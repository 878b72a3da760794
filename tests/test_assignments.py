from datetime import timedelta

import pytest

from asset_tracker.core.clock import utcnow
from asset_tracker.core.errors import AccessDeniedError, InvalidStateError, ValidationError
from asset_tracker.models.assignment import Assignment
from asset_tracker.models.enums import AssetCondition, AssetStatus, AssignmentStatus
from asset_tracker.schemas.assignment import AssignmentCreate, AssignmentUpdate
from asset_tracker.services import assignment_service


def _assign(db, actor, asset, assignee, **kwargs):
    return assignment_service.create(
        db, actor, AssignmentCreate(asset_id=asset.id, assigned_to_id=assignee.id, **kwargs)
    )


def _active_count(db, asset):
    return (
        db.query(Assignment)
        .filter(Assignment.asset_id == asset.id, Assignment.status == AssignmentStatus.ACTIVE.value)
        .count()
    )


def test_create_marks_asset_assigned(db, cmd_ftl, soldier_ftl, ftl, m4a1, make_asset):
    asset = make_asset(ftl, m4a1)

    assignment = _assign(db, cmd_ftl, asset, soldier_ftl, purpose="Range day")
    db.refresh(asset)

    assert assignment.status == AssignmentStatus.ACTIVE.value
    assert assignment.base_id == ftl.id
    assert asset.status == AssetStatus.ASSIGNED.value


def test_at_most_one_active_assignment_per_asset(db, cmd_ftl, soldier_ftl, ftl, m4a1, make_asset):
    asset = make_asset(ftl, m4a1)
    _assign(db, cmd_ftl, asset, soldier_ftl)

    with pytest.raises(InvalidStateError):
        _assign(db, cmd_ftl, asset, soldier_ftl)

    assert _active_count(db, asset) == 1


def test_cross_base_assignment_rejected_for_commander(db, cmd_ftl, soldier_ftb, ftl, m4a1, make_asset):
    asset = make_asset(ftl, m4a1)

    with pytest.raises(ValidationError):
        _assign(db, cmd_ftl, asset, soldier_ftb)


def test_admin_may_assign_across_bases(db, admin, soldier_ftb, ftl, m4a1, make_asset):
    asset = make_asset(ftl, m4a1)

    assignment = _assign(db, admin, asset, soldier_ftb)

    assert assignment.assigned_to_id == soldier_ftb.id


def test_commander_cannot_assign_other_base_asset(db, cmd_ftb, soldier_ftb, ftl, m4a1, make_asset):
    asset = make_asset(ftl, m4a1)

    with pytest.raises(AccessDeniedError):
        _assign(db, cmd_ftb, asset, soldier_ftb)


def test_expected_return_must_be_in_future(db, cmd_ftl, soldier_ftl, ftl, m4a1, make_asset):
    asset = make_asset(ftl, m4a1)

    with pytest.raises(ValidationError):
        _assign(db, cmd_ftl, asset, soldier_ftl, expected_return_date=utcnow() - timedelta(days=1))


def test_unavailable_asset_cannot_be_assigned(db, cmd_ftl, soldier_ftl, ftl, m4a1, make_asset):
    asset = make_asset(ftl, m4a1, status=AssetStatus.MAINTENANCE)

    with pytest.raises(InvalidStateError):
        _assign(db, cmd_ftl, asset, soldier_ftl)


def test_return_releases_asset_with_condition(db, cmd_ftl, soldier_ftl, ftl, m4a1, make_asset):
    asset = make_asset(ftl, m4a1)
    assignment = _assign(db, cmd_ftl, asset, soldier_ftl)

    assignment = assignment_service.return_asset(db, cmd_ftl, assignment.id, AssetCondition.FAIR)
    db.refresh(asset)

    assert assignment.status == AssignmentStatus.RETURNED.value
    assert assignment.actual_return_date is not None
    assert asset.status == AssetStatus.AVAILABLE.value
    assert asset.condition == AssetCondition.FAIR.value


def test_return_twice_fails(db, cmd_ftl, soldier_ftl, ftl, m4a1, make_asset):
    asset = make_asset(ftl, m4a1)
    assignment = _assign(db, cmd_ftl, asset, soldier_ftl)
    assignment_service.return_asset(db, cmd_ftl, assignment.id)

    with pytest.raises(InvalidStateError):
        assignment_service.return_asset(db, cmd_ftl, assignment.id)


@pytest.mark.parametrize(
    "outcome, asset_status, condition",
    [
        (AssignmentStatus.LOST, AssetStatus.EXPENDED, AssetCondition.UNSERVICEABLE),
        (AssignmentStatus.DAMAGED, AssetStatus.MAINTENANCE, AssetCondition.POOR),
    ],
)
def test_lost_or_damaged(db, cmd_ftl, soldier_ftl, ftl, m4a1, make_asset, outcome, asset_status, condition):
    asset = make_asset(ftl, m4a1)
    assignment = _assign(db, cmd_ftl, asset, soldier_ftl)

    assignment = assignment_service.mark_lost_or_damaged(db, cmd_ftl, assignment.id, outcome)
    db.refresh(asset)

    assert assignment.status == outcome.value
    assert assignment.actual_return_date is not None
    assert asset.status == asset_status.value
    assert asset.condition == condition.value


def test_loss_status_must_be_lost_or_damaged(db, cmd_ftl, soldier_ftl, ftl, m4a1, make_asset):
    asset = make_asset(ftl, m4a1)
    assignment = _assign(db, cmd_ftl, asset, soldier_ftl)

    with pytest.raises(ValidationError):
        assignment_service.mark_lost_or_damaged(db, cmd_ftl, assignment.id, AssignmentStatus.RETURNED)


def test_update_only_while_active(db, cmd_ftl, soldier_ftl, ftl, m4a1, make_asset):
    asset = make_asset(ftl, m4a1)
    assignment = _assign(db, cmd_ftl, asset, soldier_ftl)

    updated = assignment_service.update(db, cmd_ftl, assignment.id, AssignmentUpdate(purpose="Patrol"))
    assert updated.purpose == "Patrol"

    assignment_service.return_asset(db, cmd_ftl, assignment.id)
    with pytest.raises(InvalidStateError):
        assignment_service.update(db, cmd_ftl, assignment.id, AssignmentUpdate(purpose="Late"))


def test_delete_active_assignment_reverts_asset(db, cmd_ftl, soldier_ftl, ftl, m4a1, make_asset):
    asset = make_asset(ftl, m4a1)
    assignment = _assign(db, cmd_ftl, asset, soldier_ftl)

    assignment_service.delete(db, cmd_ftl, assignment.id)
    db.refresh(asset)

    assert db.query(Assignment).count() == 0
    assert asset.status == AssetStatus.AVAILABLE.value


def test_assignee_can_view_own_assignment(db, cmd_ftl, soldier_ftl, ftl, m4a1, make_asset):
    asset = make_asset(ftl, m4a1)
    assignment = _assign(db, cmd_ftl, asset, soldier_ftl)

    assert assignment_service.get_assignment(db, soldier_ftl, assignment.id).id == assignment.id
