import pytest

from asset_tracker.core.errors import AccessDeniedError, InvalidStateError, ValidationError
from asset_tracker.models.asset import Asset
from asset_tracker.models.enums import AssetCondition, AssetStatus, ExpenditureReason
from asset_tracker.schemas.asset import AssetCreate, AssetUpdate
from asset_tracker.schemas.expenditure import ExpenditureCreate
from asset_tracker.schemas.transfer import TransferCreate
from asset_tracker.services import asset_service, expenditure_service, transfer_service


def _create(db, actor, base, et, **kwargs):
    payload = AssetCreate(equipment_type_id=et.id, current_base_id=base.id, **kwargs)
    return asset_service.create_asset(db, actor, payload)


class TestSerialNumbers:
    def test_first_assets_get_sequential_serials(self, db, logistics, ftl, m4a1):
        first = _create(db, logistics, ftl, m4a1, quantity=1)
        second = _create(db, logistics, ftl, m4a1, quantity=1)

        assert first.serial_number == "A001"
        assert first.status == AssetStatus.AVAILABLE.value
        assert first.condition == AssetCondition.NEW.value
        assert second.serial_number == "A002"

    def test_next_serial_follows_highest_numeric_suffix(self, db, logistics, ftl, m4a1):
        _create(db, logistics, ftl, m4a1, serial_number="A041")
        _create(db, logistics, ftl, m4a1, serial_number="RIFLE-7")

        assert asset_service.next_serial_number(db) == "A042"

    def test_duplicate_serial_rejected(self, db, logistics, ftl, m4a1):
        _create(db, logistics, ftl, m4a1, serial_number="A100")
        with pytest.raises(ValidationError):
            _create(db, logistics, ftl, m4a1, serial_number="A100")


class TestScoping:
    def test_commander_cannot_create_at_other_base(self, db, cmd_ftl, ftb, m4a1):
        with pytest.raises(AccessDeniedError):
            _create(db, cmd_ftl, ftb, m4a1)

    def test_commander_list_forced_to_home_base(self, db, cmd_ftl, ftl, ftb, m4a1, make_asset):
        make_asset(ftl, m4a1)
        make_asset(ftb, m4a1)

        assets = asset_service.list_assets(db, cmd_ftl, base_id=ftb.id)

        assert len(assets) == 1
        assert assets[0].current_base_id == ftl.id


class TestManualUpdates:
    def test_available_to_maintenance_allowed(self, db, logistics, ftl, m4a1, make_asset):
        asset = make_asset(ftl, m4a1)

        updated = asset_service.update_asset(db, logistics, asset.id, AssetUpdate(status=AssetStatus.MAINTENANCE))

        assert updated.status == AssetStatus.MAINTENANCE.value

    def test_workflow_statuses_cannot_be_set_directly(self, db, logistics, ftl, m4a1, make_asset):
        asset = make_asset(ftl, m4a1)

        with pytest.raises(InvalidStateError):
            asset_service.update_asset(db, logistics, asset.id, AssetUpdate(status=AssetStatus.EXPENDED))

    def test_quantity_of_available_asset_can_be_corrected(self, db, logistics, ftl, m4a1, make_asset):
        asset = make_asset(ftl, m4a1, quantity=5)

        updated = asset_service.update_asset(db, logistics, asset.id, AssetUpdate(quantity=7))

        assert updated.quantity == 7

    def test_quantity_of_in_transit_asset_is_locked(self, db, logistics, ftl, ftb, m4a1, make_asset):
        asset = make_asset(ftl, m4a1)
        transfer = transfer_service.initiate(
            db, logistics,
            TransferCreate(from_base_id=ftl.id, to_base_id=ftb.id, equipment_type_id=m4a1.id, quantity=1),
        )

        with pytest.raises(InvalidStateError):
            asset_service.update_asset(db, logistics, asset.id, AssetUpdate(quantity=50))

        transfer_service.approve(db, logistics, transfer.id)
        transfer = transfer_service.complete(db, logistics, transfer.id)
        db.refresh(asset)
        assert asset.quantity == transfer.total_quantity == 1
        assert asset.current_base_id == ftb.id

    def test_quantity_cannot_drop_below_open_expenditure_hold(self, db, logistics, ftl, m4a1, make_asset):
        asset = make_asset(ftl, m4a1, quantity=5)
        expenditure_service.create(
            db, logistics,
            ExpenditureCreate(
                equipment_type_id=m4a1.id, base_id=ftl.id, quantity=4, reason=ExpenditureReason.TRAINING,
            ),
        )

        with pytest.raises(InvalidStateError):
            asset_service.update_asset(db, logistics, asset.id, AssetUpdate(quantity=3))

        db.refresh(asset)
        assert asset.quantity == 5
        assert asset_service.update_asset(db, logistics, asset.id, AssetUpdate(quantity=4)).quantity == 4

    def test_split_keeps_remainder_on_source(self, db, ftl, m4a1, make_asset):
        batch = make_asset(ftl, m4a1, quantity=10)

        part = asset_service.split_asset(db, batch, 4)
        db.commit()

        assert batch.quantity == 6
        assert part.quantity == 4
        assert part.serial_number == "A002"
        assert part.current_base_id == ftl.id


class TestRetention:
    def test_unreferenced_asset_can_be_deleted(self, db, admin, ftl, m4a1, make_asset):
        asset = make_asset(ftl, m4a1)

        result = asset_service.delete_asset(db, admin, asset.id)

        assert result["serial_number"] == "A001"
        assert db.get(Asset, result["deleted_id"]) is None

    def test_asset_referenced_by_transfer_cannot_be_deleted(self, db, admin, logistics, ftl, ftb, m4a1, make_asset):
        asset = make_asset(ftl, m4a1)
        transfer_service.initiate(
            db, logistics,
            TransferCreate(from_base_id=ftl.id, to_base_id=ftb.id, equipment_type_id=m4a1.id, quantity=1),
        )

        with pytest.raises(InvalidStateError):
            asset_service.delete_asset(db, admin, asset.id)
