from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from asset_tracker.core.clock import utcnow
from asset_tracker.core.errors import ValidationError
from asset_tracker.models.enums import AssetStatus, ExpenditureReason, PurchaseStatus
from asset_tracker.schemas.assignment import AssignmentCreate
from asset_tracker.schemas.expenditure import ExpenditureCreate
from asset_tracker.schemas.purchase import PurchaseCreate
from asset_tracker.schemas.transfer import TransferCreate
from asset_tracker.services import (
    assignment_service,
    dashboard_service,
    expenditure_service,
    purchase_service,
    transfer_service,
)


@pytest.mark.parametrize(
    "now, start, end",
    [
        (datetime(2026, 2, 14), datetime(2026, 1, 1), datetime(2026, 3, 31, 23, 59, 59)),
        (datetime(2026, 5, 1), datetime(2026, 4, 1), datetime(2026, 6, 30, 23, 59, 59)),
        (datetime(2026, 9, 30, 12), datetime(2026, 7, 1), datetime(2026, 9, 30, 23, 59, 59)),
        (datetime(2026, 10, 19), datetime(2026, 10, 1), datetime(2026, 12, 31, 23, 59, 59)),
    ],
)
def test_default_window_is_current_quarter(now, start, end):
    assert dashboard_service.period_window(now=now) == (start, end)


def test_explicit_window_wins():
    start, end = datetime(2025, 1, 5), datetime(2025, 2, 5)
    assert dashboard_service.period_window(start, end) == (start, end)


def test_one_sided_window_falls_back_to_quarter():
    start, end = dashboard_service.period_window(datetime(2020, 1, 1), None, now=datetime(2026, 10, 19))
    assert start == datetime(2026, 10, 1)


def test_inverted_window_is_rejected():
    with pytest.raises(ValidationError):
        dashboard_service.period_window(datetime(2026, 3, 1), datetime(2026, 1, 1))


@pytest.fixture
def window():
    now = utcnow()
    return {"start_date": now - timedelta(days=10), "end_date": now + timedelta(days=10)}


def _deliver(db, actor, base, et, quantity, unit_price="100.00"):
    return purchase_service.create(
        db, actor,
        PurchaseCreate(
            base_id=base.id,
            equipment_type_id=et.id,
            quantity=quantity,
            unit_price=Decimal(unit_price),
            status=PurchaseStatus.DELIVERED,
        ),
    )


def _move(db, actor, src, dst, et, quantity, asset_ids=None):
    transfer = transfer_service.initiate(
        db, actor,
        TransferCreate(
            from_base_id=src.id, to_base_id=dst.id, equipment_type_id=et.id, quantity=quantity, asset_ids=asset_ids
        ),
    )
    transfer_service.approve(db, actor, transfer.id)
    return transfer_service.complete(db, actor, transfer.id)


class TestMetrics:
    def test_balances_and_movement(self, db, logistics, ftl, ftb, m4a1, make_asset, window):
        make_asset(ftl, m4a1, quantity=5, age_days=30)
        purchase = _deliver(db, logistics, ftl, m4a1, 3)
        _move(db, logistics, ftl, ftb, m4a1, 3, asset_ids=[purchase.assets[0].id])

        at_ftl = dashboard_service.metrics(db, dashboard_service.build_filter(logistics, base_id=ftl.id, **window))
        at_ftb = dashboard_service.metrics(db, dashboard_service.build_filter(logistics, base_id=ftb.id, **window))

        assert at_ftl["metrics"]["opening_balance"] == 5
        assert at_ftl["metrics"]["closing_balance"] == 5
        assert at_ftl["net_movement_breakdown"] == {"purchases": 3, "transfers_in": 0, "transfers_out": 3}
        assert at_ftl["metrics"]["net_movement"] == 0

        assert at_ftb["metrics"]["opening_balance"] == 0
        assert at_ftb["metrics"]["closing_balance"] == 3
        assert at_ftb["net_movement_breakdown"] == {"purchases": 0, "transfers_in": 3, "transfers_out": 0}

    @pytest.mark.parametrize("base_name", ["ftl", "ftb"])
    def test_balances_are_conserved(self, request, db, logistics, ftl, ftb, m4a1, make_asset, window, base_name):
        make_asset(ftl, m4a1, quantity=5, age_days=30)
        make_asset(ftb, m4a1, quantity=2, age_days=30)
        bought = _deliver(db, logistics, ftl, m4a1, 4)
        _deliver(db, logistics, ftb, m4a1, 1)
        _move(db, logistics, ftl, ftb, m4a1, 4, asset_ids=[bought.assets[0].id])

        base = request.getfixturevalue(base_name)
        result = dashboard_service.metrics(db, dashboard_service.build_filter(logistics, base_id=base.id, **window))
        m, moves = result["metrics"], result["net_movement_breakdown"]

        assert m["closing_balance"] == (
            m["opening_balance"] + moves["purchases"] + moves["transfers_in"] - moves["transfers_out"]
        )

    def test_cancelled_purchases_and_open_transfers_are_ignored(self, db, logistics, ftl, ftb, m4a1, make_asset, window):
        make_asset(ftl, m4a1, quantity=2)
        purchase_service.create(
            db, logistics,
            PurchaseCreate(
                base_id=ftl.id, equipment_type_id=m4a1.id, quantity=9,
                unit_price=Decimal("1"), status=PurchaseStatus.CANCELLED,
            ),
        )
        transfer_service.initiate(
            db, logistics,
            TransferCreate(from_base_id=ftl.id, to_base_id=ftb.id, equipment_type_id=m4a1.id, quantity=1),
        )

        result = dashboard_service.metrics(db, dashboard_service.build_filter(logistics, base_id=ftl.id, **window))

        assert result["net_movement_breakdown"] == {"purchases": 0, "transfers_in": 0, "transfers_out": 0}

    def test_assigned_and_expended_counts(
        self, db, cmd_ftl, soldier_ftl, ftl, m4a1, make_asset, window
    ):
        issued = make_asset(ftl, m4a1)
        bulk = make_asset(ftl, m4a1, quantity=10)
        assignment_service.create(db, cmd_ftl, AssignmentCreate(asset_id=issued.id, assigned_to_id=soldier_ftl.id))
        expenditure = expenditure_service.create(
            db, cmd_ftl,
            ExpenditureCreate(
                equipment_type_id=m4a1.id, base_id=ftl.id, quantity=4, reason=ExpenditureReason.TRAINING,
                asset_ids=[bulk.id],
            ),
        )
        expenditure_service.approve(db, cmd_ftl, expenditure.id)
        expenditure_service.complete(db, cmd_ftl, expenditure.id)

        result = dashboard_service.metrics(
            db, dashboard_service.build_filter(cmd_ftl, equipment_type_id=m4a1.id, **window)
        )

        assert result["metrics"]["assigned_count"] == 1
        assert result["metrics"]["expended_count"] == 4

    def test_status_filter_narrows_balances(self, db, logistics, ftl, m4a1, make_asset, window):
        make_asset(ftl, m4a1, quantity=3, age_days=30)
        make_asset(ftl, m4a1, quantity=2, status=AssetStatus.MAINTENANCE, age_days=30)

        f = dashboard_service.build_filter(logistics, statuses=[AssetStatus.MAINTENANCE], **window)
        result = dashboard_service.metrics(db, f)

        assert result["metrics"]["opening_balance"] == 2

    def test_commander_scope_is_forced(self, db, logistics, cmd_ftb, ftl, m4a1, make_asset, window):
        make_asset(ftl, m4a1, quantity=7, age_days=30)

        f = dashboard_service.build_filter(cmd_ftb, base_id=ftl.id, **window)
        result = dashboard_service.metrics(db, f)

        assert f.base_id == cmd_ftb.assigned_base_id
        assert result["metrics"]["opening_balance"] == 0


class TestBreakdownAndDetail:
    def test_breakdown_matches_metrics(self, db, logistics, ftl, ftb, m4a1, make_asset, window):
        _deliver(db, logistics, ftl, m4a1, 2, unit_price="250.50")
        _deliver(db, logistics, ftl, m4a1, 1, unit_price="10.00")
        make_asset(ftl, m4a1)
        _move(db, logistics, ftl, ftb, m4a1, 1)

        f = dashboard_service.build_filter(logistics, base_id=ftl.id, **window)
        breakdown = dashboard_service.net_movement_breakdown(db, f)
        totals = dashboard_service.metrics(db, f)["net_movement_breakdown"]

        assert breakdown["purchases"] == {"quantity": 3, "amount": Decimal("511.00"), "transactions": 2}
        assert breakdown["transfers_out"] == {"quantity": 1, "transactions": 1}
        assert breakdown["purchases"]["quantity"] == totals["purchases"]
        assert breakdown["transfers_in"]["quantity"] == totals["transfers_in"]
        assert breakdown["transfers_out"]["quantity"] == totals["transfers_out"]

    def test_purchases_detail_is_paginated(self, db, logistics, ftl, m4a1, window):
        for qty in (1, 2, 3):
            _deliver(db, logistics, ftl, m4a1, qty)
        f = dashboard_service.build_filter(logistics, **window)

        first, meta = dashboard_service.purchases_detail(db, f, page=1, limit=2)
        second, meta2 = dashboard_service.purchases_detail(db, f, page=2, limit=2)

        assert len(first) == 2
        assert meta == {
            "current_page": 1, "total_pages": 2, "total_records": 3, "has_next": True, "has_prev": False,
        }
        assert len(second) == 1
        assert meta2["has_next"] is False
        assert meta2["has_prev"] is True
        assert first[0].purchase_date >= first[1].purchase_date >= second[0].purchase_date

    def test_transfers_detail_by_direction(self, db, logistics, ftl, ftb, m4a1, make_asset, window):
        make_asset(ftl, m4a1)
        _move(db, logistics, ftl, ftb, m4a1, 1)

        f = dashboard_service.build_filter(logistics, base_id=ftb.id, **window)
        inbound, _ = dashboard_service.transfers_detail(db, f, "in")
        outbound, _ = dashboard_service.transfers_detail(db, f, "out")

        assert len(inbound) == 1
        assert outbound == []

    def test_filter_options_scoped_for_commander(self, db, cmd_ftl, ftl, ftb, m4a1):
        options = dashboard_service.filter_options(db, cmd_ftl)

        assert [b.id for b in options["bases"]] == [ftl.id]
        assert [e.id for e in options["equipment_types"]] == [m4a1.id]
        assert "EXPENDED" in options["status_options"]
