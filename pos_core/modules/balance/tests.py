"""
Tests para la agregación de movimientos y el balance teórico
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from pos_core.modules.balance.service import BalanceAggregator
from pos_core.modules.ledger.schemas import CashMovement, CashSession, MovementType, SessionStatus


@pytest.fixture
def aggregator():
    return BalanceAggregator()


@pytest.fixture
def drawer():
    return CashSession(
        id=uuid4(), turno_id=uuid4(), location_id=uuid4(),
        opening_amount=Decimal("1000"), status=SessionStatus.OPEN
    )


def movement(drawer, type, amount, drawer_id="same"):
    return CashMovement(
        id=uuid4(),
        turno_id=drawer.turno_id,
        drawer_id=drawer.id if drawer_id == "same" else drawer_id,
        type=type,
        amount=Decimal(str(amount)),
    )


class TestAggregate:

    def test_known_types_default_to_zero(self, aggregator):
        totals = aggregator.aggregate([])
        assert set(totals) == set(MovementType)
        assert all(value == Decimal("0") for value in totals.values())
        assert aggregator.net_inflow(totals) == Decimal("0")

    def test_groups_by_type(self, aggregator, drawer):
        totals = aggregator.aggregate([
            movement(drawer, "SALE", 500),
            movement(drawer, "venta", 250),
            movement(drawer, "INGRESO", 100),
            movement(drawer, "EXPENSE", 120),
            movement(drawer, "PAYROLL", 300),
            movement(drawer, "OUTFLOW", 50),
        ])
        assert totals[MovementType.SALE] == Decimal("750")
        assert totals["SALE"] == Decimal("750")
        assert aggregator.net_inflow(totals) == Decimal("850")
        assert aggregator.net_outflow(totals) == Decimal("470")

    def test_unknown_types_kept_apart(self, aggregator, drawer):
        totals = aggregator.aggregate([movement(drawer, "PROPINA", 40), movement(drawer, "SALE", 10)])
        assert totals["PROPINA"] == Decimal("40")
        assert aggregator.net_inflow(totals) == Decimal("10")

    def test_idempotent(self, aggregator, drawer):
        movements = [movement(drawer, "SALE", 500), movement(drawer, "EXPENSE", 120)]
        assert aggregator.aggregate(movements) == aggregator.aggregate(movements)
        assert aggregator.theoretical(drawer, movements) == aggregator.theoretical(drawer, movements)


class TestTheoretical:

    def test_scenario_f(self, aggregator, drawer):
        movements = [
            movement(drawer, "SALE", 500),
            movement(drawer, "EXPENSE", 120),
            movement(drawer, "ADJUSTMENT", -20),
        ]
        assert aggregator.theoretical(drawer, movements) == Decimal("1360")

    def test_only_opening(self, aggregator, drawer):
        assert aggregator.theoretical(drawer, []) == Decimal("1000")

    def test_other_drawer_ignored(self, aggregator, drawer):
        movements = [movement(drawer, "SALE", 500), movement(drawer, "SALE", 999, drawer_id=uuid4())]
        assert aggregator.theoretical(drawer, movements) == Decimal("1500")

    def test_movements_without_drawer_counted(self, aggregator, drawer):
        movements = [movement(drawer, "INCOME", 200, drawer_id=None)]
        assert aggregator.theoretical(drawer, movements) == Decimal("1200")


class TestDrawerSummary:

    def test_summary(self, aggregator, drawer):
        movements = [
            movement(drawer, "SALE", 500),
            movement(drawer, "EXPENSE", 120),
            movement(drawer, "ADJUSTMENT", -20),
            movement(drawer, "PROPINA", 15),
        ]
        summary = aggregator.drawer_summary(drawer, movements, counted_amount="1350", payments_by_method={1: "500"})
        assert summary.theoretical == Decimal("1360")
        assert summary.counted == Decimal("1350")
        assert summary.variance == Decimal("-10")
        assert summary.total_adjustments == Decimal("-20")
        assert summary.movements_count == 4
        assert summary.other_totals == {"PROPINA": Decimal("15")}
        assert summary.payments_by_method == {"1": Decimal("500")}

    def test_summary_uses_recorded_closing(self, aggregator, drawer):
        closed = drawer.model_copy(update={"closing_amount": Decimal("1000"), "status": SessionStatus.CLOSED})
        summary = aggregator.drawer_summary(closed, [])
        assert summary.counted == Decimal("1000")
        assert summary.variance == Decimal("0")

    def test_summary_without_count(self, aggregator, drawer):
        summary = aggregator.drawer_summary(drawer, [])
        assert summary.counted is None
        assert summary.variance is None
