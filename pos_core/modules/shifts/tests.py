"""
Tests para el ciclo de vida de turno/caja

Cubre:
- Máquina de estados NO_SHIFT → SHIFT_OPEN → DRAWER_OPEN → SHIFT_CLOSED
- "Ya abierto" como conflicto recuperable
- Retiros y movimientos con validación de montos
- Cierre de caja con y sin monto contado
- Registro de managers por local
"""

import logging
import pytest
from decimal import Decimal
from uuid import uuid4

from pos_core.core.config import settings
from pos_core.common.exceptions import (
    AlreadyOpen, DrawerStillOpen, InvalidAmount, NoActiveDrawer, NoActiveShift
)
from pos_core.modules.ledger.schemas import MovementType
from pos_core.modules.shifts.schemas import ShiftState
from pos_core.modules.shifts.service import (
    SessionContext, ShiftSessionManager, ShiftSessionRegistry, StaticSessionContext
)


@pytest.fixture
def operator_id():
    return uuid4()


@pytest.fixture
def context(location_id, operator_id):
    return StaticSessionContext(location_id, operator_id)


@pytest.fixture
def manager(ledger, context):
    return ShiftSessionManager(ledger, context=context)


@pytest.fixture
def operating(manager):
    """Turno con caja abierta de 1000"""
    manager.open_shift(Decimal("1000"), "Turno mañana")
    manager.open_drawer(Decimal("1000"))
    return manager


# ===== ESTADOS =====

class TestStateMachine:

    def test_full_cycle(self, manager):
        assert manager.state == ShiftState.NO_SHIFT

        shift = manager.open_shift("1000", "Turno tarde")
        assert manager.state == ShiftState.SHIFT_OPEN
        assert manager.current_shift.id == shift.id

        drawer = manager.open_drawer("1000")
        assert manager.state == ShiftState.DRAWER_OPEN
        assert drawer.turno_id == shift.id

        manager.close_drawer()
        assert manager.state == ShiftState.SHIFT_OPEN

        closed = manager.close_shift()
        assert closed.id == shift.id
        assert manager.state == ShiftState.SHIFT_CLOSED

    def test_new_shift_after_close(self, manager):
        first = manager.open_shift(0)
        manager.close_shift()
        second = manager.open_shift(0)
        assert second.id != first.id
        assert manager.state == ShiftState.SHIFT_OPEN

    def test_requires_location(self, ledger):
        with pytest.raises(ValueError):
            ShiftSessionManager(ledger)

    def test_context_protocol(self, context, location_id):
        assert isinstance(context, SessionContext)
        assert context.current_location() == location_id

    def test_snapshot(self, operating, location_id):
        snapshot = operating.snapshot()
        assert snapshot.location_id == location_id
        assert snapshot.state == ShiftState.DRAWER_OPEN
        assert snapshot.drawer_id == operating.current_drawer.id


class TestAlreadyOpen:

    def test_open_shift_twice_adopts_existing(self, ledger, location_id, manager):
        shift = manager.open_shift(1000)
        other = ShiftSessionManager(ledger, location_id=location_id)

        with pytest.raises(AlreadyOpen) as exc:
            other.open_shift(500)
        assert exc.value.recoverable
        assert exc.value.existing.id == shift.id
        assert other.current_shift.id == shift.id

        drawer = other.open_drawer(1000)
        assert drawer.turno_id == shift.id

    def test_open_or_resume(self, manager):
        shift, created = manager.open_or_resume_shift(1000)
        assert created
        again, created = manager.open_or_resume_shift(1000)
        assert not created
        assert again.id == shift.id

        drawer, created = manager.open_or_resume_drawer(1000)
        assert created
        same, created = manager.open_or_resume_drawer(1000)
        assert not created
        assert same.id == drawer.id

    def test_open_drawer_twice_from_stale_manager(self, ledger, location_id, operating):
        stale = ShiftSessionManager(ledger, location_id=location_id)
        assert stale.state == ShiftState.NO_SHIFT

        with pytest.raises(AlreadyOpen) as exc:
            stale.open_drawer(1000)
        assert exc.value.existing.id == operating.current_drawer.id
        assert stale.state == ShiftState.DRAWER_OPEN

    def test_conflict_logged_as_warning(self, manager, caplog):
        manager.open_shift(0)
        with caplog.at_level(logging.WARNING):
            manager.open_or_resume_shift(0)
        assert any(r.levelno == logging.WARNING for r in caplog.records)


class TestPrerequisites:

    def test_open_drawer_without_shift(self, manager):
        with pytest.raises(NoActiveShift) as exc:
            manager.open_drawer(1000)
        assert not exc.value.recoverable

    def test_close_shift_without_shift(self, manager):
        with pytest.raises(NoActiveShift):
            manager.close_shift()

    def test_withdraw_without_drawer(self, manager):
        manager.open_shift(0)
        with pytest.raises(NoActiveDrawer):
            manager.withdraw(100, "Cambio")

    def test_close_drawer_twice(self, operating):
        operating.close_drawer()
        with pytest.raises(NoActiveDrawer):
            operating.close_drawer()

    @pytest.mark.parametrize("amount", [-1, "abc", None])
    def test_invalid_opening(self, manager, amount):
        with pytest.raises(InvalidAmount):
            manager.open_shift(amount)


# ===== MOVIMIENTOS =====

class TestMovements:

    @pytest.mark.parametrize("amount", [0, -50, "", "abc"])
    def test_withdraw_invalid_amount(self, operating, amount):
        with pytest.raises(InvalidAmount):
            operating.withdraw(amount, "Retiro")
        assert operating.movements() == []

    def test_withdraw_records_outflow(self, operating, operator_id):
        movement = operating.withdraw("200", "Retiro a tesorería")
        assert movement.movement_type == MovementType.OUTFLOW
        assert movement.amount == Decimal("200")
        assert movement.drawer_id == operating.current_drawer.id
        assert movement.operator_id == operator_id
        assert movement.description == "Retiro a tesorería"

    def test_record_helpers(self, operating):
        operating.record_sale(500)
        operating.record_income(100)
        operating.record_expense(120)
        operating.record_payroll(300)
        operating.record_adjustment(-20)
        types = [m.type for m in operating.movements()]
        assert types == ["SALE", "INCOME", "EXPENSE", "PAYROLL", "ADJUSTMENT"]

    def test_adjustment_cannot_be_zero(self, operating):
        with pytest.raises(InvalidAmount):
            operating.record_adjustment(0)

    def test_live_summary_is_idempotent(self, operating):
        operating.record_sale(500)
        first = operating.drawer_summary()
        second = operating.drawer_summary()
        assert first == second
        assert first.theoretical == Decimal("1500")


# ===== CIERRES =====

class TestClosing:

    def test_close_without_count_uses_theoretical(self, operating):
        operating.record_sale(500)
        operating.record_expense(120)
        operating.record_adjustment(-20)

        closing = operating.close_drawer()
        assert closing.theoretical == Decimal("1360")
        assert closing.closing_amount == Decimal("1360")
        assert closing.variance == Decimal("0")
        assert not closing.counted
        assert closing.drawer.closing_amount == Decimal("1360")

    def test_ledger_sale_without_drawer_counts(self, operating, ledger):
        shift = operating.current_shift
        ledger.append_movement(shift.id, MovementType.SALE, Decimal("500"), "Venta 1")
        operating.record_expense(100)

        assert operating.drawer_summary().theoretical == Decimal("1400")
        closing = operating.close_drawer()
        assert closing.theoretical == Decimal("1400")
        assert closing.closing_amount == Decimal("1400")

    def test_previous_drawer_movements_ignored(self, operating):
        operating.record_sale(300)
        operating.close_drawer()
        operating.open_drawer(200)
        operating.record_sale(50)
        assert operating.close_drawer().theoretical == Decimal("250")

    def test_close_with_count(self, operating):
        operating.record_sale(500)
        closing = operating.close_drawer("1480")
        assert closing.counted
        assert closing.variance == Decimal("-20")
        assert closing.drawer.variance == Decimal("-20")

    def test_close_with_invalid_count(self, operating):
        with pytest.raises(InvalidAmount):
            operating.close_drawer("abc")
        assert operating.state == ShiftState.DRAWER_OPEN

    def test_close_shift_with_open_drawer_warns(self, operating, caplog):
        with caplog.at_level(logging.WARNING):
            operating.close_shift()
        assert operating.state == ShiftState.SHIFT_CLOSED
        assert any("todavía abierta" in r.getMessage() for r in caplog.records)

    def test_close_shift_with_open_drawer_enforced(self, operating, monkeypatch):
        monkeypatch.setattr(settings, "ENFORCE_DRAWER_CLOSED_ON_SHIFT_CLOSE", True)
        with pytest.raises(DrawerStillOpen):
            operating.close_shift()
        assert operating.state == ShiftState.DRAWER_OPEN


# ===== REGISTRO =====

class TestRegistry:

    def test_one_manager_per_location(self, ledger, context, location_id):
        registry = ShiftSessionRegistry(ledger)
        manager = registry.for_context(context)
        assert registry.for_location(location_id) is manager
        assert location_id in registry

        other = registry.for_location(uuid4())
        assert other is not manager
        assert len(registry) == 2

        registry.forget(location_id)
        assert location_id not in registry

    def test_new_manager_resumes_from_ledger(self, ledger, location_id, operating):
        registry = ShiftSessionRegistry(ledger)
        manager = registry.for_location(location_id)
        assert manager is not operating
        assert manager.state == ShiftState.DRAWER_OPEN
        assert manager.current_drawer.id == operating.current_drawer.id
