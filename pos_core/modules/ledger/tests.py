"""
Tests para el ledger SQL (turnos, cajas y movimientos)
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from pos_core.common.exceptions import Conflict, NotFound
from pos_core.modules.ledger.schemas import CashMovement, MovementType, SessionStatus
from pos_core.modules.ledger.service import Ledger


class TestMovementType:

    @pytest.mark.parametrize("raw,expected", [
        (MovementType.SALE, "SALE"),
        ("venta", "SALE"),
        ("GASTO", "EXPENSE"),
        ("retiro", "OUTFLOW"),
        ("Sueldo", "PAYROLL"),
        ("ajuste", "ADJUSTMENT"),
        ("propina", "PROPINA"),
        ("", "OTHER"),
    ])
    def test_normalize(self, raw, expected):
        assert MovementType.normalize(raw) == expected

    def test_known(self):
        assert MovementType.known("INCOME") == MovementType.INCOME
        assert MovementType.known("PROPINA") is None

    def test_movement_schema(self):
        movement = CashMovement(id=uuid4(), turno_id=uuid4(), type="egreso", amount=12.5)
        assert movement.type == "OUTFLOW"
        assert movement.movement_type == MovementType.OUTFLOW
        assert movement.amount == Decimal("12.5")


class TestShifts:

    def test_implements_protocol(self, ledger):
        assert isinstance(ledger, Ledger)

    def test_open_and_close(self, ledger, location_id):
        shift = ledger.open_shift(location_id, Decimal("1000"), tag="Turno mañana")
        assert shift.is_open
        assert shift.initial_balance == Decimal("1000")
        assert ledger.get_open_shift(location_id).id == shift.id

        closed = ledger.close_shift(shift.id)
        assert closed.status == SessionStatus.CLOSED
        assert closed.closed_at is not None
        assert ledger.get_open_shift(location_id) is None

    def test_one_open_shift_per_location(self, ledger, location_id):
        shift = ledger.open_shift(location_id, Decimal("0"))
        with pytest.raises(Conflict) as exc:
            ledger.open_shift(location_id, Decimal("0"))
        assert exc.value.existing.id == shift.id

        other = ledger.open_shift(uuid4(), Decimal("0"))
        assert other.id != shift.id

    def test_close_twice(self, ledger, location_id):
        shift = ledger.open_shift(location_id, Decimal("0"))
        ledger.close_shift(shift.id)
        with pytest.raises(Conflict):
            ledger.close_shift(shift.id)

    def test_close_unknown(self, ledger):
        with pytest.raises(NotFound):
            ledger.close_shift(uuid4())


class TestDrawers:

    def test_open_requires_open_shift(self, ledger, location_id):
        shift = ledger.open_shift(location_id, Decimal("0"))
        ledger.close_shift(shift.id)
        with pytest.raises(Conflict) as exc:
            ledger.open_drawer(shift.id, location_id, Decimal("500"))
        assert exc.value.existing is None

    def test_one_open_drawer_per_location(self, ledger, location_id):
        shift = ledger.open_shift(location_id, Decimal("0"))
        drawer = ledger.open_drawer(shift.id, location_id, Decimal("500"))
        assert drawer.turno_id == shift.id
        with pytest.raises(Conflict) as exc:
            ledger.open_drawer(shift.id, location_id, Decimal("500"))
        assert exc.value.existing.id == drawer.id

    def test_close_drawer(self, ledger, location_id):
        shift = ledger.open_shift(location_id, Decimal("0"))
        drawer = ledger.open_drawer(shift.id, location_id, Decimal("500"))
        closed = ledger.close_drawer(drawer.id, Decimal("480"), Decimal("500"), Decimal("-20"))
        assert not closed.is_open
        assert closed.closing_amount == Decimal("480")
        assert closed.variance == Decimal("-20")
        assert ledger.get_open_drawer(location_id) is None

        with pytest.raises(Conflict):
            ledger.close_drawer(drawer.id, Decimal("480"), Decimal("500"), Decimal("-20"))


class TestMovements:

    def test_append_and_list(self, ledger, location_id):
        shift = ledger.open_shift(location_id, Decimal("0"))
        drawer = ledger.open_drawer(shift.id, location_id, Decimal("1000"))
        operator = uuid4()

        sale = ledger.append_movement(shift.id, MovementType.SALE, Decimal("500"), "Venta", drawer.id, operator)
        ledger.append_movement(shift.id, "GASTO", Decimal("120"), "Limpieza", drawer.id)
        ledger.append_movement(shift.id, MovementType.ADJUSTMENT, Decimal("-20"), None, drawer.id)

        assert sale.operator_id == operator
        movements = ledger.list_movements(turno_id=shift.id)
        assert [m.type for m in movements] == ["SALE", "EXPENSE", "ADJUSTMENT"]
        assert movements[2].amount == Decimal("-20")
        assert len(ledger.list_movements(drawer_id=drawer.id)) == 3
        assert ledger.list_movements(turno_id=uuid4()) == []
