"""
Agregación de movimientos de caja

Reducción pura sobre la lista de movimientos: volver a consultar y volver a
agregar los mismos movimientos (polling) da siempre los mismos totales.

teórico = inicial + (ventas + ingresos) − (gastos + egresos + sueldos) + ajustes
"""

from decimal import Decimal
from typing import Dict, Iterable, Mapping, Optional, Union
from uuid import UUID

from pos_core.common.money import to_decimal, ZERO
from pos_core.modules.balance.schemas import DrawerSummary
from pos_core.modules.ledger.schemas import (
    CashMovement, CashSession, MovementType, INFLOW_TYPES, OUTFLOW_TYPES
)

Totals = Dict[Union[MovementType, str], Decimal]


class BalanceAggregator:
    """Totales por tipo y balance teórico de una caja"""

    def aggregate(self, movements: Iterable[CashMovement]) -> Totals:
        """
        Agrupa por tipo. Todos los tipos conocidos arrancan en 0 para que las
        fórmulas nunca lean un total inexistente; los desconocidos se suman
        bajo su propia etiqueta.
        """
        totals: Totals = {movement_type: ZERO for movement_type in MovementType}
        for movement in movements:
            key = movement.movement_type or movement.type
            totals[key] = totals.get(key, ZERO) + to_decimal(movement.amount)
        return totals

    def net_inflow(self, totals: Mapping) -> Decimal:
        return sum((totals.get(t, ZERO) for t in INFLOW_TYPES), ZERO)

    def net_outflow(self, totals: Mapping) -> Decimal:
        return sum((totals.get(t, ZERO) for t in OUTFLOW_TYPES), ZERO)

    def theoretical(self, drawer: CashSession, movements: Iterable[CashMovement]) -> Decimal:
        totals = self.aggregate(self._for_drawer(drawer, movements))
        return self._theoretical(to_decimal(drawer.opening_amount), totals)

    def drawer_summary(
        self,
        drawer: CashSession,
        movements: Iterable[CashMovement],
        counted_amount=None,
        payments_by_method: Optional[Mapping] = None
    ) -> DrawerSummary:
        """
        Resumen de cierre de una caja.

        Si no se pasa `counted_amount` se usa el monto de cierre ya registrado
        en la caja (si está cerrada).
        """
        movements = list(self._for_drawer(drawer, movements))
        totals = self.aggregate(movements)
        opening = to_decimal(drawer.opening_amount)
        theoretical = self._theoretical(opening, totals)

        counted = counted_amount if counted_amount is not None else drawer.closing_amount
        counted = to_decimal(counted) if counted is not None else None

        return DrawerSummary(
            drawer_id=drawer.id,
            opening_amount=opening,
            total_sales=totals[MovementType.SALE],
            total_income=totals[MovementType.INCOME],
            total_expenses=totals[MovementType.EXPENSE],
            total_outflows=totals[MovementType.OUTFLOW],
            total_payroll=totals[MovementType.PAYROLL],
            total_adjustments=totals[MovementType.ADJUSTMENT],
            net_inflow=self.net_inflow(totals),
            net_outflow=self.net_outflow(totals),
            theoretical=theoretical,
            counted=counted,
            variance=counted - theoretical if counted is not None else None,
            movements_count=len(movements),
            other_totals={str(k): v for k, v in totals.items() if not isinstance(k, MovementType)},
            payments_by_method={str(k): to_decimal(v) for k, v in (payments_by_method or {}).items()},
        )

    def _theoretical(self, opening: Decimal, totals: Mapping) -> Decimal:
        return opening + self.net_inflow(totals) - self.net_outflow(totals) + totals.get(MovementType.ADJUSTMENT, ZERO)

    def _for_drawer(self, drawer: CashSession, movements: Iterable[CashMovement]):
        # los movimientos sin caja asignada cuentan para la caja del turno
        drawer_id: Optional[UUID] = getattr(drawer, "id", None)
        for movement in movements:
            if movement.drawer_id is None or drawer_id is None or movement.drawer_id == drawer_id:
                yield movement
