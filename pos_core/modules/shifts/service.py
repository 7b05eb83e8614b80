"""
Ciclo de vida de turno y caja por local

Implementa:
- ShiftSessionManager: máquina de estados turno/caja de un local
- ShiftSessionRegistry: un manager por local, propiedad de la aplicación
- SessionContext: local y operador actuales (solo lectura)

Estados: NO_SHIFT → SHIFT_OPEN → DRAWER_OPEN → SHIFT_OPEN → SHIFT_CLOSED.
Cada transición hace una sola escritura en el ledger. "Ya abierto" no es
fatal: el manager adopta la sesión existente y la transición sigue.
"""

from decimal import Decimal
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable
from uuid import UUID
import logging
import threading

from pos_core.core.config import settings
from pos_core.common.exceptions import (
    AlreadyOpen, Conflict, DrawerStillOpen, InvalidAmount, NoActiveDrawer, NoActiveShift
)
from pos_core.common.money import to_decimal, ZERO
from pos_core.modules.balance.schemas import DrawerSummary
from pos_core.modules.balance.service import BalanceAggregator
from pos_core.modules.ledger.schemas import CashMovement, CashSession, MovementType, ShiftSession
from pos_core.modules.ledger.service import Ledger
from pos_core.modules.shifts.schemas import DrawerClosing, SessionSnapshot, ShiftState

logger = logging.getLogger(__name__)


# ===== CONTEXTO =====

@runtime_checkable
class SessionContext(Protocol):
    def current_location(self) -> UUID:
        ...

    def current_operator(self) -> Optional[UUID]:
        ...


class StaticSessionContext:
    """Contexto fijo (un local, un operador)"""

    def __init__(self, location_id: UUID, operator_id: Optional[UUID] = None):
        self.location_id = location_id
        self.operator_id = operator_id

    def current_location(self) -> UUID:
        return self.location_id

    def current_operator(self) -> Optional[UUID]:
        return self.operator_id


# ===== MANAGER =====

class ShiftSessionManager:
    """Máquina de estados de turno/caja de un local"""

    def __init__(
        self,
        ledger: Ledger,
        location_id: Optional[UUID] = None,
        context: Optional[SessionContext] = None,
        aggregator: Optional[BalanceAggregator] = None
    ):
        if location_id is None:
            if context is None:
                raise ValueError("Se requiere location_id o un SessionContext")
            location_id = context.current_location()

        self.ledger = ledger
        self.location_id = location_id
        self.context = context
        self.aggregator = aggregator or BalanceAggregator()

        self._lock = threading.RLock()
        self._shift: Optional[ShiftSession] = None
        self._drawer: Optional[CashSession] = None
        self._last_closed_shift: Optional[ShiftSession] = None

    # ===== ESTADO =====

    @property
    def current_shift(self) -> Optional[ShiftSession]:
        return self._shift

    @property
    def current_drawer(self) -> Optional[CashSession]:
        return self._drawer

    @property
    def state(self) -> ShiftState:
        if self._drawer is not None:
            return ShiftState.DRAWER_OPEN
        if self._shift is not None:
            return ShiftState.SHIFT_OPEN
        if self._last_closed_shift is not None:
            return ShiftState.SHIFT_CLOSED
        return ShiftState.NO_SHIFT

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            location_id=self.location_id,
            state=self.state,
            shift_id=self._shift.id if self._shift else None,
            drawer_id=self._drawer.id if self._drawer else None
        )

    def refresh(self) -> ShiftState:
        """Relee turno y caja abiertos desde el ledger (fuente de verdad)"""
        with self._lock:
            self._shift = self.ledger.get_open_shift(self.location_id)
            drawer = self.ledger.get_open_drawer(self.location_id)
            # una caja de otro turno no pertenece a este estado
            if drawer is not None and self._shift is not None and drawer.turno_id != self._shift.id:
                logger.warning(
                    f"Caja {drawer.id} abierta en turno {drawer.turno_id} distinto del turno actual {self._shift.id}"
                )
            self._drawer = drawer
            return self.state

    # ===== TURNO =====

    def open_shift(self, opening_balance=ZERO, tag: Optional[str] = None) -> ShiftSession:
        """
        Abrir turno para el local.

        Si el local ya tiene turno abierto lanza AlreadyOpen con la sesión
        existente, que queda adoptada por el manager para poder abrir la caja.
        """
        amount = self._parse_amount(opening_balance, allow_zero=True)
        with self._lock:
            try:
                shift = self.ledger.open_shift(
                    self.location_id, amount, tag=tag, operator_id=self._operator()
                )
            except Conflict as e:
                existing = e.existing or self.ledger.get_open_shift(self.location_id)
                self._shift = existing
                logger.warning(f"Turno ya abierto en local {self.location_id}; se usa el existente")
                raise AlreadyOpen("Ya hay un turno abierto para este local", existing=existing)

            self._shift = shift
            self._drawer = None
            self._last_closed_shift = None
            logger.info(f"Turno {shift.id} abierto en local {self.location_id} con saldo inicial {amount}")
            return shift

    def open_or_resume_shift(self, opening_balance=ZERO, tag: Optional[str] = None) -> Tuple[ShiftSession, bool]:
        """Abrir turno o continuar con el existente; devuelve (turno, creado)"""
        try:
            return self.open_shift(opening_balance, tag), True
        except AlreadyOpen as e:
            return e.existing, False

    def close_shift(self) -> ShiftSession:
        """
        Cerrar el turno actual.

        No exige cerrar la caja antes: con una caja abierta se registra un
        warning, salvo que ENFORCE_DRAWER_CLOSED_ON_SHIFT_CLOSE lo impida.
        """
        with self._lock:
            shift = self._require_shift()
            drawer = self._drawer or self.ledger.get_open_drawer(self.location_id)
            if drawer is not None:
                if settings.ENFORCE_DRAWER_CLOSED_ON_SHIFT_CLOSE:
                    raise DrawerStillOpen(drawer_id=drawer.id)
                logger.warning(f"Cerrando turno {shift.id} con la caja {drawer.id} todavía abierta")

            try:
                closed = self.ledger.close_shift(shift.id, operator_id=self._operator())
            except Conflict:
                self._shift = None
                self._drawer = None
                raise NoActiveShift("El turno ya estaba cerrado")

            self._shift = None
            self._drawer = None
            self._last_closed_shift = closed
            logger.info(f"Turno {closed.id} cerrado en local {self.location_id}")
            return closed

    # ===== CAJA =====

    def open_drawer(self, opening_amount=ZERO) -> CashSession:
        """
        Abrir caja dentro del turno actual.

        Sin turno abierto lanza NoActiveShift. Si ya hay una caja abierta lanza
        AlreadyOpen con la caja existente, que queda adoptada por el manager.
        """
        amount = self._parse_amount(opening_amount, allow_zero=True)
        with self._lock:
            shift = self._require_shift()
            try:
                drawer = self.ledger.open_drawer(
                    shift.id, self.location_id, amount, operator_id=self._operator()
                )
            except Conflict as e:
                existing = e.existing or self.ledger.get_open_drawer(self.location_id)
                if existing is None:
                    # el ledger rechazó el turno: ya no está abierto
                    self._shift = None
                    raise NoActiveShift()
                self._drawer = existing
                logger.warning(f"Caja ya abierta en local {self.location_id}; se usa la existente")
                raise AlreadyOpen("Ya hay una caja abierta para este local", existing=existing)

            self._drawer = drawer
            logger.info(f"Caja {drawer.id} abierta en turno {shift.id} con monto inicial {amount}")
            return drawer

    def open_or_resume_drawer(self, opening_amount=ZERO) -> Tuple[CashSession, bool]:
        """Abrir caja o continuar con la existente; devuelve (caja, creada)"""
        try:
            return self.open_drawer(opening_amount), True
        except AlreadyOpen as e:
            return e.existing, False

    def close_drawer(self, counted_amount=None) -> DrawerClosing:
        """
        Cerrar la caja (arqueo).

        Sin monto contado se cierra con el teórico y diferencia 0; con monto
        contado la diferencia es contado - teórico.
        """
        with self._lock:
            drawer = self._require_drawer()
            theoretical = self.aggregator.theoretical(drawer, self.movements())

            counted = None
            if counted_amount is not None and counted_amount != "":
                counted = self._parse_amount(counted_amount, allow_zero=True)

            if counted is None:
                closing_amount, variance = theoretical, ZERO
            else:
                closing_amount, variance = counted, counted - theoretical

            try:
                closed = self.ledger.close_drawer(
                    drawer.id, closing_amount, theoretical, variance, operator_id=self._operator()
                )
            except Conflict:
                self._drawer = None
                raise NoActiveDrawer("La caja ya estaba cerrada")

            self._drawer = None
            logger.info(
                f"Caja {closed.id} cerrada: teórico {theoretical}, cierre {closing_amount}, diferencia {variance}"
            )
            return DrawerClosing(
                drawer=closed,
                theoretical=theoretical,
                closing_amount=closing_amount,
                variance=variance,
                counted=counted is not None
            )

    # ===== MOVIMIENTOS =====

    def withdraw(self, amount, reason: Optional[str] = None) -> CashMovement:
        """Retiro de efectivo: movimiento OUTFLOW sobre la caja abierta"""
        return self._append(MovementType.OUTFLOW, amount, reason or "Retiro de caja")

    def record_sale(self, amount, description: Optional[str] = None) -> CashMovement:
        return self._append(MovementType.SALE, amount, description or "Venta")

    def record_income(self, amount, description: Optional[str] = None) -> CashMovement:
        return self._append(MovementType.INCOME, amount, description or "Ingreso")

    def record_expense(self, amount, description: Optional[str] = None) -> CashMovement:
        return self._append(MovementType.EXPENSE, amount, description or "Gasto")

    def record_payroll(self, amount, description: Optional[str] = None) -> CashMovement:
        return self._append(MovementType.PAYROLL, amount, description or "Sueldos")

    def record_adjustment(self, amount, description: Optional[str] = None) -> CashMovement:
        """Ajuste de caja: puede ser negativo, nunca cero"""
        return self._append(MovementType.ADJUSTMENT, amount, description or "Ajuste", signed=True)

    def movements(self):
        """
        Movimientos del turno de la caja abierta (o del turno actual).

        Se listan por turno y no por caja: el ledger puede registrar ventas sin
        caja asignada. El filtro por caja lo hace BalanceAggregator.
        """
        if self._drawer is not None:
            return self.ledger.list_movements(turno_id=self._drawer.turno_id)
        if self._shift is not None:
            return self.ledger.list_movements(turno_id=self._shift.id)
        return []

    def drawer_summary(self, counted_amount=None, payments_by_method=None) -> DrawerSummary:
        """Totales en vivo de la caja abierta (se puede llamar en cada polling)"""
        drawer = self._require_drawer()
        return self.aggregator.drawer_summary(
            drawer, self.movements(), counted_amount=counted_amount, payments_by_method=payments_by_method
        )

    # ===== HELPERS =====

    def _append(self, movement_type: MovementType, amount, description: str, signed: bool = False) -> CashMovement:
        value = self._parse_amount(amount, signed=signed)
        with self._lock:
            drawer = self._require_drawer()
            movement = self.ledger.append_movement(
                drawer.turno_id,
                movement_type,
                value,
                description=description,
                drawer_id=drawer.id,
                operator_id=self._operator()
            )
            logger.info(f"Movimiento {movement_type.value} de {value} en caja {drawer.id}")
            return movement

    def _parse_amount(self, value, allow_zero: bool = False, signed: bool = False) -> Decimal:
        amount = to_decimal(value, default=None)
        if amount is None:
            raise InvalidAmount(amount=value)
        if signed:
            if amount == ZERO:
                raise InvalidAmount("El ajuste no puede ser cero", amount=value)
            return amount
        if amount < ZERO or (amount == ZERO and not allow_zero):
            raise InvalidAmount(amount=value)
        return amount

    def _require_shift(self) -> ShiftSession:
        if self._shift is None:
            self._shift = self.ledger.get_open_shift(self.location_id)
        if self._shift is None:
            raise NoActiveShift(location_id=self.location_id)
        return self._shift

    def _require_drawer(self) -> CashSession:
        if self._drawer is None:
            self._drawer = self.ledger.get_open_drawer(self.location_id)
        if self._drawer is None:
            raise NoActiveDrawer(location_id=self.location_id)
        return self._drawer

    def _operator(self) -> Optional[UUID]:
        return self.context.current_operator() if self.context else None


# ===== REGISTRO POR LOCAL =====

class ShiftSessionRegistry:
    """Un ShiftSessionManager por local, en lugar de punteros globales"""

    def __init__(self, ledger: Ledger, aggregator: Optional[BalanceAggregator] = None):
        self.ledger = ledger
        self.aggregator = aggregator or BalanceAggregator()
        self._managers: Dict[UUID, ShiftSessionManager] = {}
        self._lock = threading.Lock()

    def for_location(self, location_id: UUID, context: Optional[SessionContext] = None) -> ShiftSessionManager:
        with self._lock:
            manager = self._managers.get(location_id)
            if manager is None:
                manager = ShiftSessionManager(
                    self.ledger, location_id=location_id, context=context, aggregator=self.aggregator
                )
                manager.refresh()
                self._managers[location_id] = manager
                logger.debug(f"Manager de turnos creado para local {location_id}")
            return manager

    def for_context(self, context: SessionContext) -> ShiftSessionManager:
        return self.for_location(context.current_location(), context=context)

    def forget(self, location_id: UUID) -> None:
        with self._lock:
            self._managers.pop(location_id, None)

    def __contains__(self, location_id: UUID) -> bool:
        return location_id in self._managers

    def __len__(self) -> int:
        return len(self._managers)
