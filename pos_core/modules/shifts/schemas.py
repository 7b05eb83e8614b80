"""
Esquemas del ciclo de vida de turno/caja
"""

from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional
from uuid import UUID
from enum import Enum

from pos_core.modules.ledger.schemas import CashSession


class ShiftState(str, Enum):
    """Estado de un local: sin turno → turno abierto → caja abierta → turno cerrado"""
    NO_SHIFT = "no_shift"
    SHIFT_OPEN = "shift_open"
    DRAWER_OPEN = "drawer_open"
    SHIFT_CLOSED = "shift_closed"


class DrawerClosing(BaseModel):
    """Resultado del cierre de caja (arqueo)"""
    drawer: CashSession = Field(description="Caja ya cerrada")
    theoretical: Decimal = Field(description="Cierre teórico")
    closing_amount: Decimal = Field(description="Monto de cierre registrado")
    variance: Decimal = Field(description="Diferencia contado - teórico")
    counted: bool = Field(description="Si el operador informó un monto contado")


class SessionSnapshot(BaseModel):
    """Vista de solo lectura de un local para la pantalla de operación"""
    location_id: UUID
    state: ShiftState
    shift_id: Optional[UUID] = None
    drawer_id: Optional[UUID] = None
