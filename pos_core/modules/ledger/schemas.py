"""
Esquemas Pydantic del ledger: turnos, cajas y movimientos

Los movimientos son append-only: el motor nunca los modifica ni los borra.
"""

from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional
from uuid import UUID
from datetime import datetime
from enum import Enum


# ===== ENUMS =====

class SessionStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class MovementType(str, Enum):
    """Tipos de movimiento de caja"""
    SALE = "SALE"               # Venta
    INCOME = "INCOME"           # Ingreso manual
    EXPENSE = "EXPENSE"         # Gasto pagado desde caja
    OUTFLOW = "OUTFLOW"         # Egreso / retiro
    PAYROLL = "PAYROLL"         # Sueldos
    ADJUSTMENT = "ADJUSTMENT"   # Ajuste (puede ser + o -)

    @classmethod
    def normalize(cls, value) -> str:
        """
        Nombre canónico del tipo. Acepta las etiquetas del ledger en español
        (VENTA, GASTO...); los tipos desconocidos se conservan en mayúsculas.
        """
        if isinstance(value, MovementType):
            return value.value
        label = str(value or "").strip().upper()
        label = MOVEMENT_ALIASES.get(label, label)
        return label or "OTHER"

    @classmethod
    def known(cls, value: str) -> Optional["MovementType"]:
        try:
            return cls(value)
        except ValueError:
            return None


MOVEMENT_ALIASES = {
    "VENTA": "SALE",
    "INGRESO": "INCOME",
    "DEPOSIT": "INCOME",
    "GASTO": "EXPENSE",
    "EGRESO": "OUTFLOW",
    "RETIRO": "OUTFLOW",
    "WITHDRAWAL": "OUTFLOW",
    "SUELDO": "PAYROLL",
    "AJUSTE": "ADJUSTMENT",
}

INFLOW_TYPES = (MovementType.SALE, MovementType.INCOME)
OUTFLOW_TYPES = (MovementType.EXPENSE, MovementType.OUTFLOW, MovementType.PAYROLL)


# ===== SESIONES =====

class ShiftSession(BaseModel):
    """Turno abierto por local, independiente de la caja física"""
    id: UUID = Field(description="ID del turno")
    location_id: UUID = Field(description="Local")
    initial_balance: Decimal = Field(description="Saldo inicial")
    tag: Optional[str] = Field(None, description="Descripción (Turno mañana, Turno tarde...)")
    status: SessionStatus = Field(description="Estado del turno")
    opened_by: Optional[UUID] = None
    opened_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @property
    def is_open(self) -> bool:
        return self.status == SessionStatus.OPEN


class CashSession(BaseModel):
    """Caja operativa dentro de un turno"""
    id: UUID = Field(description="ID de la caja")
    turno_id: UUID = Field(description="Turno al que pertenece")
    location_id: UUID = Field(description="Local")
    opening_amount: Decimal = Field(description="Monto inicial")
    closing_amount: Optional[Decimal] = Field(None, description="Monto de cierre (contado o teórico)")
    theoretical_amount: Optional[Decimal] = Field(None, description="Cierre teórico")
    variance: Optional[Decimal] = Field(None, description="Diferencia contado - teórico")
    status: SessionStatus = Field(description="Estado de la caja")
    opened_by: Optional[UUID] = None
    opened_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @property
    def is_open(self) -> bool:
        return self.status == SessionStatus.OPEN


class CashMovement(BaseModel):
    """Movimiento de caja (append-only)"""
    id: UUID
    turno_id: UUID
    drawer_id: Optional[UUID] = None
    type: str = Field(description="Tipo de movimiento (MovementType o etiqueta desconocida)")
    amount: Decimal
    timestamp: Optional[datetime] = None
    operator_id: Optional[UUID] = None
    description: Optional[str] = None

    model_config = {"from_attributes": True}

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        return MovementType.normalize(v)

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v):
        if isinstance(v, float):
            return Decimal(str(v))
        return v

    @property
    def movement_type(self) -> Optional[MovementType]:
        return MovementType.known(self.type)
