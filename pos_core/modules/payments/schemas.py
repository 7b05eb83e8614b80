"""
Esquemas Pydantic de pagos
"""

from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List, Dict
from enum import Enum

from pos_core.common.money import to_decimal, ZERO


class CollectionStatus(str, Enum):
    """Estado de cobro de una venta (estado_cobro)"""
    PAID = "cobrado"
    PARTIAL = "parcial"
    PENDING = "pendiente"


class PaymentLine(BaseModel):
    """
    Línea de pago tal como la carga el operador.

    Se aceptan líneas incompletas (sin método, monto vacío o cero); el
    reconciliador las descarta antes de validar.
    """
    payment_method_id: Optional[int] = Field(None, description="ID del método de pago")
    amount: Decimal = Field(default=ZERO, description="Monto")

    @field_validator("payment_method_id", mode="before")
    @classmethod
    def empty_method(cls, v):
        if v in (None, "", 0, "0"):
            return None
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v):
        return to_decimal(v)

    @property
    def is_usable(self) -> bool:
        return self.payment_method_id is not None and self.amount > 0


class PaymentValidation(BaseModel):
    """Resultado de validar los pagos contra el total"""
    cobrado: bool
    total_final: Decimal
    payments: List[PaymentLine] = Field(default_factory=list, description="Pagos válidos")
    total_paid: Decimal = ZERO
    outstanding: Decimal = ZERO
    collection_status: CollectionStatus
    payments_by_method: Dict[int, Decimal] = Field(default_factory=dict)
