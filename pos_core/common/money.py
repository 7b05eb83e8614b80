"""
Helpers de dinero: todo el motor trabaja con Decimal
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from pos_core.core.config import settings

ZERO = Decimal("0")


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """
    Convierte entradas de usuario a Decimal.

    Vacíos, None, textos no numéricos y NaN/infinito devuelven `default`.
    Los floats pasan por str() para no arrastrar errores binarios.
    """
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return default
    if not result.is_finite():
        return default
    return result


def non_negative(value: Any) -> Decimal:
    """Clamp silencioso: un valor negativo se trata como 0, nunca como reverso."""
    return max(ZERO, to_decimal(value))


def optional_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    result = to_decimal(value, default=None)
    return result


def quantize_money(value: Decimal, quantum: Optional[Decimal] = None) -> Decimal:
    """Redondeo comercial (ROUND_HALF_UP) a centavos"""
    return value.quantize(quantum or settings.money_quantum, rounding=ROUND_HALF_UP)
