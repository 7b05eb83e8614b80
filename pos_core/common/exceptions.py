"""
Taxonomía de errores del motor POS

- ValidationError: selección de promoción rechazada (siempre recuperable)
- PaymentError: pagos que no cuadran con el total (bloquea solo el cobro)
- ShiftError: transición de turno/caja inválida (requiere un paso previo)
- AlreadyOpen: conflicto recuperable, se debe usar la sesión existente
- CollaboratorError: fallas del catálogo o ledger, no se interpretan aquí

Los ajustes numéricos (clamps a cero, pisos) nunca lanzan errores.
"""

from typing import Any, Optional


class POSError(Exception):
    """Error base del motor POS"""

    recoverable = True
    default_detail = "Error en la operación"

    def __init__(self, detail: Optional[str] = None, **context: Any):
        self.detail = detail or self.default_detail
        self.context = context
        super().__init__(self.detail)

    @property
    def code(self) -> str:
        return type(self).__name__


# ===== PROMOCIONES =====

class ValidationError(POSError):
    default_detail = "La selección de la promoción no es válida"


class MissingProduct(ValidationError):
    default_detail = "Completa los productos de la promoción"


class InvalidQuantity(ValidationError):
    default_detail = "Las cantidades deben ser mayores a cero"


class BelowMinimum(ValidationError):
    default_detail = "No se alcanzó la cantidad mínima de la categoría"


class AboveMaximum(ValidationError):
    default_detail = "Se excede la cantidad máxima de la categoría"


class LimitExceeded(ValidationError):
    default_detail = "Límite máximo alcanzado para esta categoría en la promo"


class ProductNotInCategory(ValidationError):
    default_detail = "El producto no pertenece a la categoría de la promoción"


# ===== PAGOS =====

class PaymentError(POSError):
    default_detail = "Los pagos no son válidos"


class NoPayments(PaymentError):
    default_detail = "Agrega al menos un pago o desmarca \"Cobrado\""


class AmountMismatch(PaymentError):
    default_detail = "Los pagos no cubren el total"


# ===== TURNOS Y CAJAS =====

class ShiftError(POSError):
    recoverable = False
    default_detail = "Operación de turno/caja inválida"


class NoActiveShift(ShiftError):
    default_detail = "Abre un turno antes de abrir la caja"


class NoActiveDrawer(ShiftError):
    default_detail = "No hay caja abierta para este local"


class InvalidAmount(ShiftError):
    default_detail = "Ingresa un monto válido"


class DrawerStillOpen(ShiftError):
    default_detail = "Cierra la caja antes de cerrar el turno"


class AlreadyOpen(ShiftError):
    """Ya existe una sesión abierta: no es fatal, se continúa con `existing`."""

    recoverable = True
    default_detail = "Ya existe una sesión abierta para este local"

    def __init__(self, detail: Optional[str] = None, existing: Any = None, **context: Any):
        super().__init__(detail, **context)
        self.existing = existing


# ===== CHECKOUT =====

class CheckoutError(POSError):
    default_detail = "No se pudo completar la venta"


class EmptyCart(CheckoutError):
    default_detail = "El carrito está vacío"


# ===== COLABORADORES =====

class CollaboratorError(POSError):
    recoverable = False
    default_detail = "Error en un servicio externo"


class NotFound(CollaboratorError):
    default_detail = "Registro no encontrado"


class Conflict(CollaboratorError):
    default_detail = "Conflicto de estado en el ledger"

    def __init__(self, detail: Optional[str] = None, existing: Any = None, **context: Any):
        super().__init__(detail, **context)
        self.existing = existing
