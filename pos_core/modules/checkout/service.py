"""
Cierre de una venta

Orden obligatorio dentro de un checkout:
1. Re-validar las promociones confirmadas (pueden venir de un estado viejo)
2. Componer el total
3. Reconciliar los pagos contra ese total

Si un paso falla los siguientes no corren y el carrito queda intacto.
"""

from typing import Iterable, Optional
import logging

from pos_core.common.exceptions import EmptyCart
from pos_core.common.money import ZERO
from pos_core.modules.ledger.schemas import CashMovement
from pos_core.modules.orders.cart import Cart
from pos_core.modules.orders.schemas import CheckoutAdjustments
from pos_core.modules.orders.service import compose_total
from pos_core.modules.payments.service import PaymentReconciler
from pos_core.modules.promotions.service import PromotionRuleEngine
from pos_core.modules.checkout.schemas import SaleSummary
from pos_core.modules.shifts.service import ShiftSessionManager

logger = logging.getLogger(__name__)


class CheckoutService:
    """Servicio para cerrar ventas del POS"""

    def __init__(self, reconciler: Optional[PaymentReconciler] = None,
                 engine: Optional[PromotionRuleEngine] = None):
        self.reconciler = reconciler or PaymentReconciler()
        self.engine = engine or PromotionRuleEngine()

    def checkout(
        self,
        cart: Cart,
        adjustments: Optional[CheckoutAdjustments] = None,
        payments: Iterable = (),
        customer_id: Optional[int] = None,
        notes: Optional[str] = None
    ) -> SaleSummary:
        """
        Arma la venta a partir del carrito.

        Raises:
            EmptyCart: sin productos ni promociones
            ValidationError: una promoción confirmada ya no respeta sus límites
            PaymentError: pagos faltantes o que no cuadran con el total
        """
        if cart.is_empty:
            raise EmptyCart()

        adjustments = adjustments or CheckoutAdjustments()

        promotions = tuple(self.engine.revalidate(entry) for entry in cart.promotions)
        totals = compose_total(cart.lines, promotions, adjustments)
        validation = self.reconciler.validate(payments, totals.total_final, adjustments.cobrado)

        change = self.reconciler.change_due(adjustments.paga_con, totals.total_final) if adjustments.cobrado else ZERO

        summary = SaleSummary(
            lines=cart.lines,
            promotions=promotions,
            adjustments=adjustments,
            totals=totals,
            payments=validation.payments,
            paid_total=validation.total_paid,
            outstanding=validation.outstanding,
            change=change,
            collection_status=validation.collection_status,
            payments_by_method=validation.payments_by_method,
            coupon_code=adjustments.coupon_code,
            customer_id=customer_id,
            notes=notes.strip() if notes and notes.strip() else None,
        )
        logger.info(
            f"Venta armada: total {totals.total_final}, estado {validation.collection_status.value}, "
            f"{totals.item_count} ítems"
        )
        return summary

    def record_sale(self, manager: ShiftSessionManager, summary: SaleSummary,
                    description: Optional[str] = None) -> Optional[CashMovement]:
        """
        Registra la venta cobrada como movimiento SALE en la caja abierta.

        Las ventas pendientes o con total 0 no mueven la caja y devuelven None.
        """
        if not summary.cobrado or summary.total_final <= 0:
            logger.debug(f"Venta sin movimiento de caja (estado {summary.collection_status.value})")
            return None
        return manager.record_sale(summary.total_final, description or "Venta POS")
