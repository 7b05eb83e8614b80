"""
Reconciliación de pagos contra el total a cobrar

- change_due: vuelto a entregar según "paga con"
- validate: valida el split de pagos de una venta cobrada
- outstanding: saldo pendiente (al cobrar y al editar pagos de una venta)

La tolerancia de 0.02 solo absorbe redondeos, no es una tolerancia comercial.
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional
import logging

from pos_core.core.config import settings
from pos_core.common.exceptions import NoPayments, AmountMismatch
from pos_core.common.money import optional_decimal, to_decimal, ZERO
from pos_core.modules.payments.schemas import PaymentLine, PaymentValidation, CollectionStatus

logger = logging.getLogger(__name__)


class PaymentReconciler:
    """Servicio para validar pagos mixtos y calcular vuelto/saldo"""

    def __init__(self, tolerance: Optional[Decimal] = None):
        self.tolerance = settings.PAYMENT_TOLERANCE if tolerance is None else to_decimal(tolerance)

    def change_due(self, paga_con, total_final) -> Decimal:
        """Sin "paga con" (o ≤ 0) se asume pago exacto: vuelto 0"""
        total_final = to_decimal(total_final)
        tendered = optional_decimal(paga_con)
        if tendered is None or tendered <= 0:
            tendered = total_final
        return max(ZERO, tendered - total_final)

    def outstanding(self, total_final, total_paid) -> Decimal:
        return max(ZERO, to_decimal(total_final) - to_decimal(total_paid))

    def clean_payments(self, payments: Iterable) -> List[PaymentLine]:
        """Descarta líneas sin método o con monto ≤ 0"""
        lines = [p if isinstance(p, PaymentLine) else PaymentLine.model_validate(p) for p in payments or []]
        return [p for p in lines if p.is_usable]

    def totals_by_method(self, payments: Iterable) -> Dict[int, Decimal]:
        totals: Dict[int, Decimal] = {}
        for payment in self.clean_payments(payments):
            totals[payment.payment_method_id] = totals.get(payment.payment_method_id, ZERO) + payment.amount
        return totals

    def collection_status(self, total_final, total_paid, cobrado: bool) -> CollectionStatus:
        """Estado de cobro a partir de lo ya pagado (parcial si hubo algún pago)"""
        if cobrado:
            return CollectionStatus.PAID
        if to_decimal(total_paid) > 0:
            return CollectionStatus.PARTIAL
        return CollectionStatus.PENDING

    def validate(self, payments: Iterable, total_final, cobrado: bool = True) -> PaymentValidation:
        """
        Validar pagos de una venta.

        Args:
            payments: Líneas de pago (PaymentLine o dicts)
            total_final: Total a cobrar
            cobrado: Si es False los pagos se ignoran y la venta queda pendiente

        Raises:
            NoPayments: cobrado sin ninguna línea válida
            AmountMismatch: la suma difiere del total en más que la tolerancia
        """
        total_final = to_decimal(total_final)

        if not cobrado:
            return PaymentValidation(
                cobrado=False,
                total_final=total_final,
                outstanding=total_final,
                collection_status=CollectionStatus.PENDING,
            )

        clean = self.clean_payments(payments)
        if not clean:
            raise NoPayments()

        total_paid = sum((p.amount for p in clean), ZERO)
        difference = total_paid - total_final
        if abs(difference) > self.tolerance:
            logger.debug(f"Pagos {total_paid} no coinciden con total {total_final}")
            raise AmountMismatch(
                "Los pagos no cubren el total" if difference < 0 else "Los pagos superan el total",
                total_paid=total_paid, total_final=total_final
            )

        return PaymentValidation(
            cobrado=True,
            total_final=total_final,
            payments=clean,
            total_paid=total_paid,
            outstanding=self.outstanding(total_final, total_paid),
            collection_status=CollectionStatus.PAID,
            payments_by_method=self.totals_by_method(clean),
        )

    def amend_payments(self, payments: Iterable, total_final, cobrado: bool) -> PaymentValidation:
        """Mismas reglas al editar los pagos de una venta ya registrada"""
        logger.debug(f"Revalidando pagos de venta con total {total_final}")
        return self.validate(payments, total_final, cobrado)
