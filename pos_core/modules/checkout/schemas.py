"""
Esquemas del cierre de venta
"""

from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from pos_core.common.money import quantize_money
from pos_core.modules.orders.schemas import CartLine, CheckoutAdjustments, OrderTotals
from pos_core.modules.payments.schemas import CollectionStatus, PaymentLine
from pos_core.modules.promotions.schemas import PromotionCartEntry


class SaleSummary(BaseModel):
    """Venta lista para registrar: totales, pagos y vuelto ya reconciliados"""
    lines: Tuple[CartLine, ...] = Field(default=(), description="Productos")
    promotions: Tuple[PromotionCartEntry, ...] = Field(default=(), description="Promociones confirmadas")
    adjustments: CheckoutAdjustments
    totals: OrderTotals
    payments: List[PaymentLine] = Field(default_factory=list, description="Pagos válidos")
    paid_total: Decimal
    outstanding: Decimal
    change: Decimal = Field(description="Vuelto")
    collection_status: CollectionStatus
    payments_by_method: Dict[int, Decimal] = Field(default_factory=dict)
    coupon_code: Optional[str] = None
    customer_id: Optional[int] = None
    notes: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def cobrado(self) -> bool:
        return self.collection_status == CollectionStatus.PAID

    @property
    def total_final(self) -> Decimal:
        return self.totals.total_final

    def to_payload(self, location_id: Any = None, employee_id: Any = None) -> Dict[str, Any]:
        """Cuerpo de la venta con los nombres de campo del servicio de ventas"""
        adjustments = self.adjustments
        return {
            "productos": [{"producto_id": line.product_id, "cantidad": line.quantity} for line in self.lines],
            "promociones": [entry.to_payload() for entry in self.promotions],
            "pagos": [{"metodo_id": p.payment_method_id, "monto": quantize_money(p.amount)} for p in self.payments],
            "cliente_id": self.customer_id,
            "local_id": location_id,
            "descuento_monto": adjustments.discount_amount,
            "descuento_porcentaje": adjustments.discount_percentage,
            "cupon_codigo": self.coupon_code,
            "cupon_monto": adjustments.coupon_amount,
            "adicional_manual": adjustments.manual_surcharge,
            "paga_con": adjustments.paga_con,
            "vuelto": quantize_money(self.change),
            "cobrado": self.cobrado,
            "observaciones": self.notes,
            "empleado_id": employee_id,
            "total_final": quantize_money(self.total_final),
        }
