"""
Composición del total de un pedido

Pipeline puro sobre entradas inmutables:
1. subtotal = Σ(precio × cantidad) de productos + Σ(precio final × cantidad) de promos
2. Ajustes negativos se tratan como 0
3. descuento porcentual = subtotal × (porcentaje / 100)
4. bruto = subtotal + adicional − descuento − descuento porcentual − cupón
5. total_final = max(0, bruto)

El descuento en monto y el porcentual se aplican los dos (se suman). Un pedido
nunca se factura en negativo.
"""

from decimal import Decimal
from typing import Iterable, Optional
import secrets
import string

from pos_core.core.config import settings
from pos_core.common.money import non_negative, ZERO
from pos_core.modules.orders.schemas import CartLine, CheckoutAdjustments, OrderTotals
from pos_core.modules.promotions.schemas import PromotionCartEntry

HUNDRED = Decimal("100")


def compose_total(
    cart_lines: Iterable[CartLine],
    promo_entries: Iterable[PromotionCartEntry] = (),
    adjustments: Optional[CheckoutAdjustments] = None
) -> OrderTotals:
    """
    Calcular el total final a cobrar.

    Args:
        cart_lines: Líneas de productos
        promo_entries: Promociones confirmadas
        adjustments: Descuentos, cupón y adicional (opcional)

    Returns:
        OrderTotals con el desglose completo
    """
    cart_lines = list(cart_lines)
    promo_entries = list(promo_entries)
    adjustments = adjustments or CheckoutAdjustments()

    product_subtotal = sum((line.unit_price * line.quantity for line in cart_lines), ZERO)
    promotion_subtotal = sum((entry.unit_price * entry.quantity for entry in promo_entries), ZERO)
    subtotal = product_subtotal + promotion_subtotal

    discount_amount = non_negative(adjustments.discount_amount)
    discount_percentage = non_negative(adjustments.discount_percentage)
    coupon_amount = non_negative(adjustments.coupon_amount)
    surcharge = non_negative(adjustments.manual_surcharge)

    percentage_discount_amount = subtotal * (discount_percentage / HUNDRED) if discount_percentage > 0 else ZERO

    gross_adjusted = subtotal + surcharge - discount_amount - percentage_discount_amount - coupon_amount

    return OrderTotals(
        product_subtotal=product_subtotal,
        promotion_subtotal=promotion_subtotal,
        subtotal=subtotal,
        surcharge=surcharge,
        discount_amount=discount_amount,
        percentage_discount_amount=percentage_discount_amount,
        coupon_amount=coupon_amount,
        gross_adjusted=gross_adjusted,
        total_final=max(ZERO, gross_adjusted),
        item_count=sum(line.quantity for line in cart_lines) + sum(entry.quantity for entry in promo_entries),
    )


def generate_coupon_code(prefix: Optional[str] = None, length: int = 6) -> str:
    """Genera un código de cupón tipo PROM-AB12CD"""
    alphabet = string.ascii_uppercase + string.digits
    body = ''.join(secrets.choice(alphabet) for _ in range(length))
    return f"{prefix or settings.COUPON_PREFIX}-{body}"
