"""
Esquemas Pydantic del pedido: líneas de carrito, ajustes de cobro y totales
"""

from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional

from pos_core.common.money import non_negative, optional_decimal, quantize_money, ZERO


class CartLine(BaseModel):
    """Línea de producto con precio congelado al momento de agregarla"""
    product_id: int
    name: str
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1)

    model_config = {"frozen": True}

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


class CheckoutAdjustments(BaseModel):
    """
    Ajustes del cobro.

    Los montos negativos o vacíos se normalizan a 0 sin error: un descuento
    negativo nunca se convierte en un recargo.
    """
    discount_amount: Decimal = Field(default=ZERO, description="Descuento (monto)")
    discount_percentage: Decimal = Field(default=ZERO, description="Descuento (%) sobre el subtotal")
    coupon_code: Optional[str] = Field(None, description="Código de cupón (texto libre)")
    coupon_amount: Decimal = Field(default=ZERO, description="Monto del cupón")
    manual_surcharge: Decimal = Field(default=ZERO, description="Adicional manual")
    paga_con: Optional[Decimal] = Field(None, description="Monto entregado por el cliente")
    cobrado: bool = Field(True, description="Se cobra ahora o queda pendiente")

    @field_validator("discount_amount", "discount_percentage", "coupon_amount", "manual_surcharge", mode="before")
    @classmethod
    def clamp(cls, v):
        return non_negative(v)

    @field_validator("paga_con", mode="before")
    @classmethod
    def parse_paga_con(cls, v):
        return optional_decimal(v)

    @field_validator("coupon_code", mode="before")
    @classmethod
    def clean_coupon(cls, v):
        if v is None:
            return None
        cleaned = str(v).strip()
        return cleaned or None


class OrderTotals(BaseModel):
    """Desglose del total a cobrar"""
    product_subtotal: Decimal
    promotion_subtotal: Decimal
    subtotal: Decimal
    surcharge: Decimal
    discount_amount: Decimal
    percentage_discount_amount: Decimal
    coupon_amount: Decimal
    gross_adjusted: Decimal
    total_final: Decimal
    item_count: int = 0

    model_config = {"frozen": True}

    @property
    def total_discounts(self) -> Decimal:
        return self.discount_amount + self.percentage_discount_amount + self.coupon_amount

    def rounded(self) -> "OrderTotals":
        """Copia redondeada a centavos para mostrar"""
        money_fields = {
            name: quantize_money(getattr(self, name))
            for name in (
                "product_subtotal", "promotion_subtotal", "subtotal", "surcharge",
                "discount_amount", "percentage_discount_amount", "coupon_amount",
                "gross_adjusted", "total_final",
            )
        }
        return self.model_copy(update=money_fields)
