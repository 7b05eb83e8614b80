"""
Esquemas Pydantic del armado de promociones

- SelectionItem / PromotionSelection: borrador en edición (uno a la vez)
- PromotionEntryItem / PromotionCartEntry: promoción confirmada en el carrito
"""

from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, Tuple, Dict, Any

from pos_core.modules.catalog.schemas import CategoryConfig, PromotionTemplate


# ===== BORRADOR =====

class SelectionItem(BaseModel):
    """Producto elegido para una configuración de la promo"""
    config_id: str = Field(description="Configuración a la que pertenece")
    category_id: int = Field(description="Categoría de la configuración")
    product_id: Optional[int] = Field(None, description="Producto elegido")
    quantity: int = Field(1, description="Cantidad")

    model_config = {"frozen": True}


class PromotionSelection(BaseModel):
    """Selección en curso. Las operaciones del motor devuelven copias nuevas."""
    template: PromotionTemplate = Field(description="Plantilla elegida")
    quantity: int = Field(1, description="Cantidad de promos en el pedido")
    items: Tuple[SelectionItem, ...] = Field(default=(), description="Productos elegidos")
    catalog: Optional[Any] = Field(None, exclude=True, repr=False, description="Catálogo con el que se armó")

    model_config = {"frozen": True}

    @property
    def template_id(self) -> int:
        return self.template.id

    def config_total(self, config_id: str) -> int:
        return sum(item.quantity for item in self.items if item.config_id == config_id)

    def totals_by_config(self) -> Dict[str, int]:
        totals = {cfg.config_id: 0 for cfg in self.template.configs}
        for item in self.items:
            totals[item.config_id] = totals.get(item.config_id, 0) + item.quantity
        return totals


# ===== CONFIRMADA =====

class PromotionEntryItem(BaseModel):
    product_id: int
    quantity: int
    config_id: Optional[str] = None

    model_config = {"frozen": True}


class PromotionCartEntry(BaseModel):
    """
    Promoción confirmada. Solo se crea desde una selección validada y es
    inmutable salvo para quitarla del carrito. Guarda los límites con los que
    fue validada para poder re-validarla sin el catálogo.
    """
    template_id: int
    name: str
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0)
    items: Tuple[PromotionEntryItem, ...]
    bounds: Tuple[CategoryConfig, ...] = ()

    model_config = {"frozen": True}

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_payload(self) -> Dict[str, Any]:
        """Formato que espera el servicio de ventas"""
        return {
            "promocion_id": self.template_id,
            "cantidad": self.quantity,
            "items": [
                {"producto_id": item.product_id, "cantidad": item.quantity}
                for item in self.items
            ],
        }
