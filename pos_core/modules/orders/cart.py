"""
Carrito de venta en curso: líneas de productos y promociones confirmadas
"""

from typing import List, Optional, Tuple
import logging

from pos_core.modules.catalog.schemas import Product
from pos_core.modules.orders.schemas import CartLine
from pos_core.modules.promotions.schemas import PromotionCartEntry

logger = logging.getLogger(__name__)


class Cart:
    """
    Estado de trabajo del carrito.

    Responsabilidades:
    - Agregar/quitar productos (el precio se copia al agregar)
    - Agregar/quitar promociones ya validadas
    - Contar ítems

    Una línea que llega a cantidad 0 se elimina.
    """

    def __init__(self):
        self._lines: List[CartLine] = []
        self._promotions: List[PromotionCartEntry] = []

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def promotions(self) -> Tuple[PromotionCartEntry, ...]:
        return tuple(self._promotions)

    @property
    def is_empty(self) -> bool:
        return not self._lines and not self._promotions

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines) + sum(p.quantity for p in self._promotions)

    def get_line(self, product_id: int) -> Optional[CartLine]:
        for line in self._lines:
            if line.product_id == product_id:
                return line
        return None

    def add_product(self, product: Product, quantity: int = 1) -> CartLine:
        """Agrega un producto; si ya está en el carrito suma cantidad con el precio original"""
        if quantity < 1:
            raise ValueError("La cantidad a agregar debe ser al menos 1")

        for index, line in enumerate(self._lines):
            if line.product_id == product.id:
                updated = line.model_copy(update={"quantity": line.quantity + quantity})
                self._lines[index] = updated
                return updated

        line = CartLine(product_id=product.id, name=product.name, unit_price=product.price, quantity=quantity)
        self._lines.append(line)
        return line

    def remove_one(self, product_id: int) -> Optional[CartLine]:
        return self.change_quantity(product_id, -1)

    def change_quantity(self, product_id: int, delta: int) -> Optional[CartLine]:
        """Suma `delta` a la línea; devuelve None si la línea quedó eliminada o no existe"""
        for index, line in enumerate(self._lines):
            if line.product_id != product_id:
                continue
            quantity = line.quantity + delta
            if quantity <= 0:
                del self._lines[index]
                return None
            updated = line.model_copy(update={"quantity": quantity})
            self._lines[index] = updated
            return updated
        return None

    def add_promotion(self, entry: PromotionCartEntry) -> None:
        self._promotions.append(entry)
        logger.debug(f"Promoción {entry.template_id} agregada al carrito")

    def remove_promotion(self, index: int) -> PromotionCartEntry:
        return self._promotions.pop(index)

    def clear(self) -> None:
        self._lines.clear()
        self._promotions.clear()
