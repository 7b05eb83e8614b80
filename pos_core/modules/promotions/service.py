"""
Motor de reglas de promociones

Arma una promoción concreta a partir de una plantilla del catálogo y de los
productos/cantidades que elige el operador:

- begin_selection: precarga un ítem por configuración
- add/update/remove_selection_item: edición con control de máximos
- validate: produce un PromotionCartEntry inmutable o lanza ValidationError
- eligible_templates: filtro por día, turno y vigencia

Reglas:
- La suma de cantidades de cada configuración debe estar en [min, max]
  (max = 0 significa sin límite)
- Cada ítem debe referenciar un producto de su categoría
- Una operación rechazada deja la selección sin cambios
"""

from datetime import date
from typing import Dict, Iterable, List, Optional
import logging

from pos_core.core.config import settings
from pos_core.common.exceptions import (
    ValidationError, MissingProduct, InvalidQuantity, BelowMinimum,
    AboveMaximum, LimitExceeded, ProductNotInCategory, NotFound, CollaboratorError
)
from pos_core.modules.catalog.schemas import CategoryConfig, PromotionTemplate, ShiftTag
from pos_core.modules.catalog.service import Catalog
from pos_core.modules.promotions.schemas import (
    SelectionItem, PromotionSelection, PromotionEntryItem, PromotionCartEntry
)

logger = logging.getLogger(__name__)


def js_weekday(day: date) -> int:
    """Día de la semana con 0=domingo ... 6=sábado, como lo guarda el catálogo"""
    return day.isoweekday() % 7


class PromotionRuleEngine:
    """Servicio para armar y validar promociones"""

    def __init__(self, catalog: Optional[Catalog] = None):
        self.catalog = catalog

    # ===== ELEGIBILIDAD =====

    def is_eligible(self, template: PromotionTemplate, on_date: date,
                    shift_tag: Optional[str] = None) -> bool:
        """
        Una plantilla es elegible si el día está permitido, el turno coincide
        (o la plantilla acepta "todos") y la fecha cae dentro de la vigencia.
        Sin turno conocido se usa DEFAULT_SHIFT_TAG (por defecto "todos").
        """
        if js_weekday(on_date) not in template.weekdays:
            return False

        if template.shift_tag != ShiftTag.TODOS:
            current = self._parse_shift_tag(shift_tag) or self._parse_shift_tag(settings.DEFAULT_SHIFT_TAG)
            if current != template.shift_tag:
                return False

        if template.valid_from and on_date < template.valid_from:
            return False
        if template.valid_until and on_date > template.valid_until:
            return False
        return True

    def eligible_templates(self, templates: Iterable[PromotionTemplate], on_date: date,
                           shift_tag: Optional[str] = None) -> List[PromotionTemplate]:
        return [t for t in templates if self.is_eligible(t, on_date, shift_tag)]

    # ===== SELECCIÓN =====

    def begin_selection(self, template: PromotionTemplate,
                        catalog: Optional[Catalog] = None) -> PromotionSelection:
        """Precarga un ítem por configuración con la cantidad mínima (al menos 1)"""
        catalog = catalog or self.catalog
        items = tuple(
            SelectionItem(
                config_id=cfg.config_id,
                category_id=cfg.category_id,
                product_id=self._default_product(cfg, catalog),
                quantity=max(cfg.min_quantity, 1),
            )
            for cfg in template.configs
        )
        return PromotionSelection(template=template, quantity=1, items=items, catalog=catalog)

    def set_order_quantity(self, selection: PromotionSelection, quantity: int) -> PromotionSelection:
        return selection.model_copy(update={"quantity": self._parse_quantity(quantity)})

    def add_selection_item(self, selection: PromotionSelection, config_id: str) -> PromotionSelection:
        cfg = self._get_config(selection, config_id)
        current_total = selection.config_total(config_id)
        if cfg.is_bounded and current_total >= cfg.max_quantity:
            raise LimitExceeded(
                f"Límite máximo {cfg.max_quantity} para esta categoría en la promo",
                config_id=config_id, limit=cfg.max_quantity
            )

        new_item = SelectionItem(
            config_id=cfg.config_id,
            category_id=cfg.category_id,
            product_id=self._default_product(cfg, self._catalog_for(selection)),
            quantity=1,
        )
        return selection.model_copy(update={"items": selection.items + (new_item,)})

    def update_selection_item(self, selection: PromotionSelection, item_index: int,
                              field: str, value) -> PromotionSelection:
        item = self._get_item(selection, item_index)
        cfg = self._get_config(selection, item.config_id)

        if field == "quantity":
            quantity = self._parse_quantity(value)
            new_total = selection.config_total(item.config_id) - item.quantity + quantity
            if cfg.is_bounded and new_total > cfg.max_quantity:
                raise LimitExceeded(
                    f"Límite máximo {cfg.max_quantity} para esta categoría en la promo",
                    config_id=item.config_id, limit=cfg.max_quantity
                )
            updated = item.model_copy(update={"quantity": quantity})
        elif field == "product_id":
            product_id = self._parse_product_id(value)
            if product_id is not None:
                self._check_membership(product_id, item.category_id, self._catalog_for(selection))
            updated = item.model_copy(update={"product_id": product_id})
        else:
            raise ValueError(f"Campo no editable: {field}")

        items = list(selection.items)
        items[item_index] = updated
        return selection.model_copy(update={"items": tuple(items)})

    def remove_selection_item(self, selection: PromotionSelection, item_index: int) -> PromotionSelection:
        self._get_item(selection, item_index)
        items = selection.items[:item_index] + selection.items[item_index + 1:]
        return selection.model_copy(update={"items": items})

    # ===== VALIDACIÓN =====

    def validate(self, selection: PromotionSelection) -> PromotionCartEntry:
        """Valida la selección completa y congela el resultado"""
        template = selection.template

        if selection.quantity < 1:
            raise InvalidQuantity("La cantidad de promociones debe ser al menos 1")
        if template.per_order_limit and selection.quantity > template.per_order_limit:
            raise LimitExceeded(
                f"Máximo {template.per_order_limit} por pedido para esta promoción",
                limit=template.per_order_limit
            )

        if not selection.items:
            raise MissingProduct()
        catalog = self._catalog_for(selection)
        for item in selection.items:
            if item.product_id is None:
                raise MissingProduct(config_id=item.config_id)
            if item.quantity <= 0:
                raise InvalidQuantity(config_id=item.config_id)
            self._check_membership(item.product_id, item.category_id, catalog)

        totals = selection.totals_by_config()
        for cfg in template.configs:
            self._check_bounds(cfg, totals.get(cfg.config_id, 0))

        entry = PromotionCartEntry(
            template_id=template.id,
            name=template.name,
            quantity=selection.quantity,
            unit_price=template.final_price,
            items=tuple(
                PromotionEntryItem(product_id=item.product_id, quantity=item.quantity, config_id=item.config_id)
                for item in selection.items
            ),
            bounds=tuple(template.configs),
        )
        logger.debug(f"Promoción {template.id} validada con {len(entry.items)} ítems")
        return entry

    def revalidate(self, entry: PromotionCartEntry) -> PromotionCartEntry:
        """Re-valida una promoción ya confirmada contra los límites que guarda"""
        if entry.quantity < 1:
            raise InvalidQuantity("La cantidad de promociones debe ser al menos 1")

        totals: Dict[str, int] = {cfg.config_id: 0 for cfg in entry.bounds}
        for item in entry.items:
            if item.quantity <= 0:
                raise InvalidQuantity(config_id=item.config_id)
            if item.config_id is not None:
                totals[item.config_id] = totals.get(item.config_id, 0) + item.quantity

        for cfg in entry.bounds:
            self._check_bounds(cfg, totals.get(cfg.config_id, 0))
        return entry

    # ===== HELPERS =====

    def _check_bounds(self, cfg: CategoryConfig, total: int) -> None:
        if cfg.min_quantity and total < cfg.min_quantity:
            raise BelowMinimum(
                f"Debes seleccionar al menos {cfg.min_quantity} en una categoría de la promo",
                config_id=cfg.config_id, total=total
            )
        if cfg.is_bounded and total > cfg.max_quantity:
            raise AboveMaximum(
                f"Excede el máximo permitido ({cfg.max_quantity}) en una categoría de la promo",
                config_id=cfg.config_id, total=total
            )

    def _check_membership(self, product_id: int, category_id: int, catalog: Optional[Catalog]) -> None:
        if catalog is None:
            raise CollaboratorError(
                "Catálogo no disponible para validar los productos de la promo", product_id=product_id
            )
        try:
            product = catalog.get_product(product_id)
        except NotFound:
            raise MissingProduct(f"Producto {product_id} no disponible", product_id=product_id)
        if not product.belongs_to(category_id):
            raise ProductNotInCategory(product_id=product_id, category_id=category_id)

    def _catalog_for(self, selection: PromotionSelection) -> Optional[Catalog]:
        return selection.catalog or self.catalog

    def _parse_quantity(self, value) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise InvalidQuantity(f"Cantidad inválida: {value!r}", value=value)

    def _parse_product_id(self, value) -> Optional[int]:
        if value in (None, ""):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            raise MissingProduct(f"Producto inválido: {value!r}", value=value)

    def _parse_shift_tag(self, value) -> Optional[ShiftTag]:
        if not value:
            return None
        try:
            return ShiftTag.parse(value)
        except ValueError:
            return None

    def _default_product(self, cfg: CategoryConfig, catalog: Optional[Catalog]) -> Optional[int]:
        if not cfg.applies_to_all_in_category:
            return cfg.product_id
        if catalog is None:
            return None
        products = catalog.get_products_by_category(cfg.category_id)
        return products[0].id if products else None

    def _get_config(self, selection: PromotionSelection, config_id: str) -> CategoryConfig:
        cfg = selection.template.get_config(config_id)
        if cfg is None:
            raise ValidationError(f"Configuración {config_id} no existe en la promoción", config_id=config_id)
        return cfg

    def _get_item(self, selection: PromotionSelection, item_index: int) -> SelectionItem:
        if item_index < 0 or item_index >= len(selection.items):
            raise IndexError(f"Ítem {item_index} fuera de rango")
        return selection.items[item_index]
