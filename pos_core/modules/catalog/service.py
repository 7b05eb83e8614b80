"""
Contrato del catálogo (solo lectura) y una implementación en memoria

El motor depende del protocolo `Catalog`, no de una implementación concreta:
la capa de API puede envolver su cliente REST y los tests usan `InMemoryCatalog`.
"""

from typing import Any, Dict, Iterable, List, Mapping, Protocol, Union, runtime_checkable

from pos_core.common.exceptions import NotFound
from pos_core.modules.catalog.schemas import Product, PromotionTemplate


@runtime_checkable
class Catalog(Protocol):
    """Búsquedas de solo lectura por id/categoría. Pueden fallar con NotFound."""

    def get_product(self, product_id: int) -> Product:
        ...

    def get_products_by_category(self, category_id: int) -> List[Product]:
        ...

    def get_promotion_template(self, template_id: int) -> PromotionTemplate:
        ...


class InMemoryCatalog:
    """Catálogo precargado; conserva el orden de alta de los productos"""

    def __init__(
        self,
        products: Iterable[Union[Product, Mapping[str, Any]]] = (),
        templates: Iterable[Union[PromotionTemplate, Mapping[str, Any]]] = ()
    ):
        self._products: Dict[int, Product] = {}
        self._templates: Dict[int, PromotionTemplate] = {}
        for product in products:
            self.add_product(product)
        for template in templates:
            self.add_template(template)

    def add_product(self, product: Union[Product, Mapping[str, Any]]) -> Product:
        if not isinstance(product, Product):
            product = Product.model_validate(product)
        self._products[product.id] = product
        return product

    def add_template(self, template: Union[PromotionTemplate, Mapping[str, Any]]) -> PromotionTemplate:
        if not isinstance(template, PromotionTemplate):
            template = PromotionTemplate.model_validate(template)
        self._templates[template.id] = template
        return template

    def get_product(self, product_id: int) -> Product:
        product = self._products.get(product_id)
        if product is None:
            raise NotFound(f"Producto {product_id} no encontrado", product_id=product_id)
        return product

    def get_products_by_category(self, category_id: int) -> List[Product]:
        return [p for p in self._products.values() if p.belongs_to(category_id)]

    def get_promotion_template(self, template_id: int) -> PromotionTemplate:
        template = self._templates.get(template_id)
        if template is None:
            raise NotFound(f"Promoción {template_id} no encontrada", template_id=template_id)
        return template

    def list_promotion_templates(self) -> List[PromotionTemplate]:
        return list(self._templates.values())
