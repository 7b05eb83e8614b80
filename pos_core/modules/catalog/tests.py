"""
Tests para el catálogo: normalización de productos y plantillas de promoción
"""

import pytest
from decimal import Decimal
from datetime import date, datetime
from pydantic import ValidationError as SchemaError

from pos_core.common.exceptions import NotFound
from pos_core.modules.catalog.schemas import (
    ALL_WEEKDAYS, CategoryConfig, Product, PromotionTemplate, ShiftTag
)
from pos_core.modules.catalog.service import Catalog, InMemoryCatalog


class TestShiftTag:

    @pytest.mark.parametrize("raw,expected", [
        ("todos", ShiftTag.TODOS),
        ("Turno Mañana", ShiftTag.MANANA),
        ("TARDE", ShiftTag.TARDE),
        (" noche ", ShiftTag.NOCHE),
        ("", ShiftTag.TODOS),
        (None, ShiftTag.TODOS),
    ])
    def test_parse(self, raw, expected):
        assert ShiftTag.parse(raw) == expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            ShiftTag.parse("madrugada")


class TestProduct:

    def test_spanish_aliases(self):
        product = Product.model_validate({"id": 1, "nombre": "Café", "precio": 700.5, "categoria_id": 3})
        assert product.name == "Café"
        assert product.price == Decimal("700.5")
        assert product.belongs_to(3)
        assert not product.belongs_to(4)

    def test_negative_price_rejected(self):
        with pytest.raises(SchemaError):
            Product(id=1, name="x", price=Decimal("-1"))


class TestCategoryConfig:

    def test_defaults(self):
        cfg = CategoryConfig.model_validate({"categoria_id": 10})
        assert cfg.applies_to_all_in_category is True
        assert cfg.min_quantity == 0
        assert cfg.max_quantity == 0
        assert not cfg.is_bounded

    def test_empty_strings(self):
        cfg = CategoryConfig.model_validate(
            {"categoria_id": 10, "producto_id": "", "cantidad_min": "", "cantidad_max": None}
        )
        assert cfg.product_id is None
        assert cfg.min_quantity == 0

    def test_min_greater_than_max(self):
        with pytest.raises(SchemaError):
            CategoryConfig.model_validate({"categoria_id": 10, "cantidad_min": 5, "cantidad_max": 2})

    def test_min_with_unbounded_max(self):
        cfg = CategoryConfig.model_validate({"categoria_id": 10, "cantidad_min": 5, "cantidad_max": 0})
        assert cfg.min_quantity == 5
        assert not cfg.is_bounded


class TestPromotionTemplate:

    def test_config_ids_assigned(self, templates):
        template = PromotionTemplate.model_validate(templates[1])
        assert [cfg.config_id for cfg in template.configs] == ["cfg-20-0", "cfg-10-1"]
        assert template.get_config("cfg-10-1").category_id == 10
        assert template.get_config("nope") is None

    def test_existing_ids_kept(self):
        template = PromotionTemplate.model_validate({
            "id": 9, "nombre": "x", "precio_final": 1,
            "configuraciones": [{"id": 77, "categoria_id": 1}],
        })
        assert template.configs[0].config_id == "77"

    def test_duplicate_config_ids(self):
        with pytest.raises(SchemaError):
            PromotionTemplate.model_validate({
                "id": 9, "nombre": "x", "precio_final": 1,
                "configuraciones": [{"id": "a", "categoria_id": 1}, {"id": "a", "categoria_id": 2}],
            })

    def test_empty_weekdays_means_every_day(self, templates):
        template = PromotionTemplate.model_validate(templates[0])
        assert template.weekdays == ALL_WEEKDAYS

    def test_invalid_weekday(self):
        with pytest.raises(SchemaError):
            PromotionTemplate.model_validate({"id": 9, "nombre": "x", "precio_final": 1, "dias": [7]})

    def test_dates_and_limit(self, templates):
        template = PromotionTemplate.model_validate(templates[1])
        assert template.valid_from == date(2026, 1, 1)
        assert template.valid_until == date(2026, 12, 31)
        assert template.shift_tag == ShiftTag.TARDE
        assert template.per_order_limit == 2

    def test_datetime_dates_and_zero_limit(self):
        template = PromotionTemplate.model_validate({
            "id": 9, "nombre": "x", "precio_final": 1,
            "valido_desde": datetime(2026, 3, 1, 10, 30),
            "valido_hasta": "",
            "limite_por_pedido": 0,
        })
        assert template.valid_from == date(2026, 3, 1)
        assert template.valid_until is None
        assert template.per_order_limit is None


class TestInMemoryCatalog:

    def test_implements_protocol(self, catalog):
        assert isinstance(catalog, Catalog)

    def test_lookups(self, catalog):
        assert catalog.get_product(3).name == "Gaseosa"
        assert [p.id for p in catalog.get_products_by_category(10)] == [1, 2]
        assert catalog.get_promotion_template(1).name == "Combo sandwiches"
        assert len(catalog.list_promotion_templates()) == 2

    def test_not_found(self, catalog):
        with pytest.raises(NotFound):
            catalog.get_product(999)
        with pytest.raises(NotFound):
            catalog.get_promotion_template(999)

    def test_empty_category(self):
        assert InMemoryCatalog().get_products_by_category(10) == []
