"""
Tests para el motor de promociones

Cubre:
- Elegibilidad por día, turno y vigencia
- Armado de la selección con control de máximos
- Validación de límites por configuración (escenarios A y B)
- Re-validación de promociones confirmadas
"""

import pytest
from datetime import date
from decimal import Decimal

from pos_core.core.config import settings
from pos_core.common.exceptions import (
    CollaboratorError, ValidationError, MissingProduct, InvalidQuantity, BelowMinimum,
    AboveMaximum, LimitExceeded, ProductNotInCategory
)
from pos_core.modules.promotions.schemas import PromotionSelection, SelectionItem
from pos_core.modules.promotions.service import PromotionRuleEngine, js_weekday


MONDAY = date(2026, 10, 19)
SUNDAY = date(2026, 10, 18)


@pytest.fixture
def combo(catalog):
    """Plantilla con una configuración {min 2, max 4, categoría Sandwiches}"""
    return catalog.get_promotion_template(1)


@pytest.fixture
def merienda(catalog):
    return catalog.get_promotion_template(2)


def selection_with(template, *quantities, product_id=1):
    cfg = template.configs[0]
    items = tuple(
        SelectionItem(config_id=cfg.config_id, category_id=cfg.category_id, product_id=product_id, quantity=q)
        for q in quantities
    )
    return PromotionSelection(template=template, items=items)


# ===== ELEGIBILIDAD =====

class TestEligibility:

    def test_js_weekday(self):
        assert js_weekday(SUNDAY) == 0
        assert js_weekday(MONDAY) == 1

    def test_template_for_all_shifts(self, rule_engine, combo):
        assert rule_engine.is_eligible(combo, SUNDAY)
        assert rule_engine.is_eligible(combo, MONDAY, "Turno noche")

    def test_shift_must_match(self, rule_engine, merienda):
        assert rule_engine.is_eligible(merienda, MONDAY, "Turno tarde")
        assert not rule_engine.is_eligible(merienda, MONDAY, "Turno mañana")

    def test_unknown_shift_only_todos(self, rule_engine, combo, merienda):
        assert not rule_engine.is_eligible(merienda, MONDAY, None)
        assert not rule_engine.is_eligible(merienda, MONDAY, "madrugada")
        assert rule_engine.is_eligible(combo, MONDAY, "madrugada")

    def test_weekday_not_allowed(self, rule_engine, merienda):
        assert not rule_engine.is_eligible(merienda, SUNDAY, "tarde")

    def test_validity_window(self, rule_engine, merienda):
        assert rule_engine.is_eligible(merienda, date(2026, 12, 31), "tarde")
        assert not rule_engine.is_eligible(merienda, date(2025, 12, 29), "tarde")
        assert not rule_engine.is_eligible(merienda, date(2027, 1, 4), "tarde")

    def test_default_shift_tag_fallback(self, rule_engine, merienda, monkeypatch):
        monkeypatch.setattr(settings, "DEFAULT_SHIFT_TAG", "Turno tarde")
        assert rule_engine.is_eligible(merienda, MONDAY, None)
        assert rule_engine.is_eligible(merienda, MONDAY, "madrugada")
        assert not rule_engine.is_eligible(merienda, MONDAY, "noche")

    def test_eligible_templates(self, rule_engine, catalog):
        templates = catalog.list_promotion_templates()
        assert [t.id for t in rule_engine.eligible_templates(templates, MONDAY, "tarde")] == [1, 2]
        assert [t.id for t in rule_engine.eligible_templates(templates, SUNDAY, "tarde")] == [1]


# ===== SELECCIÓN =====

class TestSelection:

    def test_begin_selection_preloads_minimum(self, rule_engine, combo):
        selection = rule_engine.begin_selection(combo)
        assert selection.quantity == 1
        assert len(selection.items) == 1
        assert selection.items[0].product_id == 1
        assert selection.items[0].quantity == 2

    def test_begin_selection_fixed_product(self, rule_engine, merienda):
        selection = rule_engine.begin_selection(merienda)
        assert [item.product_id for item in selection.items] == [4, 1]
        assert [item.quantity for item in selection.items] == [1, 1]

    def test_begin_selection_without_catalog(self, combo):
        selection = PromotionRuleEngine().begin_selection(combo)
        assert selection.items[0].product_id is None

    def test_add_item_until_limit(self, rule_engine, combo):
        selection = rule_engine.begin_selection(combo)
        cfg_id = combo.configs[0].config_id
        selection = rule_engine.add_selection_item(selection, cfg_id)
        selection = rule_engine.add_selection_item(selection, cfg_id)
        assert selection.config_total(cfg_id) == 4

        with pytest.raises(LimitExceeded):
            rule_engine.add_selection_item(selection, cfg_id)
        assert selection.config_total(cfg_id) == 4

    def test_add_item_unknown_config(self, rule_engine, combo):
        selection = rule_engine.begin_selection(combo)
        with pytest.raises(ValidationError):
            rule_engine.add_selection_item(selection, "cfg-inexistente")

    def test_update_quantity_over_limit_leaves_selection(self, rule_engine, combo):
        selection = rule_engine.begin_selection(combo)
        with pytest.raises(LimitExceeded):
            rule_engine.update_selection_item(selection, 0, "quantity", 5)
        assert selection.items[0].quantity == 2

    def test_update_product_checks_category(self, rule_engine, combo):
        selection = rule_engine.begin_selection(combo)
        with pytest.raises(ProductNotInCategory):
            rule_engine.update_selection_item(selection, 0, "product_id", 3)
        with pytest.raises(MissingProduct):
            rule_engine.update_selection_item(selection, 0, "product_id", 999)

        updated = rule_engine.update_selection_item(selection, 0, "product_id", "2")
        assert updated.items[0].product_id == 2
        assert selection.items[0].product_id == 1

    def test_update_unknown_field(self, rule_engine, combo):
        selection = rule_engine.begin_selection(combo)
        with pytest.raises(ValueError):
            rule_engine.update_selection_item(selection, 0, "price", 1)

    def test_remove_item(self, rule_engine, combo):
        selection = rule_engine.begin_selection(combo)
        selection = rule_engine.remove_selection_item(selection, 0)
        assert selection.items == ()
        with pytest.raises(IndexError):
            rule_engine.remove_selection_item(selection, 0)


# ===== VALIDACIÓN =====

class TestValidate:

    def test_scenario_a_within_bounds(self, rule_engine, combo):
        selection = rule_engine.begin_selection(combo)
        cfg_id = combo.configs[0].config_id
        selection = rule_engine.update_selection_item(selection, 0, "quantity", 1)
        selection = rule_engine.add_selection_item(selection, cfg_id)
        selection = rule_engine.update_selection_item(selection, 1, "quantity", 2)
        assert selection.config_total(cfg_id) == 3

        entry = rule_engine.validate(selection)
        assert entry.template_id == 1
        assert entry.unit_price == Decimal("1500")
        assert [item.quantity for item in entry.items] == [1, 2]

    def test_scenario_b_above_maximum(self, rule_engine, combo):
        with pytest.raises(AboveMaximum):
            rule_engine.validate(selection_with(combo, 2, 3))

    def test_below_minimum(self, rule_engine, combo):
        with pytest.raises(BelowMinimum):
            rule_engine.validate(selection_with(combo, 1))

    @pytest.mark.parametrize("quantities", [(2,), (4,), (1, 1), (1, 1, 1, 1), (2, 2)])
    def test_valid_iff_within_bounds(self, rule_engine, combo, quantities):
        entry = rule_engine.validate(selection_with(combo, *quantities))
        assert sum(item.quantity for item in entry.items) == sum(quantities)

    def test_missing_product(self, rule_engine, combo):
        with pytest.raises(MissingProduct):
            rule_engine.validate(selection_with(combo, 2, product_id=None))

    def test_empty_selection(self, rule_engine, combo):
        with pytest.raises(MissingProduct):
            rule_engine.validate(PromotionSelection(template=combo))

    def test_zero_quantity_item(self, rule_engine, combo):
        with pytest.raises(InvalidQuantity):
            rule_engine.validate(selection_with(combo, 2, 0))

    def test_order_quantity(self, rule_engine, merienda):
        selection = rule_engine.begin_selection(merienda)
        assert rule_engine.validate(rule_engine.set_order_quantity(selection, 2)).quantity == 2
        with pytest.raises(LimitExceeded):
            rule_engine.validate(rule_engine.set_order_quantity(selection, 3))
        with pytest.raises(InvalidQuantity):
            rule_engine.validate(rule_engine.set_order_quantity(selection, 0))

    def test_every_config_checked(self, rule_engine, merienda):
        selection = rule_engine.begin_selection(merienda)
        selection = rule_engine.remove_selection_item(selection, 1)
        with pytest.raises(BelowMinimum):
            rule_engine.validate(selection)

    def test_payload(self, rule_engine, merienda):
        entry = rule_engine.validate(rule_engine.begin_selection(merienda))
        assert entry.subtotal == Decimal("1200")
        assert entry.to_payload() == {
            "promocion_id": 2,
            "cantidad": 1,
            "items": [{"producto_id": 4, "cantidad": 1}, {"producto_id": 1, "cantidad": 1}],
        }


class TestRevalidate:

    def test_validated_entry_passes_standalone(self, rule_engine, combo):
        entry = rule_engine.validate(selection_with(combo, 1, 3))
        assert PromotionRuleEngine().revalidate(entry) == entry

    def test_tampered_entry_fails(self, rule_engine, combo):
        entry = rule_engine.validate(selection_with(combo, 1, 3))
        item = entry.items[0].model_copy(update={"quantity": 2})
        tampered = entry.model_copy(update={"items": (item, entry.items[1])})
        with pytest.raises(AboveMaximum):
            rule_engine.revalidate(tampered)


class TestCatalogPassedAtBegin:
    """Motor sin catálogo propio: se usa el catálogo con el que se armó la selección"""

    @pytest.fixture
    def bare_engine(self):
        return PromotionRuleEngine()

    def test_added_item_gets_default_product(self, bare_engine, combo, catalog):
        selection = bare_engine.begin_selection(combo, catalog)
        selection = bare_engine.add_selection_item(selection, combo.configs[0].config_id)
        assert selection.items[1].product_id == 1

    def test_product_outside_category_rejected(self, bare_engine, combo, catalog):
        selection = bare_engine.begin_selection(combo, catalog)
        with pytest.raises(ProductNotInCategory):
            bare_engine.update_selection_item(selection, 0, "product_id", 3)

    def test_validate_checks_membership(self, bare_engine, combo, catalog):
        selection = bare_engine.begin_selection(combo, catalog)
        item = selection.items[0].model_copy(update={"product_id": 3})
        with pytest.raises(ProductNotInCategory):
            bare_engine.validate(selection.model_copy(update={"items": (item,)}))

    def test_validate_without_any_catalog(self, bare_engine, combo):
        with pytest.raises(CollaboratorError):
            bare_engine.validate(selection_with(combo, 2))


class TestQuantityParsing:

    @pytest.mark.parametrize("value", ["abc", None, "1.5x"])
    def test_non_numeric_quantity(self, rule_engine, combo, value):
        selection = rule_engine.begin_selection(combo)
        with pytest.raises(InvalidQuantity):
            rule_engine.update_selection_item(selection, 0, "quantity", value)
        with pytest.raises(InvalidQuantity):
            rule_engine.set_order_quantity(selection, value)

    def test_non_numeric_product(self, rule_engine, combo):
        selection = rule_engine.begin_selection(combo)
        with pytest.raises(MissingProduct):
            rule_engine.update_selection_item(selection, 0, "product_id", "abc")
