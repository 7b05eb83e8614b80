"""
Tests para carrito y composición del total
"""

import pytest
from decimal import Decimal

from pos_core.modules.orders.cart import Cart
from pos_core.modules.orders.schemas import CartLine, CheckoutAdjustments
from pos_core.modules.orders.service import compose_total, generate_coupon_code


def line(price, quantity=1, product_id=1):
    return CartLine(product_id=product_id, name=f"Producto {product_id}", unit_price=Decimal(str(price)), quantity=quantity)


# ===== TOTALES =====

class TestComposeTotal:

    def test_scenario_c_additive_discounts(self):
        totals = compose_total(
            [line(1000)],
            adjustments=CheckoutAdjustments(
                discount_amount=300, discount_percentage=10, coupon_amount=50, manual_surcharge=0
            )
        )
        assert totals.subtotal == Decimal("1000")
        assert totals.percentage_discount_amount == Decimal("100")
        assert totals.total_discounts == Decimal("450")
        assert totals.total_final == Decimal("550")

    def test_products_and_promotions(self, rule_engine, catalog):
        entry = rule_engine.validate(rule_engine.begin_selection(catalog.get_promotion_template(2)))
        totals = compose_total([line(500, 2), line(800, 1, product_id=3)], [entry])
        assert totals.product_subtotal == Decimal("1800")
        assert totals.promotion_subtotal == Decimal("1200")
        assert totals.subtotal == Decimal("3000")
        assert totals.total_final == Decimal("3000")
        assert totals.item_count == 4

    def test_surcharge(self):
        totals = compose_total([line(100)], adjustments=CheckoutAdjustments(manual_surcharge="25.50"))
        assert totals.total_final == Decimal("125.50")

    def test_discounts_exceeding_subtotal_floor_at_zero(self):
        totals = compose_total(
            [line(100)],
            adjustments=CheckoutAdjustments(discount_amount=80, discount_percentage=50, coupon_amount=10)
        )
        assert totals.gross_adjusted == Decimal("-40")
        assert totals.total_final == Decimal("0")

    @pytest.mark.parametrize("field", ["discount_amount", "discount_percentage", "coupon_amount", "manual_surcharge"])
    def test_negative_adjustments_clamped(self, field):
        totals = compose_total([line(100)], adjustments=CheckoutAdjustments(**{field: -30}))
        assert totals.total_final == Decimal("100")

    def test_garbage_adjustments_are_zero(self):
        adjustments = CheckoutAdjustments(discount_amount="abc", coupon_amount="", paga_con="")
        assert adjustments.discount_amount == Decimal("0")
        assert adjustments.coupon_amount == Decimal("0")
        assert adjustments.paga_con is None

    def test_empty_order(self):
        totals = compose_total([])
        assert totals.total_final == Decimal("0")
        assert totals.item_count == 0

    def test_rounded(self):
        totals = compose_total([line("33.33", 3)], adjustments=CheckoutAdjustments(discount_percentage="7.5"))
        rounded = totals.rounded()
        assert rounded.percentage_discount_amount == Decimal("7.50")
        assert rounded.total_final == Decimal("92.49")


class TestCouponCode:

    def test_format(self):
        code = generate_coupon_code()
        prefix, body = code.split("-")
        assert prefix == "PROM"
        assert len(body) == 6
        assert body.isalnum() and body.upper() == body

    def test_custom_prefix(self):
        assert generate_coupon_code("VIP", length=4).startswith("VIP-")


# ===== CARRITO =====

class TestCart:

    def test_add_same_product_merges(self, catalog):
        cart = Cart()
        cart.add_product(catalog.get_product(1))
        cart.add_product(catalog.get_product(1), quantity=2)
        assert len(cart.lines) == 1
        assert cart.get_line(1).quantity == 3
        assert cart.get_line(1).subtotal == Decimal("1500")

    def test_price_frozen_when_added(self, catalog):
        cart = Cart()
        cart.add_product(catalog.get_product(1))
        catalog.add_product({"id": 1, "nombre": "Sandwich de miga", "precio": 900, "categoria_id": 10})
        cart.add_product(catalog.get_product(1))
        assert cart.get_line(1).unit_price == Decimal("500")

    def test_zero_quantity_removes_line(self, catalog):
        cart = Cart()
        cart.add_product(catalog.get_product(3))
        assert cart.remove_one(3) is None
        assert cart.is_empty

    def test_change_quantity(self, catalog):
        cart = Cart()
        cart.add_product(catalog.get_product(3), quantity=2)
        assert cart.change_quantity(3, 3).quantity == 5
        assert cart.change_quantity(99, 1) is None

    def test_invalid_add(self, catalog):
        with pytest.raises(ValueError):
            Cart().add_product(catalog.get_product(1), quantity=0)

    def test_promotions(self, rule_engine, catalog):
        cart = Cart()
        entry = rule_engine.validate(rule_engine.begin_selection(catalog.get_promotion_template(1)))
        cart.add_promotion(entry)
        cart.add_product(catalog.get_product(4))
        assert cart.item_count == 2
        assert cart.remove_promotion(0) == entry
        cart.clear()
        assert cart.is_empty
