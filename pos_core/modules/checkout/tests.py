"""
Tests para el cierre de venta y su integración con la caja
"""

import pytest
from decimal import Decimal

from pos_core.common.exceptions import AboveMaximum, AmountMismatch, EmptyCart, NoPayments
from pos_core.main import build_pos_engine
from pos_core.modules.checkout.service import CheckoutService
from pos_core.modules.orders.cart import Cart
from pos_core.modules.orders.schemas import CheckoutAdjustments
from pos_core.modules.payments.schemas import CollectionStatus
from pos_core.modules.shifts.service import StaticSessionContext


@pytest.fixture
def service(rule_engine):
    return CheckoutService(engine=rule_engine)


@pytest.fixture
def cart(catalog, rule_engine):
    """Dos sandwiches de miga (1000) + una promo merienda (1200)"""
    cart = Cart()
    cart.add_product(catalog.get_product(1), quantity=2)
    cart.add_promotion(rule_engine.validate(rule_engine.begin_selection(catalog.get_promotion_template(2))))
    return cart


class TestCheckout:

    def test_empty_cart(self, service):
        with pytest.raises(EmptyCart):
            service.checkout(Cart())

    def test_collected_sale(self, service, cart):
        summary = service.checkout(
            cart,
            CheckoutAdjustments(discount_amount=200, coupon_code=" PROM-ABC123 ", paga_con="2500"),
            [{"payment_method_id": 1, "amount": "1500"}, {"payment_method_id": 2, "amount": "500"}],
        )
        assert summary.total_final == Decimal("2000")
        assert summary.change == Decimal("500")
        assert summary.cobrado
        assert summary.outstanding == Decimal("0")
        assert summary.coupon_code == "PROM-ABC123"
        assert summary.payments_by_method == {1: Decimal("1500"), 2: Decimal("500")}

    def test_pending_sale(self, service, cart):
        summary = service.checkout(cart, CheckoutAdjustments(cobrado=False), [])
        assert summary.collection_status == CollectionStatus.PENDING
        assert summary.outstanding == Decimal("2200")
        assert summary.change == Decimal("0")

    def test_payment_errors_propagate(self, service, cart):
        with pytest.raises(NoPayments):
            service.checkout(cart, CheckoutAdjustments(), [])
        with pytest.raises(AmountMismatch):
            service.checkout(cart, CheckoutAdjustments(), [{"payment_method_id": 1, "amount": 100}])

    def test_stale_promotion_rejected(self, service, cart, catalog, rule_engine):
        entry = rule_engine.validate(rule_engine.begin_selection(catalog.get_promotion_template(1)))
        item = entry.items[0].model_copy(update={"quantity": 9})
        cart.add_promotion(entry.model_copy(update={"items": (item,)}))
        with pytest.raises(AboveMaximum):
            service.checkout(cart, CheckoutAdjustments(cobrado=False))

    def test_payload(self, service, cart):
        summary = service.checkout(
            cart, CheckoutAdjustments(discount_percentage=10), [{"payment_method_id": 1, "amount": "1980"}],
            notes="  sin sal "
        )
        payload = summary.to_payload(location_id=3)
        assert payload["productos"] == [{"producto_id": 1, "cantidad": 2}]
        assert payload["promociones"][0]["promocion_id"] == 2
        assert payload["pagos"] == [{"metodo_id": 1, "monto": Decimal("1980.00")}]
        assert payload["total_final"] == Decimal("1980.00")
        assert payload["cobrado"] is True
        assert payload["observaciones"] == "sin sal"
        assert payload["local_id"] == 3


class TestRecordSale:

    def test_end_to_end(self, db, catalog, location_id):
        pos = build_pos_engine(db, catalog=catalog)
        manager = pos.manager_for(StaticSessionContext(location_id))
        manager.open_shift(1000, "Turno tarde")
        manager.open_drawer(1000)

        cart = Cart()
        cart.add_product(catalog.get_product(3))
        summary = pos.checkout.checkout(cart, payments=[{"payment_method_id": 1, "amount": 800}])
        movement = pos.checkout.record_sale(manager, summary, "Venta #1")
        assert movement.type == "SALE"
        assert movement.amount == Decimal("800")

        manager.record_expense(120)
        closing = manager.close_drawer()
        assert closing.theoretical == Decimal("1680")

    def test_pending_sale_not_recorded(self, db, catalog, location_id, service, cart):
        pos = build_pos_engine(db, catalog=catalog)
        manager = pos.manager_for(StaticSessionContext(location_id))
        manager.open_shift(0)
        manager.open_drawer(0)

        summary = service.checkout(cart, CheckoutAdjustments(cobrado=False))
        assert service.record_sale(manager, summary) is None
        assert manager.movements() == []
