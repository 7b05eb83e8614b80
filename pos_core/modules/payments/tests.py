"""
Tests para la reconciliación de pagos
"""

import pytest
from decimal import Decimal

from pos_core.common.exceptions import AmountMismatch, NoPayments, PaymentError
from pos_core.modules.payments.schemas import CollectionStatus, PaymentLine
from pos_core.modules.payments.service import PaymentReconciler


@pytest.fixture
def reconciler():
    return PaymentReconciler()


class TestChangeDue:

    @pytest.mark.parametrize("paga_con,total,expected", [
        ("1000", "550", "450"),
        ("550", "550", "0"),
        ("500", "550", "0"),
        (None, "550", "0"),
        ("", "550", "0"),
        ("0", "550", "0"),
        ("-100", "550", "0"),
        ("abc", "550", "0"),
    ])
    def test_never_negative(self, reconciler, paga_con, total, expected):
        assert reconciler.change_due(paga_con, total) == Decimal(expected)


class TestValidate:

    def test_scenario_d_exact_payment(self, reconciler):
        result = reconciler.validate([{"payment_method_id": 1, "amount": 550}], Decimal("550"), cobrado=True)
        assert result.outstanding == Decimal("0")
        assert result.total_paid == Decimal("550")
        assert result.collection_status == CollectionStatus.PAID

    def test_scenario_e_short_payment(self, reconciler):
        with pytest.raises(AmountMismatch) as exc:
            reconciler.validate([{"payment_method_id": 1, "amount": 500}], Decimal("550"), cobrado=True)
        assert exc.value.context["total_paid"] == Decimal("500")
        assert exc.value.recoverable

    def test_overpayment_rejected(self, reconciler):
        with pytest.raises(AmountMismatch):
            reconciler.validate([{"payment_method_id": 1, "amount": "550.05"}], "550")

    def test_rounding_tolerance(self, reconciler):
        result = reconciler.validate(
            [{"payment_method_id": 1, "amount": "183.33"}, {"payment_method_id": 2, "amount": "366.65"}],
            Decimal("550")
        )
        assert result.total_paid == Decimal("549.98")
        assert result.outstanding == Decimal("0.02")

    def test_split_payment_by_method(self, reconciler):
        payments = [
            PaymentLine(payment_method_id=1, amount=Decimal("300")),
            {"payment_method_id": "2", "amount": "200"},
            {"payment_method_id": 1, "amount": "50"},
        ]
        result = reconciler.validate(payments, "550")
        assert result.payments_by_method == {1: Decimal("350"), 2: Decimal("200")}

    def test_incomplete_lines_discarded(self, reconciler):
        payments = [
            {"payment_method_id": "", "amount": "100"},
            {"payment_method_id": 2, "amount": ""},
            {"payment_method_id": 3, "amount": "-5"},
            {"payment_method_id": 1, "amount": "550"},
        ]
        result = reconciler.validate(payments, "550")
        assert len(result.payments) == 1

    def test_no_usable_payments(self, reconciler):
        with pytest.raises(NoPayments):
            reconciler.validate([{"payment_method_id": "", "amount": ""}], "550")
        with pytest.raises(PaymentError):
            reconciler.validate([], "550")

    def test_not_collected_ignores_payments(self, reconciler):
        result = reconciler.validate([{"payment_method_id": 1, "amount": 100}], "550", cobrado=False)
        assert result.collection_status == CollectionStatus.PENDING
        assert result.outstanding == Decimal("550")
        assert result.payments == []

    def test_custom_tolerance(self):
        reconciler = PaymentReconciler(tolerance="1")
        result = reconciler.validate([{"payment_method_id": 1, "amount": "549.50"}], "550")
        assert result.outstanding == Decimal("0.50")


class TestStatusAndAmend:

    def test_collection_status(self, reconciler):
        assert reconciler.collection_status(550, 550, True) == CollectionStatus.PAID
        assert reconciler.collection_status(550, 200, False) == CollectionStatus.PARTIAL
        assert reconciler.collection_status(550, 0, False) == CollectionStatus.PENDING

    def test_outstanding(self, reconciler):
        assert reconciler.outstanding("550", "200") == Decimal("350")
        assert reconciler.outstanding("550", "600") == Decimal("0")

    def test_amend_same_rules(self, reconciler):
        result = reconciler.amend_payments([{"payment_method_id": 2, "amount": "550"}], "550", True)
        assert result.payments_by_method == {2: Decimal("550")}
        with pytest.raises(AmountMismatch):
            reconciler.amend_payments([{"payment_method_id": 2, "amount": "100"}], "550", True)
