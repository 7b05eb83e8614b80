"""
Tests para la configuración y el arranque del motor
"""

import logging
import pytest
from decimal import Decimal

from sqlalchemy.orm import Session

from pos_core.core.config import Settings
from pos_core.database.database import get_db
from pos_core.main import POSEngine, build_pos_engine, configure_logging
from pos_core.common.money import non_negative, optional_decimal, quantize_money, to_decimal


class TestSettings:

    def test_defaults(self):
        config = Settings()
        assert config.PAYMENT_TOLERANCE == Decimal("0.02")
        assert config.money_quantum == Decimal("0.01")
        assert config.COUPON_PREFIX == "PROM"

    @pytest.mark.parametrize("raw,expected", [("true", True), ("'1'", True), ("off", False), ("", False)])
    def test_string_booleans(self, raw, expected):
        assert Settings(ENFORCE_DRAWER_CLOSED_ON_SHIFT_CLOSE=raw).ENFORCE_DRAWER_CLOSED_ON_SHIFT_CLOSE is expected

    def test_log_level(self):
        assert Settings(ENVIRONMENT="production", LOG_LEVEL="").log_level == "INFO"
        assert Settings(ENVIRONMENT="development", LOG_LEVEL="").log_level == "DEBUG"
        assert Settings(LOG_LEVEL="warning").log_level == "WARNING"

    def test_float_tolerance(self):
        assert Settings(PAYMENT_TOLERANCE=0.05).PAYMENT_TOLERANCE == Decimal("0.05")


class TestMoney:

    @pytest.mark.parametrize("raw,expected", [
        (None, "0"), ("", "0"), ("abc", "0"), ("NaN", "0"), ("Infinity", "0"),
        (" 12.5 ", "12.5"), (0.1, "0.1"), (Decimal("3"), "3"),
    ])
    def test_to_decimal(self, raw, expected):
        assert to_decimal(raw) == Decimal(expected)

    def test_guards(self):
        assert non_negative("-3") == Decimal("0")
        assert optional_decimal("") is None
        assert optional_decimal("x") is None
        assert quantize_money(Decimal("2.345")) == Decimal("2.35")


class TestComposition:

    def test_configure_logging(self):
        configure_logging("warning")
        assert logging.getLogger("pos_core").getEffectiveLevel() <= logging.WARNING

    def test_build_engine(self, db, catalog):
        pos = build_pos_engine(db, catalog=catalog)
        assert isinstance(pos, POSEngine)
        assert pos.promotions.catalog is catalog
        assert pos.checkout.reconciler is pos.reconciler

    def test_get_db_closes_session(self):
        generator = get_db()
        session = next(generator)
        assert isinstance(session, Session)
        generator.close()
