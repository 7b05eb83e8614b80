"""
Fixtures compartidos: ledger SQLite en memoria y catálogo de ejemplo
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from sqlalchemy.orm import sessionmaker

from pos_core.database.database import Base, build_engine, init_db
from pos_core.modules.catalog.service import InMemoryCatalog
from pos_core.modules.ledger.service import SQLLedger
from pos_core.modules.promotions.service import PromotionRuleEngine


SANDWICHES = 10
BEBIDAS = 20


# ===== BASE DE DATOS =====

@pytest.fixture
def engine():
    engine = build_engine("sqlite://", echo=False)
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    """Sesión aislada por test"""
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def ledger(db):
    return SQLLedger(db)


@pytest.fixture
def location_id():
    return uuid4()


# ===== CATÁLOGO =====

@pytest.fixture
def products():
    return [
        {"id": 1, "nombre": "Sandwich de miga", "precio": 500, "categoria_id": SANDWICHES},
        {"id": 2, "nombre": "Sandwich de jamón", "precio": "600", "categoria_id": SANDWICHES},
        {"id": 3, "nombre": "Gaseosa", "precio": 800.0, "categoria_id": BEBIDAS},
        {"id": 4, "nombre": "Café", "precio": 700, "categoria_ids": [BEBIDAS]},
    ]


@pytest.fixture
def templates():
    return [
        {
            "id": 1,
            "nombre": "Combo sandwiches",
            "precio_final": "1500",
            "configuraciones": [
                {"categoria_id": SANDWICHES, "aplica_todos": True, "cantidad_min": 2, "cantidad_max": 4},
            ],
            "dias": [],
            "turno": "todos",
        },
        {
            "id": 2,
            "nombre": "Merienda",
            "precio_final": 1200,
            "configuraciones": [
                {"categoria_id": BEBIDAS, "aplica_todos": False, "producto_id": 4,
                 "cantidad_min": 1, "cantidad_max": 1},
                {"categoria_id": SANDWICHES, "aplica_todos": True, "cantidad_min": 1, "cantidad_max": 0},
            ],
            "dias": [1, 2, 3, 4, 5],
            "turno": "tarde",
            "valido_desde": "2026-01-01",
            "valido_hasta": "2026-12-31T23:59:59",
            "limite_por_pedido": 2,
        },
    ]


@pytest.fixture
def catalog(products, templates):
    return InMemoryCatalog(products=products, templates=templates)


@pytest.fixture
def rule_engine(catalog):
    return PromotionRuleEngine(catalog)


@pytest.fixture
def money():
    """Atajo para construir Decimals en los asserts"""
    return lambda value: Decimal(str(value))
