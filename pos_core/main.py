"""
Punto de composición del motor POS

La aplicación que consume el motor (UI o API) crea un POSEngine por sesión de
base de datos y obtiene de él el manager de turnos de cada local.
"""

from sqlalchemy.orm import Session
from typing import Optional
import logging

from pos_core.core.config import settings
from pos_core.database.database import SessionLocal, init_db
from pos_core.modules.balance.service import BalanceAggregator
from pos_core.modules.catalog.service import Catalog, InMemoryCatalog
from pos_core.modules.checkout.service import CheckoutService
from pos_core.modules.ledger.service import Ledger, SQLLedger
from pos_core.modules.payments.service import PaymentReconciler
from pos_core.modules.promotions.service import PromotionRuleEngine
from pos_core.modules.shifts.service import SessionContext, ShiftSessionManager, ShiftSessionRegistry


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


logger = logging.getLogger(__name__)


class POSEngine:
    """Servicios del motor cableados sobre un catálogo y un ledger"""

    def __init__(self, catalog: Catalog, ledger: Ledger):
        self.catalog = catalog
        self.ledger = ledger
        self.aggregator = BalanceAggregator()
        self.promotions = PromotionRuleEngine(catalog)
        self.reconciler = PaymentReconciler()
        self.checkout = CheckoutService(self.reconciler, self.promotions)
        self.shifts = ShiftSessionRegistry(ledger, self.aggregator)

    def manager_for(self, context: SessionContext) -> ShiftSessionManager:
        return self.shifts.for_context(context)


def build_pos_engine(db: Optional[Session] = None, catalog: Optional[Catalog] = None,
                     create_tables: bool = False) -> POSEngine:
    """Arma el motor con el ledger SQL; sin sesión usa SessionLocal"""
    if create_tables:
        init_db(bind=db.get_bind() if db is not None else None)
    db = db or SessionLocal()
    logger.info(f"Motor POS iniciado ({settings.ENVIRONMENT})")
    return POSEngine(catalog or InMemoryCatalog(), SQLLedger(db))
