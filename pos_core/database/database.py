from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from pos_core.core.config import settings
import logging

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(database_url: str = None, echo: bool = None):
    """Crea el engine del ledger. SQLite en memoria comparte una sola conexión."""
    url = database_url or settings.DATABASE_URL
    echo = settings.DATABASE_ECHO if echo is None else echo

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        echo=echo
    )


engine = build_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None):
    """Crear tablas del ledger (solo desarrollo/tests; en producción el ledger es externo)."""
    import pos_core.modules.ledger.models  # noqa: F401  registra los modelos

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    """Genera una sesión de base de datos síncrona."""
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database error: {e}")
        db.rollback()
        raise
    finally:
        db.close()
