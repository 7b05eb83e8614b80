from pydantic_settings import BaseSettings, SettingsConfigDict
from decimal import Decimal
from pydantic import field_validator


class Settings(BaseSettings):
    # Database settings (ledger de turnos/cajas/movimientos)
    DATABASE_URL: str = 'sqlite:///./pos_core.db'
    DATABASE_ECHO: bool = False

    # Money
    MONEY_DECIMALS: int = 2
    PAYMENT_TOLERANCE: Decimal = Decimal('0.02')  # absorbe redondeos, no es una tolerancia comercial

    # Promociones / cupones
    COUPON_PREFIX: str = 'PROM'
    DEFAULT_SHIFT_TAG: str = 'todos'

    # Turnos y cajas
    ENFORCE_DRAWER_CLOSED_ON_SHIFT_CLOSE: bool = False

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = ''

    @property
    def money_quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.MONEY_DECIMALS)

    @property
    def log_level(self) -> str:
        if self.LOG_LEVEL:
            return self.LOG_LEVEL.upper()
        return "INFO" if self.ENVIRONMENT == "production" else "DEBUG"

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", "DATABASE_ECHO", "ENFORCE_DRAWER_CLOSED_ON_SHIFT_CLOSE", mode="before")
    @classmethod
    def parse_bool(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("PAYMENT_TOLERANCE", mode="before")
    @classmethod
    def parse_tolerance(cls, v):
        if isinstance(v, float):
            return Decimal(str(v))
        return v

settings = Settings()
