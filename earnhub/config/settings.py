"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from earnhub.config.constants import MONEY_SCALE


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False
    database_isolation_level: str = Field(
        default="SERIALIZABLE",
        description="Isolation level for PostgreSQL (SQLite uses BEGIN IMMEDIATE)",
    )
    transaction_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for a whole transaction on serialization conflicts",
    )

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str | None = None

    # Money
    currency: str = "PKR"
    currency_minor_unit: Decimal = Field(
        default=Decimal("0.01"),
        description="Smallest exact currency unit; commissions are floored to it",
    )

    # Trial and daily allowances
    trial_days: int = Field(default=3, ge=0)
    trial_daily_video_limit: int = Field(default=5, ge=0)
    free_daily_task_limit: int = Field(default=0, ge=0)

    # Deposits and withdrawals
    min_deposit_amount: Decimal = Field(default=Decimal("100"), gt=0)
    min_withdrawal_amount: Decimal = Field(default=Decimal("500"), gt=0)

    # Referral codes
    referral_code_length: int = Field(default=8, ge=6, le=20)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode='after')
    def validate_production(self) -> 'Settings':
        """Validate production-specific requirements."""
        if self.environment == 'production' and self.debug:
            raise ValueError(
                'DEBUG must be False in production environment. '
                'Set DEBUG=false in your .env file.'
            )
        return self

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(
            ('postgresql://', 'postgresql+asyncpg://', 'sqlite+aiosqlite://')
        ):
            raise ValueError(
                'DATABASE_URL must start with postgresql+asyncpg:// '
                'or sqlite+aiosqlite://'
            )
        # Plain postgresql:// would pick the sync psycopg driver
        if v.startswith('postgresql://'):
            return v.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return v

    @field_validator('currency_minor_unit')
    @classmethod
    def validate_minor_unit(cls, v: Decimal) -> Decimal:
        """Minor unit must be positive and fit the money column scale."""
        if v <= 0:
            raise ValueError('CURRENCY_MINOR_UNIT must be positive')
        if v != v.quantize(Decimal(1).scaleb(-MONEY_SCALE)):
            raise ValueError(
                f'CURRENCY_MINOR_UNIT must have at most {MONEY_SCALE} decimal places'
            )
        return v

    @property
    def is_sqlite(self) -> bool:
        """True when running against SQLite (tests, local runs)."""
        return self.database_url.startswith('sqlite')


# Global settings instance
settings = Settings()
