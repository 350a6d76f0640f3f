from typing import List
from decouple import config, Csv
from pydantic import BaseModel, ConfigDict


class Feature(BaseModel):
    enabled: bool
    message: str = "Coming soon"

    model_config = ConfigDict(frozen=True)


class FeatureFlags(BaseModel):
    """Read-only feature switches, resolved once when settings load."""
    dashboard: Feature
    transactions: Feature
    positions: Feature
    trade_lots: Feature

    model_config = ConfigDict(frozen=True)

    def get(self, name: str) -> Feature:
        feature = getattr(self, name, None)
        if feature is None:
            return Feature(enabled=False)
        return feature


class Settings:
    # --- Database ---
    DB_USER: str = config("DB_USER", default="postgres")
    DB_PASSWORD: str = config("DB_PASSWORD", default="postgres")
    DB_NAME: str = config("DB_NAME", default="postgres")
    DB_HOST: str = config("DB_HOST", default="localhost")
    DB_PORT: int = config("DB_PORT", default=5432, cast=int)
    DB_URL_OVERRIDE: str = config("DATABASE_URL", default="")

    @property
    def DATABASE_URL(self) -> str:
        if self.DB_URL_OVERRIDE:
            return self.DB_URL_OVERRIDE
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    # --- Redis ---
    REDIS_HOST: str = config("REDIS_HOST", default="localhost")
    REDIS_PORT: int = config("REDIS_PORT", default=6379, cast=int)
    REDIS_DB: int = config("REDIS_DB", default=0, cast=int)
    REDIS_PASSWORD: str = config("REDIS_PASSWORD", default="")
    REDIS_USE_TLS: bool = config("REDIS_USE_TLS", default=False, cast=bool)
    CACHE_ENABLED: bool = config("CACHE_ENABLED", default=True, cast=bool)

    @property
    def REDIS_URL(self) -> str:
        scheme = "rediss" if self.REDIS_USE_TLS else "redis"
        if self.REDIS_PASSWORD:
            return (
                f"{scheme}://:{self.REDIS_PASSWORD}@"
                f"{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
            )
        return f"{scheme}://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # --- Auth ---
    SESSION_TTL_HOURS: int = config("SESSION_TTL_HOURS", default=24 * 7, cast=int)
    SESSION_COOKIE_NAME: str = config("SESSION_COOKIE_NAME", default="session_token")
    PASSWORD_MIN_LENGTH: int = config("PASSWORD_MIN_LENGTH", default=8, cast=int)
    OTP_TTL_MINUTES: int = config("OTP_TTL_MINUTES", default=5, cast=int)
    OTP_LENGTH: int = config("OTP_LENGTH", default=6, cast=int)
    WEBAUTHN_RP_ID: str = config("WEBAUTHN_RP_ID", default="localhost")
    WEBAUTHN_RP_NAME: str = config("WEBAUTHN_RP_NAME", default="Portfolio Tracker")
    WEBAUTHN_ORIGIN: str = config("WEBAUTHN_ORIGIN", default="http://localhost:3000")
    WEBAUTHN_CHALLENGE_TTL_MINUTES: int = config("WEBAUTHN_CHALLENGE_TTL_MINUTES", default=5, cast=int)

    # --- API ---
    DEFAULT_PAGE_SIZE: int = config("DEFAULT_PAGE_SIZE", default=20, cast=int)
    DEFAULT_TRADING_CURRENCY: str = config("DEFAULT_TRADING_CURRENCY", default="USD")

    # --- Features ---
    FEATURES: FeatureFlags = FeatureFlags(
        dashboard=Feature(
            enabled=config("FEATURE_DASHBOARD", default=True, cast=bool),
            message="Dashboard coming soon! We're building something amazing for you.",
        ),
        transactions=Feature(
            enabled=config("FEATURE_TRANSACTIONS", default=True, cast=bool),
            message="Transaction tracking coming soon",
        ),
        positions=Feature(
            enabled=config("FEATURE_POSITIONS", default=True, cast=bool),
            message="Position management coming soon",
        ),
        trade_lots=Feature(
            enabled=config("FEATURE_TRADE_LOTS", default=True, cast=bool),
            message="Trade lot tracking coming soon",
        ),
    )

    # --- Logging & Debug ---
    SQL_ECHO: bool = config("SQL_ECHO", default=False, cast=bool)
    LOG_LEVEL: str = config("LOG_LEVEL", default="INFO").upper()
    SQL_LOG_LEVEL: str = config("SQL_LOG_LEVEL", default="WARNING").upper()
    UVICORN_LOG_LEVEL: str = config("UVICORN_LOG_LEVEL", default="info").upper()
    LOG_DIR: str = config("LOG_DIR", default="logs")
    LOG_TO_FILE: bool = config("LOG_TO_FILE", default=True, cast=bool)
    DEBUG: bool = config("DEBUG", default=False, cast=bool)

    # --- CORS ---
    CORS_ORIGINS: List[str] = config(
        "CORS_ORIGINS",
        default="http://localhost:3000,http://127.0.0.1:3000",
        cast=Csv(),
    )


settings = Settings()
