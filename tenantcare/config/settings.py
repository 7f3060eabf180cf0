from typing import Any
from urllib.parse import quote_plus

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings backed by Pydantic BaseSettings.
    Values are read from the environment and from a local .env file.
    """

    # API Configuration
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "TenantCare Clinic API"
    PROJECT_DESCRIPTION: str = "Multi-tenant clinic management backend"
    VERSION: str = "0.1.0"

    # PostgreSQL server shared by the registry and the tenant databases
    DB_HOST: str = Field("localhost", description="PostgreSQL host")
    DB_PORT: int = Field(5432, description="PostgreSQL port")
    DB_USER: str = Field("postgres", description="PostgreSQL user")
    DB_PASSWORD: str | None = Field(None, description="PostgreSQL password")
    DB_ECHO: bool = Field(False, description="Log SQL statements (debug only)")

    # Connection pool settings, applied per tenant engine
    DB_POOL_SIZE: int = Field(5, description="Connection pool size per database")
    DB_MAX_OVERFLOW: int = Field(10, description="Pool overflow per database")
    DB_POOL_RECYCLE: int = Field(1800, description="Recycle connections after N seconds")
    DB_POOL_TIMEOUT: int = Field(30, description="Seconds to wait for a pooled connection")

    # Registry and tenant store addressing
    REGISTRY_DB_NAME: str = Field("clinic_registry", description="Database name of the tenant registry")
    REGISTRY_DATABASE_URL: str | None = Field(
        None, description="Full registry URL; overrides the DB_* based URL when set"
    )
    TENANT_DATABASE_URL: str | None = Field(
        None,
        description=(
            "Base address for tenant databases. The store locator replaces the database name "
            "(PostgreSQL) or names the database file inside the directory (SQLite)."
        ),
    )
    TENANT_STORE_PREFIX: str = Field("clinic", description="Prefix of every generated store locator")
    TENANT_CONNECT_TIMEOUT: float = Field(10.0, description="Seconds allowed to establish a tenant connection")

    # Registry behaviour
    JOIN_CODE_LENGTH: int = Field(6, description="Length of the clinic join code")
    JOIN_CODE_MAX_ATTEMPTS: int = Field(1000, description="Random draws allowed before giving up on a join code")
    CLINIC_SEARCH_LIMIT: int = Field(20, description="Maximum clinics returned by name search")

    # JWT Settings
    JWT_SECRET_KEY: str = Field(..., description="Secret used to sign access tokens")
    JWT_ALGORITHM: str = Field("HS256", description="JWT signing algorithm")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(7 * 24 * 60, description="Access token lifetime in minutes")
    OTP_EXPIRE_MINUTES: int = Field(10, description="Lifetime of email verification codes")

    # Platform super-admin
    SUPER_ADMIN_ID: str = Field("platform-admin", description="Subject claim reserved for the platform admin")
    SUPER_ADMIN_EMAIL: str = Field("admin@tenantcare.io", description="Login email of the platform admin")
    SUPER_ADMIN_PASSWORD: str | None = Field(None, description="Password used by the provisioning script")

    # Notification delivery
    NOTIFICATION_WEBHOOK_URL: str | None = Field(None, description="Endpoint receiving verification code requests")
    NOTIFICATION_TIMEOUT: float = Field(10.0, description="Timeout for notification delivery in seconds")

    # Application Settings
    DEBUG: bool = Field(False, description="Debug mode")
    ENVIRONMENT: str = Field("production", description="Runtime environment")
    SENTRY_DSN: str | None = Field(None, description="Sentry DSN for error tracking")
    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def __init__(self, **data: Any):
        super().__init__(**data)

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, value):
        if isinstance(value, str) and not value.strip().startswith("["):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("DB_POOL_SIZE")
    @classmethod
    def validate_pool_size(cls, v):
        if v < 1:
            raise ValueError("DB_POOL_SIZE must be at least 1")
        if v > 100:
            raise ValueError("DB_POOL_SIZE should not exceed 100")
        return v

    @field_validator("DB_MAX_OVERFLOW")
    @classmethod
    def validate_max_overflow(cls, v):
        if v < 0:
            raise ValueError("DB_MAX_OVERFLOW must be 0 or greater")
        if v > 200:
            raise ValueError("DB_MAX_OVERFLOW should not exceed 200")
        return v

    @field_validator("JOIN_CODE_LENGTH")
    @classmethod
    def validate_join_code_length(cls, v):
        if not 4 <= v <= 12:
            raise ValueError("JOIN_CODE_LENGTH must be between 4 and 12")
        return v

    @field_validator("TENANT_CONNECT_TIMEOUT")
    @classmethod
    def validate_connect_timeout(cls, v):
        if v <= 0:
            raise ValueError("TENANT_CONNECT_TIMEOUT must be positive")
        return v

    def _server_url(self, database: str) -> str:
        user = quote_plus(self.DB_USER)
        if self.DB_PASSWORD:
            password = quote_plus(self.DB_PASSWORD)
            return f"postgresql+asyncpg://{user}:{password}@{self.DB_HOST}:{self.DB_PORT}/{database}"
        return f"postgresql+asyncpg://{user}@{self.DB_HOST}:{self.DB_PORT}/{database}"

    @computed_field
    @property
    def registry_database_url(self) -> str:
        """URL of the registry database."""
        return self.REGISTRY_DATABASE_URL or self._server_url(self.REGISTRY_DB_NAME)

    @computed_field
    @property
    def tenant_database_url(self) -> str:
        """Base URL for tenant databases (database part is replaced per locator)."""
        return self.TENANT_DATABASE_URL or self._server_url("postgres")

    @property
    def engine_options(self) -> dict[str, Any]:
        """Keyword arguments shared by every engine the application creates."""
        return {
            "echo": self.DB_ECHO,
            "pool_pre_ping": True,
            "pool_size": self.DB_POOL_SIZE,
            "max_overflow": self.DB_MAX_OVERFLOW,
            "pool_recycle": self.DB_POOL_RECYCLE,
            "pool_timeout": self.DB_POOL_TIMEOUT,
        }


# Process-wide settings instance
_settings_instance = None


def get_settings() -> Settings:
    """
    Return the cached settings instance.
    Environment variables are only read once per process.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
