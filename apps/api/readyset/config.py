from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "readyset-jwt-secret"
DEFAULT_EZCATER_API_URL = "https://api.ezcater.com/graphql"
MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    app_name: str = "Ready Set Tracking API"

    database_url: str = Field(
        default="sqlite+pysqlite:///./test.db",
        validation_alias="READYSET_DATABASE_URL",
    )
    cors_allowed_origins: str = "http://localhost:3000"

    jwt_secret: str = DEFAULT_JWT_SECRET
    allowed_roles: str = "ADMIN,SUPER_ADMIN,HELPDESK,DRIVER,CLIENT,VENDOR"
    testing: bool = Field(default=False, validation_alias="READYSET_TESTING")

    auto_create_schema: bool = False
    require_migrations: bool = False

    addresses_rate_limit_requests: int = 30
    addresses_rate_limit_window_s: int = 60

    tracking_default_limit: int = 50
    live_tracking_interval_s: float = 5.0
    live_tracking_recent_location_window_s: int = 5 * 60

    ezcater_api_token: str = Field(default="", validation_alias="EZCATER_API_TOKEN")
    ezcater_api_url: str = Field(
        default=DEFAULT_EZCATER_API_URL,
        validation_alias="EZCATER_API_URL",
    )
    ezcater_client_name: str = "ready-set"
    ezcater_client_version: str = "1.0.0"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    @field_validator("ezcater_api_url")
    @classmethod
    def validate_ezcater_api_url(cls, value: str) -> str:
        url = value.strip()
        if not url.startswith(("http://", "https://")):
            raise ValueError("EZCATER_API_URL must be an http(s) URL")
        return url


settings = Settings()


def allowed_origins() -> list[str]:
    return [origin.strip() for origin in settings.cors_allowed_origins.split(",") if origin.strip()]


def allowed_roles_list() -> list[str]:
    return [value.strip() for value in settings.allowed_roles.split(",") if value.strip()]


def is_ezcater_enabled() -> bool:
    return bool(settings.ezcater_api_token.strip())


def ezcater_headers() -> dict[str, str]:
    """Request headers for the ezCater GraphQL API.

    The integration is switched on by the presence of ``EZCATER_API_TOKEN``;
    callers must check :func:`is_ezcater_enabled` first.
    """
    if not is_ezcater_enabled():
        raise RuntimeError("EZCATER_API_TOKEN is not configured")
    return {
        "Authorization": settings.ezcater_api_token.strip(),
        "Content-Type": "application/json",
        "apollographql-client-name": settings.ezcater_client_name,
        "apollographql-client-version": settings.ezcater_client_version,
    }


def ensure_secure_runtime_settings() -> None:
    """Fail fast when production-like runtime uses insecure defaults."""
    if settings.testing:
        return
    if settings.jwt_secret == DEFAULT_JWT_SECRET:
        raise RuntimeError(
            "JWT_SECRET must be set to a non-default value when READYSET_TESTING is false"
        )
    if len(settings.jwt_secret) < MIN_SECRET_LENGTH:
        raise RuntimeError(
            "JWT_SECRET must be at least "
            f"{MIN_SECRET_LENGTH} characters when READYSET_TESTING is false"
        )
    if is_sqlite_url(settings.database_url):
        raise RuntimeError("READYSET_DATABASE_URL must use postgres when READYSET_TESTING is false")


def is_sqlite_url(database_url: str) -> bool:
    value = database_url.strip().lower()
    return value.startswith("sqlite")
