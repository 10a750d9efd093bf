from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "stockflow-jwt-secret"
ALLOWED_APP_MODES = {"demo", "pilot", "production"}
MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    app_name: str = "Stockflow Order Service"
    app_mode: str = Field(default="pilot", validation_alias="APP_MODE")
    auto_create_schema: bool = Field(default=True, validation_alias="AUTO_CREATE_SCHEMA")

    database_url: str = Field(
        default="sqlite+pysqlite:///./stockflow.db",
        validation_alias="STOCKFLOW_DATABASE_URL",
    )
    cors_allowed_origins: str = "http://localhost:3000,http://localhost:5173"

    jwt_secret: str = DEFAULT_JWT_SECRET
    allowed_roles: str = "CUSTOMER,ADMIN,DELIVERY_MAN"
    testing: bool = Field(default=False, validation_alias="STOCKFLOW_TESTING")

    low_stock_threshold: int = 10
    near_expiry_days: int = 15
    courier_name: str = "Stockflow Express"
    default_pickup_lat: float = 12.9716
    default_pickup_lng: float = 77.5946
    default_pickup_address: str = "Stockflow Warehouse, Bangalore"
    delivery_window_start_days: int = 2
    delivery_window_max_days: int = 10
    tracking_base_url: str = "http://localhost:3000/track"

    geocoding_base_url: str = "https://nominatim.openstreetmap.org"
    geocoding_country_code: str = "IN"
    geocoding_user_agent: str = "Stockflow-Order-Service/1.0"
    geocoding_timeout_s: float = 2.0
    geocoding_max_retries: int = 1
    geocoding_backoff_s: float = 0.2

    sendgrid_api_key: str = ""
    sendgrid_base_url: str = "https://api.sendgrid.com"
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = False
    smtp_start_tls: bool = True
    mail_from: str = "orders@stockflow.local"
    admin_email: str = "admin@stockflow.local"
    mail_timeout_s: float = 10.0

    sheets_spreadsheet_id: str = ""
    sheets_access_token: str = ""
    sheets_range: str = "Sheet1!A:F"
    sheets_base_url: str = "https://sheets.googleapis.com"
    sheets_timeout_s: float = 5.0

    side_effects_inline: bool = Field(default=False, validation_alias="SIDE_EFFECTS_INLINE")
    side_effects_max_workers: int = 4

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    @field_validator("app_mode")
    @classmethod
    def validate_app_mode(cls, value: str) -> str:
        mode = value.lower().strip()
        if mode not in ALLOWED_APP_MODES:
            allowed = ", ".join(sorted(ALLOWED_APP_MODES))
            raise ValueError(f"APP_MODE must be one of: {allowed}")
        return mode

    @field_validator("low_stock_threshold", "near_expiry_days", "side_effects_max_workers")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("value must be >= 1")
        return value


settings = Settings()


def is_production_mode() -> bool:
    return settings.app_mode == "production"


def allowed_origins() -> list[str]:
    return [origin.strip() for origin in settings.cors_allowed_origins.split(",") if origin.strip()]


def allowed_roles_list() -> list[str]:
    return [value.strip() for value in settings.allowed_roles.split(",") if value.strip()]


def ensure_secure_runtime_settings() -> None:
    """Fail fast when production-like runtime uses insecure defaults."""
    if settings.testing:
        return
    if settings.jwt_secret == DEFAULT_JWT_SECRET:
        raise RuntimeError(
            "JWT_SECRET must be set to a non-default value when STOCKFLOW_TESTING is false"
        )
    if len(settings.jwt_secret) < MIN_SECRET_LENGTH:
        raise RuntimeError(
            "JWT_SECRET must be at least "
            f"{MIN_SECRET_LENGTH} characters when STOCKFLOW_TESTING is false"
        )
    if is_production_mode() and _is_sqlite_url(settings.database_url):
        raise RuntimeError("STOCKFLOW_DATABASE_URL must use postgres when APP_MODE=production")
    if is_production_mode() and settings.side_effects_inline:
        raise RuntimeError("SIDE_EFFECTS_INLINE must be disabled in APP_MODE=production")


def _is_sqlite_url(database_url: str) -> bool:
    value = database_url.strip().lower()
    return value.startswith("sqlite")
