from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    app_name: str = Field("invoice-intake", alias="APP_NAME")
    app_env: str = Field("dev", alias="APP_ENV")

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Anthropic (text extraction path)
    anthropic_api_key: str | None = Field(default=None, alias="ANTHROPIC_API_KEY")
    anthropic_model: str = Field("claude-3-7-sonnet-20250219", alias="ANTHROPIC_MODEL")
    anthropic_max_tokens: int = Field(4096, alias="ANTHROPIC_MAX_TOKENS")
    anthropic_max_retries: int = Field(2, alias="ANTHROPIC_MAX_RETRIES")
    extraction_timeout_seconds: float = Field(120.0, alias="EXTRACTION_TIMEOUT_SECONDS")

    # Azure Document Intelligence (structured extraction path)
    az_di_endpoint: str | None = Field(default=None, alias="AZ_DI_ENDPOINT")
    az_di_api_key: str | None = Field(default=None, alias="AZ_DI_API_KEY")

    # Storage
    database_path: str = Field("invoices.db", alias="DATABASE_PATH")
    uploads_dir: str = Field("uploads", alias="UPLOADS_DIR")

    # Normalization policy
    default_currency: str = Field("USD", alias="DEFAULT_CURRENCY")
    amount_sentinel: float = Field(1.0, alias="AMOUNT_SENTINEL")
    due_date_net_days: int | None = Field(default=None, alias="DUE_DATE_NET_DAYS")  # unset = no due date derivation
    require_identity_fields: bool = Field(False, alias="REQUIRE_IDENTITY_FIELDS")

    # Upload handling
    allowed_mime_types: str = Field("application/pdf,image/jpeg,image/png", alias="ALLOWED_MIME_TYPES")

    # CORS allowed origins (comma-separated list for production deployment)
    cors_origins: str = Field("http://localhost:3000,http://127.0.0.1:3000", alias="CORS_ORIGINS")

    # Service Bus (invoice-processed events, optional)
    service_bus_connection_string: str | None = Field(default=None, alias="SERVICE_BUS_CONNECTION_STRING")
    service_bus_queue: str = Field("invoice-events", alias="SERVICE_BUS_QUEUE")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "populate_by_name": True}

    @property
    def allowed_mime_type_list(self) -> list[str]:
        return [t.strip() for t in self.allowed_mime_types.split(",") if t.strip()]

settings = Settings()
