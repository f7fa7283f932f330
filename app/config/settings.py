from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.documents.currencies import is_known_currency


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "docintake"
    db_username: str = "docintake"
    db_password: str = "secret"
    db_pool_max_size: int = 10

    document_store: str = "postgres"
    notifier_backend: str = "postgres"

    files_root: str = "/app/files"
    upload_max_file_size_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    default_currency: str = "MYR"

    dispatcher_max_workers: int = Field(default=4, gt=0)
    recognition_provider: str = "http"
    recognition_timeout_seconds: float = Field(default=30.0, gt=0)
    confidence_clamp_tolerance: float = Field(default=0.01, ge=0, le=0.1)

    recognition_http_url: str = "http://localhost:8080/recognize"
    recognition_http_api_key: str = ""

    recognition_openai_api_key: str = ""
    recognition_openai_model_name: str = "gpt-4o-mini"
    recognition_openai_temperature: float = 0.1

    recognition_openrouter_api_key: str = ""
    recognition_openrouter_model_name: str = "openai/gpt-4o-mini"

    recognition_openai_compatible_base_url: str = ""
    recognition_openai_compatible_api_key: str = ""
    recognition_openai_compatible_model_name: str = ""

    pdf_engine: str = "pdfplumber"
    pdf_max_pages: int = Field(default=10, gt=0)

    worker_poll_interval_seconds: int = 5
    stale_upload_seconds: int = 60

    @field_validator("default_currency")
    @classmethod
    def normalize_default_currency(cls, value: str) -> str:
        code = value.strip().upper()
        if not is_known_currency(code):
            raise ValueError(f"not a recognized ISO 4217 currency code: {value!r}")
        return code
