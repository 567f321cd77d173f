from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Storage
    storage_backend: str = "json"  # json | memory
    data_dir: str = "./data"
    default_tenant: str = "local"

    # Invoicing
    tax_rate: float = 10.0
    invoice_number_format: str = "yearly"  # yearly | lifetime | custom template

    # Company details printed on PDFs
    company_name: str = "Invoicey"
    company_email: str = "hello@invoicey.com"
    company_phone: str = "+1 (555) 000-1234"
    company_address: str = "100 Main Street, Suite 200, San Francisco, CA 94105"

    # App
    log_level: str = "INFO"
    allowed_origins: str = "http://localhost:5173,http://localhost:3000"

    model_config = SettingsConfigDict(
        env_prefix="INVOICEY_", env_file=".env", env_file_encoding="utf-8"
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
