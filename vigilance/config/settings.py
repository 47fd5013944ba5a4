from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "vigilance"
    db_username: str = "vigilance"
    db_password: str = "secret"

    storage_root: str = "/app/files"
    storage_public_base_url: str = "http://localhost:8000/files"

    pdf_engine: str = "pdfplumber"

    parseur_api_key: str = ""
    parseur_base_url: str = "https://api.parseur.com"
    parseur_timeout_seconds: int = 60

    analysis_provider: str = "openai"
    openai_api_key: str = ""
    openai_model_name: str = "gpt-4o-mini"
    openai_timeout_seconds: int = 30
    openai_compatible_base_url: str = ""
    analysis_temperature: float = 0.1
    analysis_max_tokens: int = 2000
    narrative_temperature: float = 0.2
    narrative_max_tokens: int = 1500

    retry_max_attempts: int = 3
    retry_base_delay_ms: int = 1000
    retry_max_delay_ms: int = 10000
    retry_backoff_multiplier: float = 2.0

    max_concurrent_files: int = 4
    system_user_id: str = "system"
    phi_encryption_key: str = ""
