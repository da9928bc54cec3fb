from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    store_engine: str = "postgres"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "fieldreport"
    db_username: str = "fieldreport"
    db_password: str = "secret"

    operator_identity: str = ""
    operator_display_name: str = ""

    autosave_interval_seconds: float = 30.0

    remote_storage_provider: str = "example"
    remote_storage_base_url: str = ""
    remote_storage_api_key: str = ""
    remote_storage_timeout_seconds: int = 30
    remote_storage_root: str = "reports"
    remote_sequence_start: int = 10001

    remote_upload_failure_rate: float = 0.0
    transcode_jpeg_quality: int = 80

    enrichment_provider: str = "example"
    enrichment_openai_api_key: str = ""
    enrichment_openai_model_name: str = "gpt-4o-mini"
    enrichment_openai_transcription_model: str = "whisper-1"
    enrichment_openai_timeout_seconds: int = 30
    enrichment_openai_temperature: float = 0.2
