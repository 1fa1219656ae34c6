from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str = "sqlite:///./lab_results.db"
    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 3002
    log_level: str = "INFO"

    openrouter_api_key: str | None = None
    extraction_api_url: str = "https://openrouter.ai/api/v1/chat/completions"
    extraction_model: str = "google/gemini-2.5-flash"
    extraction_temperature: float = 0.1
    extraction_max_tokens: int = 8000
    extraction_timeout_seconds: float | None = None
    extraction_referer: str = "https://heal-app.com"
    extraction_title: str = "heal Blood Test Analyzer"

    storage_root: str = "./storage"
    storage_bucket: str = "test-results"

    match_similarity_threshold: float = 0.75
    default_lab_name: str = "SYNLAB"
    allowed_origins: str = "http://localhost:3001"
    max_upload_size_mb: int = 20


settings = Settings()
