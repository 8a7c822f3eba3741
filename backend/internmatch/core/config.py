from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    database_url: str = "sqlite:///./internmatch.db"
    auto_create_tables: bool = True
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"
    match_scoring_mode: str = "ai"
    llm_provider: str = "openrouter"
    openrouter_api_key: str | None = None
    openrouter_model: str = "deepseek/deepseek-chat-v3.1:free"
    openrouter_api_base: str = "https://openrouter.ai/api/v1"
    openai_api_key: str | None = None
    openai_model: str = "gpt-4.1-mini"
    openai_api_base: str = "https://api.openai.com/v1"
    groq_api_key: str | None = None
    groq_model: str = "llama-3.1-8b-instant"
    groq_api_base: str = "https://api.groq.com/openai/v1"
    llm_referer: str = "https://internmatch-ai.com"
    llm_app_title: str = "InternMatch AI"
    match_timeout_seconds: float = 45.0
    match_max_tokens: int = 2000
    match_temperature: float = 0.7
    match_concurrency: int = 4
    recommended_internships_limit: int = 20
    recommended_candidates_limit: int = 10
    match_rate_limit_per_minute: int = 20

    @field_validator("database_url", mode="before")
    @classmethod
    def normalize_database_url(cls, value: str) -> str:
        # Hosted Postgres providers often expose postgres:// URLs.
        if isinstance(value, str) and value.startswith("postgres://"):
            return "postgresql://" + value[len("postgres://"):]
        return value

    @field_validator("match_scoring_mode", mode="before")
    @classmethod
    def normalize_scoring_mode(cls, value: str) -> str:
        mode = (value or "ai").strip().lower()
        if mode not in {"ai", "rules"}:
            raise ValueError(f"Unsupported match scoring mode: {value}")
        return mode


settings = Settings()
