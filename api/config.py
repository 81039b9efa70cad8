from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_PROMPT = (
    "Colorize this black and white architectural blueprint into a realistic modern architectural rendering. "
    "Preserve exact structure. Add realistic materials, walls, floors, greenery, shadows, and lighting. "
    "Do not alter layout."
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Blueprint Colorizer"
    debug: bool = False
    log_level: str = "INFO"
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None
    storage_bucket: str = "blueprints"
    records_table: str = "blueprints"
    ai_gateway_url: str = "https://ai.gateway.lovable.dev/v1"
    ai_api_key: str | None = None
    ai_model: str = "google/gemini-2.5-flash-image"
    ai_timeout_seconds: float = 120.0
    ai_max_retries: int = 0
    client_api_key: str | None = None
    colorize_endpoint: str = "http://localhost:8000/colorize"
    colorize_prompt: str = DEFAULT_PROMPT


settings = Settings()
