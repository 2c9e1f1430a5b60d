from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Google Gemini API, key from at https://aistudio.google.com/app/apikey
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_MAX_TOKENS: int = 1024
    GEMINI_CLASSIFIER_MAX_TOKENS: int = 256
    GEMINI_TEMPERATURE: float = 0.0          # answers must be reproducible

    # Knowledge source: "airtable" (live base) or "sql" (local mirror)
    KNOWLEDGE_BACKEND: str = "airtable"
    AIRTABLE_API_URL: str = "https://api.airtable.com/v0"
    AIRTABLE_BASE_ID: str = ""
    AIRTABLE_API_KEY: str = ""   # Set in .env, never commit
    AIRTABLE_TIMEOUT_SECONDS: float = 8.0

    HOTELS_TABLE: str = "Hotels"
    SERVICES_TABLE: str = "Services"
    ROOMS_TABLE: str = "Rooms"
    INTENTS_TABLE: str = "Intents"
    OUTPUT_RULES_TABLE: str = "Output Rules"

    # Local mirror (KNOWLEDGE_BACKEND=sql)
    DATABASE_URL: str = "sqlite+aiosqlite:///./olly_knowledge.db"

    # Assistant behaviour
    DEFAULT_HOTEL_SLUG: str = "hotel-olly-split"
    WEB_CHANNEL: str = "web"
    CACHE_TTL_SECONDS: float = 60.0
    RATE_LIMIT_WINDOW_SECONDS: float = 20.0
    RATE_LIMIT_MAX_REQUESTS: int = 12
    MAX_CONTEXT_RECORDS: int = 8
    DEFAULT_LANGUAGE: str = "en"

    CORS_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
