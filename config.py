from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # AI Provider Settings (GEMINI, OLLAMA, ANTHROPIC, MOCK)
    AI_PROVIDER: str = "MOCK"
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.0-flash"
    GEMINI_EMBEDDING_MODEL: str = "models/text-embedding-004"
    OLLAMA_HOST: str = "http://127.0.0.1:11434"
    OLLAMA_MODEL: str = "llama3"
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_MODEL: str = "claude-sonnet-4-5"
    LLM_TIMEOUT_SECONDS: float = 60.0

    # Engine Loop Settings
    POLL_INTERVAL_SECONDS: float = 3.0
    BATCH_SIZE: int = 5
    SWEEP_EVERY_N_TICKS: int = 10

    # Classification & Nudge Settings
    CONFIDENCE_THRESHOLD: float = 0.8
    NUDGE_COOLDOWN_HOURS: int = 24

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
