from functools import lru_cache
import os


class Settings:
    app_name: str = "AdRoi"
    secret_key: str = os.getenv("SECRET_KEY", "dev-secret-change-me")
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./adroi.db")
    session_cookie: str = "adroi_session"
    session_max_age: int = int(os.getenv("SESSION_MAX_AGE_SECONDS", str(60 * 60 * 24 * 7)))
    # re-sign the cookie once it is older than this
    session_refresh_after: int = int(os.getenv("SESSION_REFRESH_AFTER_SECONDS", str(60 * 60)))
    gemini_api_key: str = os.getenv("GEMINI_API_KEY", "")
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-3-flash-preview")
    gemini_api_url: str = os.getenv("GEMINI_API_URL", "https://generativelanguage.googleapis.com/v1beta/models")
    ai_timeout_seconds: float = float(os.getenv("AI_TIMEOUT_SECONDS", "30"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    public_base_url: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")


@lru_cache
def get_settings() -> Settings:
    return Settings()
