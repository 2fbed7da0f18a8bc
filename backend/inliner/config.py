from pydantic import model_validator
from pydantic_settings import BaseSettings
from functools import lru_cache
import os


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)
DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"


class Settings(BaseSettings):
    # Fetch budget (seconds)
    main_fetch_timeout: float = 8.0
    stylesheet_fetch_timeout: float = 5.0
    stylesheet_deadline: float = 6.0
    max_concurrent_stylesheets: int = 15

    # Many origins reject requests that don't look like a browser
    user_agent: str = DEFAULT_USER_AGENT
    accept: str = DEFAULT_ACCEPT
    accept_language: str = "en-US,en;q=0.5"

    # Server
    host: str = "127.0.0.1"
    port: int = 3001
    log_level: str = "INFO"

    class Config:
        # Look for .env in the repo root (two levels up from backend/inliner/)
        _env_path = os.path.join(os.path.dirname(__file__), "..", "..", ".env")
        env_file = _env_path if os.path.exists(_env_path) else None
        env_file_encoding = "utf-8"
        extra = "ignore"

    @model_validator(mode="after")
    def _check_budget(self):
        for name in ("main_fetch_timeout", "stylesheet_fetch_timeout", "stylesheet_deadline"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.max_concurrent_stylesheets < 1:
            raise ValueError("max_concurrent_stylesheets must be at least 1")
        if self.stylesheet_fetch_timeout >= self.main_fetch_timeout:
            raise ValueError("stylesheet_fetch_timeout must be smaller than main_fetch_timeout")
        return self

    @property
    def request_headers(self) -> dict:
        return {
            "User-Agent": self.user_agent,
            "Accept": self.accept,
            "Accept-Language": self.accept_language,
        }


@lru_cache()
def get_settings():
    return Settings()
