"""
Configuration module for the exam schedule service.
환경 변수 및 모델 설정을 관리합니다.
"""

import logging
import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://exam.insure.or.kr/lp/schd/list"

# Maximum tokens requested from text/vision LLMs
LLM_MAX_TOKENS = 4096


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    GOOGLE_API_KEY: str | None = None
    OPENAI_API_KEY: str | None = None
    ANTHROPIC_API_KEY: str | None = None

    # Authentication: comma-separated list of valid API keys.
    # 미설정 시 인증 비활성화 (개발 모드).
    API_KEYS: str | None = None

    # 분당 요청 제한 (키/IP별, 기본값: 30)
    RATE_LIMIT_PER_MINUTE: int = 30

    # Vision model for schedule images; prefix selects the provider
    VISION_MODEL: str = "gpt-4o-mini"

    # "rules" = line-pattern parser, anything else is an LLM model name
    DEADLINE_PARSER: str = "rules"

    # Official exam registry crawl
    EXAM_REGISTRY_URL: str = DEFAULT_REGISTRY_URL
    CRAWL_DELAY_SECONDS: float = 1.0     # pause between regions (server load courtesy)
    CRAWL_TIMEOUT_SECONDS: float = 15.0

    # JSON file backing the schedule store; unset = in-memory store
    SCHEDULE_STORE_PATH: str | None = None

    CORS_ORIGINS: str | None = None

    def __init__(self, **kwargs):
        """Load settings from environment variables."""
        defaults = {
            "GOOGLE_API_KEY": os.getenv("GOOGLE_API_KEY"),
            "OPENAI_API_KEY": os.getenv("OPENAI_API_KEY"),
            "ANTHROPIC_API_KEY": os.getenv("ANTHROPIC_API_KEY"),
            "API_KEYS": os.getenv("API_KEYS") or None,
            "RATE_LIMIT_PER_MINUTE": int(os.getenv("RATE_LIMIT_PER_MINUTE", "30")),
            "VISION_MODEL": os.getenv("VISION_MODEL", "gpt-4o-mini"),
            "DEADLINE_PARSER": os.getenv("DEADLINE_PARSER", "rules"),
            "EXAM_REGISTRY_URL": os.getenv("EXAM_REGISTRY_URL", DEFAULT_REGISTRY_URL),
            "CRAWL_DELAY_SECONDS": float(os.getenv("CRAWL_DELAY_SECONDS", "1.0")),
            "CRAWL_TIMEOUT_SECONDS": float(os.getenv("CRAWL_TIMEOUT_SECONDS", "15")),
            "SCHEDULE_STORE_PATH": os.getenv("SCHEDULE_STORE_PATH") or None,
            "CORS_ORIGINS": os.getenv("CORS_ORIGINS") or None,
        }
        defaults.update(kwargs)
        super().__init__(**defaults)

    @property
    def api_keys(self) -> frozenset[str]:
        """Parsed API_KEYS; empty when auth is disabled."""
        if not self.API_KEYS:
            return frozenset()
        return frozenset(k.strip() for k in self.API_KEYS.split(",") if k.strip())

    @property
    def cors_origins(self) -> list[str]:
        if not self.CORS_ORIGINS:
            return []
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    load_dotenv()
    return Settings()


# Model-name prefix -> provider key used by check_api_key
_PROVIDER_PREFIXES = {
    "gemini": "gemini",
    "gpt": "openai",
    "o1": "openai",
    "o3": "openai",
    "o4": "openai",
    "claude": "anthropic",
}


def provider_for_model(model_name: str) -> str | None:
    """Return the provider for a model name, or None if unknown."""
    for prefix, provider in _PROVIDER_PREFIXES.items():
        if model_name.startswith(prefix):
            return provider
    return None


def check_api_key(provider: str, settings: Settings | None = None) -> bool:
    """Check if the API key for the given provider is configured."""
    settings = settings or get_settings()
    if provider in ("gemini", "google"):
        return bool(settings.GOOGLE_API_KEY)
    if provider == "openai":
        return bool(settings.OPENAI_API_KEY)
    if provider == "anthropic":
        return bool(settings.ANTHROPIC_API_KEY)
    logger.warning("Unknown provider '%s' for API key check", provider)
    return False
