import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _split_origins(raw: str) -> List[str]:
    return [o.strip() for o in raw.split(",") if o.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./categorizer.db"
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    model_version: str = "v1.0"
    fuzzy_threshold: float = 0.85
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-1.5-flash"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        # Default to local SQLite, but allow override for Postgres
        database_url=os.getenv("DATABASE_URL", "sqlite:///./categorizer.db"),
        log_level=os.getenv("API_LOG_LEVEL", "INFO"),
        cors_origins=_split_origins(os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")),
        model_version=os.getenv("MODEL_VERSION", "v1.0"),
        fuzzy_threshold=float(os.getenv("FUZZY_THRESHOLD", "0.85")),
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-1.5-flash"),
    )
