# server/config.py
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

# .../study_buddy/server
BASE_DIR = Path(__file__).resolve().parent
# repo root
ROOT_DIR = BASE_DIR.parent.parent

# Load ENV from the repo root, the server dir, plus generic .env
load_dotenv(ROOT_DIR / ".env")
load_dotenv(BASE_DIR / ".env")
load_dotenv()

REMAINDER_POLICIES = ("last_day", "daily")


@dataclass(frozen=True)
class Settings:
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-1.5-flash"
    heroku_inference_url: Optional[str] = None
    heroku_inference_key: Optional[str] = None
    heroku_inference_model_id: Optional[str] = None
    ai_timeout_seconds: float = 30.0
    schedule_remainder_policy: str = "last_day"
    ping_message: str = "ping"
    cors_origins: Tuple[str, ...] = ("*",)

    @property
    def has_gemini(self) -> bool:
        return bool(self.gemini_api_key)

    @property
    def has_heroku(self) -> bool:
        return bool(
            self.heroku_inference_url
            and self.heroku_inference_key
            and self.heroku_inference_model_id
        )


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_settings() -> Settings:
    """Read settings from the environment (after .env loading)."""
    policy = (os.getenv("SCHEDULE_REMAINDER_POLICY") or "last_day").strip().lower()
    if policy not in REMAINDER_POLICIES:
        policy = "last_day"

    origins = [
        o.strip()
        for o in (os.getenv("CORS_ORIGINS") or "*").split(",")
        if o.strip()
    ]

    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        gemini_model=os.getenv("GEMINI_MODEL") or "gemini-1.5-flash",
        heroku_inference_url=os.getenv("HEROKU_INFERENCE_URL") or None,
        heroku_inference_key=os.getenv("HEROKU_INFERENCE_KEY") or None,
        heroku_inference_model_id=os.getenv("HEROKU_INFERENCE_MODEL_ID") or None,
        ai_timeout_seconds=_float_env("AI_TIMEOUT_SECONDS", 30.0),
        schedule_remainder_policy=policy,
        ping_message=os.getenv("PING_MESSAGE") or "ping",
        cors_origins=tuple(origins) or ("*",),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
