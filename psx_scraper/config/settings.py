import os
from functools import lru_cache

from pydantic import BaseModel, Field

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko)"
)


class Settings(BaseModel):
    PSX_PRIMARY_BASE_URL: str = "https://sarmaaya.pk/stocks"
    PSX_FALLBACK_BASE_URL: str = "https://dps.psx.com.pk/company"
    PSX_USER_AGENT: str = DEFAULT_USER_AGENT
    PSX_FETCH_TIMEOUT_SEC: float = Field(default=10.0, gt=0)
    PSX_BATCH_FETCH_TIMEOUT_SEC: float = Field(default=15.0, gt=0)
    PSX_BATCH_STAGGER_MS: int = Field(default=100, ge=0)
    PSX_BATCH_MAX_WORKERS: int = Field(default=64, gt=0)
    PSX_FRESHNESS_MAX_AGE_MINUTES: float = Field(default=30.0, gt=0)
    PSX_SELF_BASE_URL: str | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        # unset vars fall through to the model defaults
        raw = {name: os.getenv(name) for name in cls.model_fields}
        values = {k: v.strip() for k, v in raw.items() if v is not None and v.strip()}
        if "PSX_SELF_BASE_URL" in values:
            values["PSX_SELF_BASE_URL"] = values["PSX_SELF_BASE_URL"].rstrip("/")
        return cls.model_validate(values)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
