# stockdash/config.py
# Purpose: Read service settings from the environment once, at app creation.
# Pitfalls: FINNHUB_API_KEY is mandatory; a missing key fails startup, not requests.

from __future__ import annotations

import os

from pydantic import BaseModel, Field, ValidationError

from stockdash.data_client import YAHOO_BASE_URL
from stockdash.errors import ConfigError
from stockdash.finnhub_client import FINNHUB_BASE_URL

# env var -> Settings field
_ENV_FIELDS = {
    "STOCKDASH_FINNHUB_BASE_URL": "finnhub_base_url",
    "STOCKDASH_YAHOO_BASE_URL": "yahoo_base_url",
    "STOCKDASH_UPSTREAM_TIMEOUT_SEC": "upstream_timeout_s",
    "STOCKDASH_CACHE_MAX_ENTRIES": "cache_max_entries",
    "STOCKDASH_SWEEP_INTERVAL_SEC": "sweep_interval_s",
    "STOCKDASH_RATE_LIMIT_MAX": "rate_limit_max",
    "STOCKDASH_RATE_LIMIT_WINDOW_SEC": "rate_limit_window_s",
    "STOCKDASH_RATE_LIMIT_MAX_KEYS": "rate_limit_max_keys",
}


class Settings(BaseModel):
    finnhub_api_key: str = Field(min_length=1)
    finnhub_base_url: str = FINNHUB_BASE_URL
    yahoo_base_url: str = YAHOO_BASE_URL
    upstream_timeout_s: float = Field(default=10.0, gt=0)

    cache_max_entries: int = Field(default=1000, ge=1)
    # 0 disables the background sweep (lazy expiry still applies)
    sweep_interval_s: float = Field(default=300.0, ge=0)

    rate_limit_max: int = Field(default=30, ge=1)
    rate_limit_window_s: float = Field(default=60.0, gt=0)
    rate_limit_max_keys: int = Field(default=10_000, ge=1)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        api_key = (env.get("FINNHUB_API_KEY") or "").strip()
        if not api_key:
            raise ConfigError("FINNHUB_API_KEY environment variable is not set")

        values: dict[str, str] = {"finnhub_api_key": api_key}
        for var, field in _ENV_FIELDS.items():
            raw = env.get(var)
            if raw is not None and raw.strip():
                values[field] = raw.strip()
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(f"invalid stockdash settings: {e}") from e
