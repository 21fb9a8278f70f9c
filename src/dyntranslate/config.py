"""Runtime configuration for the translation coalescer."""

from __future__ import annotations

import os
from dataclasses import dataclass

# Debounce window: a burst of translate() calls within this delay share one request
DEFAULT_DEBOUNCE_SECONDS = 0.1
# Hard deadline after the first queued item, so constant arrivals cannot starve a flush
DEFAULT_MAX_WAIT_SECONDS = 1.0
DEFAULT_REQUEST_TIMEOUT = 15.0

DEFAULT_SOURCE_LANG = "es"
DEFAULT_CACHE_MAXSIZE = 5000
DEFAULT_CACHE_TTL_SECONDS = 3600.0

CACHE_TYPES = ("lru", "ttl")

_ENV_PREFIX = "DYNTRANSLATE_"
_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class CoalescerConfig:
    """Settings shared by the coalescer, its cache and the HTTP backend."""

    source_lang: str = DEFAULT_SOURCE_LANG
    enabled: bool = True
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS
    request_timeout: float | None = DEFAULT_REQUEST_TIMEOUT
    cache_maxsize: int = DEFAULT_CACHE_MAXSIZE
    cache_type: str = "lru"
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    endpoint: str | None = None
    api_key: str | None = None

    def __post_init__(self) -> None:
        if not self.source_lang:
            raise ValueError("source_lang must not be empty")
        if self.debounce_seconds < 0:
            raise ValueError("debounce_seconds must be >= 0")
        if self.max_wait_seconds < self.debounce_seconds:
            raise ValueError("max_wait_seconds must be >= debounce_seconds")
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive or None")
        if self.cache_maxsize <= 0:
            raise ValueError("cache_maxsize must be positive")
        if self.cache_type not in CACHE_TYPES:
            raise ValueError(
                f"cache_type must be one of {', '.join(CACHE_TYPES)}, got {self.cache_type!r}"
            )
        if self.cache_ttl_seconds <= 0:
            raise ValueError("cache_ttl_seconds must be positive")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> CoalescerConfig:
        """Build a config from DYNTRANSLATE_* environment variables.

        Unset variables keep their defaults. Millisecond variables
        (DEBOUNCE_MS, MAX_WAIT_MS) are converted to seconds.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = env.get(_ENV_PREFIX + name)
            return value.strip() if value is not None and value.strip() else None

        kwargs: dict[str, object] = {}
        if (value := get("SOURCE_LANG")) is not None:
            kwargs["source_lang"] = value
        if (value := get("ENABLED")) is not None:
            kwargs["enabled"] = value.lower() in _TRUE_VALUES
        if (value := get("DEBOUNCE_MS")) is not None:
            kwargs["debounce_seconds"] = float(value) / 1000
        if (value := get("MAX_WAIT_MS")) is not None:
            kwargs["max_wait_seconds"] = float(value) / 1000
        if (value := get("TIMEOUT")) is not None:
            kwargs["request_timeout"] = float(value) or None
        if (value := get("CACHE_SIZE")) is not None:
            kwargs["cache_maxsize"] = int(value)
        if (value := get("CACHE_TYPE")) is not None:
            kwargs["cache_type"] = value.lower()
        if (value := get("CACHE_TTL")) is not None:
            kwargs["cache_ttl_seconds"] = float(value)
        if (value := get("ENDPOINT")) is not None:
            kwargs["endpoint"] = value
        if (value := get("API_KEY")) is not None:
            kwargs["api_key"] = value

        return cls(**kwargs)  # type: ignore[arg-type]
