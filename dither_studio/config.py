import logging
import os
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class StudioSettings:
    source_url: str
    port: int
    timeout: float
    retries: int
    log_level: str
    max_pixels: int
    default_algorithm: str
    adapter_cache_ttl: float
    adapter_cache_size: int
    allowed_source_hosts: Tuple[str, ...]

    @classmethod
    def from_env(cls) -> "StudioSettings":
        return cls(
            source_url=os.getenv("SOURCE_URL", "http://127.0.0.1:8000/frame.png"),
            port=int(os.getenv("PORT", "5500")),
            timeout=float(os.getenv("SOURCE_TIMEOUT", "10.0")),
            retries=int(os.getenv("SOURCE_RETRIES", "2")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            max_pixels=int(os.getenv("MAX_PIXELS", "4000000")),
            default_algorithm=os.getenv("DEFAULT_ALGORITHM", "floydSteinberg"),
            adapter_cache_ttl=float(os.getenv("ADAPTER_CACHE_TTL", "30")),
            adapter_cache_size=int(os.getenv("ADAPTER_CACHE_SIZE", "16")),
            allowed_source_hosts=_split_hosts(os.getenv("ALLOWED_SOURCE_HOSTS", "")),
        )


def _split_hosts(raw: str) -> Tuple[str, ...]:
    return tuple(host.strip().lower() for host in raw.split(",") if host.strip())


SETTINGS = StudioSettings.from_env()


def configure_logging() -> logging.Logger:
    logging.basicConfig(level=SETTINGS.log_level)
    return logging.getLogger("dither-studio")
