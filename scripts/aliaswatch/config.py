"""Configuration via environment variables with cloud-native secret support.

Supports:
  - Environment variables (local dev)
  - A .env file in the working directory, or one given explicitly
  - AWS Secrets Manager (aws-secret://name#key) for either token
  - GCP Secret Manager (gcp-secret://name) for either token
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from scripts.aliaswatch.secrets import SecretResolutionError, resolve_secret

logger = logging.getLogger("aliaswatch.config")


@dataclass(frozen=True)
class AnonAddyConfig:
    token: str
    host: str = "https://app.anonaddy.com"
    page_size: int = 100


@dataclass(frozen=True)
class HibpConfig:
    token: str
    host: str = "https://haveibeenpwned.com"
    user_agent: str = "aliaswatch"
    min_interval: float = 6.0  # 10 requests/minute subscription tier
    max_rate_limit_retries: int = 3


@dataclass(frozen=True)
class HttpConfig:
    connect_timeout: float = 5.0
    read_timeout: float = 30.0

    @property
    def timeout(self) -> tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)


@dataclass(frozen=True)
class AppConfig:
    anonaddy: AnonAddyConfig
    hibp: HibpConfig
    http: HttpConfig = field(default_factory=HttpConfig)
    deactivate_retry_delay: float = 2.0


def _required_token(name: str) -> str:
    raw = os.environ.get(name, "")
    if not raw:
        raise ValueError(f"{name} environment variable is required")
    try:
        return resolve_secret(raw)
    except SecretResolutionError as exc:
        raise ValueError(f"cannot resolve {name}: {exc}") from exc


def _number(name: str, default: str, cast=float):
    raw = os.environ.get(name, default)
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if not math.isfinite(value):
        raise ValueError(f"{name} must be finite, got {raw!r}")
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {raw!r}")
    return value


def load_config(env_file: Optional[str] = None) -> AppConfig:
    """Load configuration from environment variables.

    Values already present in the environment take precedence over the
    .env file. Raises ValueError when a token is missing or cannot be
    resolved, or when a numeric setting cannot be parsed.
    """
    if env_file:
        if not os.path.isfile(env_file):
            raise ValueError(f"Unable to read env file {env_file}")
        load_dotenv(env_file)
    elif not load_dotenv():
        logger.info("No .env file found, using process environment only")

    page_size = _number("ANONADDY_PAGE_SIZE", "100", int)
    if page_size < 1:
        raise ValueError("ANONADDY_PAGE_SIZE must be at least 1")

    anonaddy = AnonAddyConfig(
        token=_required_token("ANONADDY_TOKEN"),
        host=os.environ.get("ANONADDY_HOST", "https://app.anonaddy.com").rstrip("/"),
        page_size=page_size,
    )

    hibp = HibpConfig(
        token=_required_token("HIBP_TOKEN"),
        host=os.environ.get("HIBP_HOST", "https://haveibeenpwned.com").rstrip("/"),
        user_agent=os.environ.get("HIBP_USER_AGENT", "aliaswatch"),
        min_interval=_number("HIBP_MIN_INTERVAL_SECONDS", "6.0"),
        max_rate_limit_retries=_number("HIBP_MAX_RATE_LIMIT_RETRIES", "3", int),
    )

    http = HttpConfig(
        connect_timeout=_number("HTTP_CONNECT_TIMEOUT", "5"),
        read_timeout=_number("HTTP_READ_TIMEOUT", "30"),
    )

    return AppConfig(
        anonaddy=anonaddy,
        hibp=hibp,
        http=http,
        deactivate_retry_delay=_number("DEACTIVATE_RETRY_DELAY_SECONDS", "2.0"),
    )
