"""Configuration settings for the deviation monitor."""

import math
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

# Defaults
DEFAULT_POLL_INTERVAL_MS: int = 30000
DEFAULT_QUANTITY: float = 1.0
DEFAULT_REFERENCE_PRICE: float = 0.0
DEFAULT_NAVIGATION_TIMEOUT_MS: int = 30000
DEFAULT_SMTP_PORT: int = 587

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigurationError(Exception):
    """Raised when the environment does not describe a usable monitor."""


@dataclass(frozen=True)
class EmailSettings:
    """SMTP delivery settings."""
    host: str
    port: int
    secure: bool
    user: Optional[str]
    password: Optional[str]
    from_name: Optional[str]
    from_address: str
    to_address: str

    @property
    def sender(self) -> str:
        if self.from_name:
            return f'"{self.from_name}" <{self.from_address}>'
        return self.from_address


@dataclass(frozen=True)
class MonitorConfig:
    """Immutable monitor settings, loaded once at startup."""
    source_url: str
    source_selector: str
    closing_hour: int
    alert_threshold_percent: float
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    quantity: float = DEFAULT_QUANTITY
    reference_price: float = DEFAULT_REFERENCE_PRICE
    headless: bool = True
    navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS
    email: Optional[EmailSettings] = None
    discord_webhook_url: Optional[str] = None

    def __post_init__(self) -> None:
        if self.poll_interval_ms <= 0:
            raise ConfigurationError(
                f"Poll interval must be positive, got {self.poll_interval_ms}ms"
            )
        if not 0 <= self.closing_hour <= 23:
            raise ConfigurationError(
                f"Closing hour must be between 0 and 23, got {self.closing_hour}"
            )
        if not math.isfinite(self.quantity) or self.quantity < 0:
            raise ConfigurationError(f"Quantity must be >= 0, got {self.quantity}")
        if not math.isfinite(self.reference_price):
            raise ConfigurationError("Reference price must be a finite number")
        if not math.isfinite(self.alert_threshold_percent):
            raise ConfigurationError("Alert threshold must be a finite number")
        if self.navigation_timeout_ms <= 0:
            raise ConfigurationError(
                f"Navigation timeout must be positive, got {self.navigation_timeout_ms}ms"
            )
        if not self.source_url:
            raise ConfigurationError("Source URL is required")
        if not self.source_selector:
            raise ConfigurationError("Source selector is required")

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000


def _get(env: Mapping[str, str], key: str) -> Optional[str]:
    """Return a stripped value, treating blank strings as unset."""
    value = env.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_int(env: Mapping[str, str], key: str, default: Optional[int] = None) -> Optional[int]:
    raw = _get(env, key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from None


def _parse_float(env: Mapping[str, str], key: str, default: Optional[float] = None) -> Optional[float]:
    raw = _get(env, key)
    if raw is None:
        return default
    try:
        return float(raw.replace(",", "."))
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}") from None


def _parse_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = _get(env, key)
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{key} must be a boolean, got {raw!r}")


def _require(value, key: str):
    if value is None:
        raise ConfigurationError(f"{key} is not set")
    return value


def _load_email(env: Mapping[str, str]) -> Optional[EmailSettings]:
    host = _get(env, "EMAIL_HOST")
    if host is None:
        return None

    from_address = _get(env, "EMAIL_MAIL_FROM") or _get(env, "EMAIL_USER")
    to_address = _get(env, "EMAIL_MAIL_TO")
    if not from_address:
        raise ConfigurationError("EMAIL_HOST is set but EMAIL_MAIL_FROM is missing")
    if not to_address:
        raise ConfigurationError("EMAIL_HOST is set but EMAIL_MAIL_TO is missing")

    return EmailSettings(
        host=host,
        port=_parse_int(env, "EMAIL_PORT", DEFAULT_SMTP_PORT),
        secure=_parse_bool(env, "EMAIL_SECURE", False),
        user=_get(env, "EMAIL_USER"),
        password=_get(env, "EMAIL_PASS"),
        from_name=_get(env, "EMAIL_USERNAME"),
        from_address=from_address,
        to_address=to_address,
    )


def load_config(environ: Optional[Mapping[str, str]] = None) -> MonitorConfig:
    """
    Build a MonitorConfig from environment variables.

    When ``environ`` is omitted the process environment is used, after
    loading a ``.env`` file if one is present. Every value is parsed
    explicitly; anything missing or malformed raises ConfigurationError.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    return MonitorConfig(
        source_url=_require(_get(environ, "URL"), "URL"),
        source_selector=_require(_get(environ, "QUERY_SELECTOR"), "QUERY_SELECTOR"),
        closing_hour=_require(_parse_int(environ, "HORA_FECHAMENTO"), "HORA_FECHAMENTO"),
        alert_threshold_percent=_require(
            _parse_float(environ, "VARIACAO_PERCENTUAL_EXPERADA"),
            "VARIACAO_PERCENTUAL_EXPERADA",
        ),
        poll_interval_ms=_parse_int(environ, "TEMPO_ESPERA", DEFAULT_POLL_INTERVAL_MS),
        quantity=_parse_float(environ, "QUANTIDADE", DEFAULT_QUANTITY),
        reference_price=_parse_float(environ, "VALOR_COMPRA", DEFAULT_REFERENCE_PRICE),
        headless=_parse_bool(environ, "HEADLESS", True),
        navigation_timeout_ms=_parse_int(
            environ, "NAVIGATION_TIMEOUT", DEFAULT_NAVIGATION_TIMEOUT_MS
        ),
        email=_load_email(environ),
        discord_webhook_url=_get(environ, "DISCORD_WEBHOOK_URL"),
    )
