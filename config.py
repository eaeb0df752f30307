"""Configuration management with environment variable support."""

import os
import secrets
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal


def _parse_cors_origins() -> list[str]:
    """Parse CORS_ORIGINS environment variable."""
    origins = os.getenv("CORS_ORIGINS", "http://localhost:8000")
    return [o.strip() for o in origins.split(",") if o.strip()]


def _env_flag(name: str, default: str) -> bool:
    """Read a true/false environment variable."""
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class CORSConfig:
    """CORS configuration."""

    allowed_origins: list[str] = field(default_factory=_parse_cors_origins)
    allow_credentials: bool = True
    allow_methods: list[str] = field(default_factory=lambda: ["*"])
    allow_headers: list[str] = field(default_factory=lambda: ["*"])


@dataclass(frozen=True)
class RateLimitConfig:
    """Rate limiting configuration."""

    enabled: bool = field(default_factory=lambda: _env_flag("RATE_LIMIT_ENABLED", "true"))
    requests_per_minute: int = field(
        default_factory=lambda: int(os.getenv("RATE_LIMIT_RPM", "60"))
    )


@dataclass(frozen=True)
class SecurityConfig:
    """Security configuration."""

    secret_key: str = field(
        default_factory=lambda: os.getenv("SECRET_KEY", secrets.token_urlsafe(32))
    )


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class CardSourceConfig:
    """Where dealt cards come from."""

    kind: Literal["local", "remote"] = field(
        default_factory=lambda: os.getenv("CARD_SOURCE", "local").lower()  # type: ignore
    )
    base_url: str = field(
        default_factory=lambda: os.getenv("CARD_API_URL", "https://qrandom.io/api")
    )
    timeout: float = field(
        default_factory=lambda: float(os.getenv("CARD_API_TIMEOUT", "5.0"))
    )


@dataclass(frozen=True)
class GameConfig:
    """Default game configuration."""

    initial_balance: Decimal = Decimal("1000")
    default_bet: int = 10
    num_decks: int = 1
    dealer_hits_soft_17: bool = field(
        default_factory=lambda: _env_flag("DEALER_HITS_SOFT_17", "true")
    )
    double_on: Literal["any", "9-11", "10-11"] = field(
        default_factory=lambda: os.getenv("DOUBLE_ON", "any")  # type: ignore
    )
    dealer_draw_cap: int = 5


@dataclass(frozen=True)
class AppConfig:
    """Application configuration."""

    debug: bool = field(default_factory=lambda: _env_flag("DEBUG", "false"))
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    session_ttl: int = 3600  # Session timeout in seconds

    game: GameConfig = field(default_factory=GameConfig)
    card_source: CardSourceConfig = field(default_factory=CardSourceConfig)
    cors: CORSConfig = field(default_factory=CORSConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Global configuration instance
config = AppConfig()
