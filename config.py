"""Configuration management with environment variable support."""

import logging
import os
import secrets
import sys
from dataclasses import dataclass, field


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _parse_cors_origins() -> list[str]:
    """Parse CORS_ORIGINS environment variable."""
    origins = os.getenv("CORS_ORIGINS", "http://localhost:8000")
    return [o.strip() for o in origins.split(",") if o.strip()]


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
        default_factory=lambda: int(os.getenv("RATE_LIMIT_RPM", "120"))
    )


@dataclass(frozen=True)
class SecurityConfig:
    """Session signing configuration."""

    secret_key: str = field(
        default_factory=lambda: os.getenv("SECRET_KEY", secrets.token_urlsafe(32))
    )


@dataclass(frozen=True)
class RedisConfig:
    """Redis connection for the session store; unreachable Redis falls back to memory."""

    enabled: bool = field(default_factory=lambda: _env_flag("REDIS_ENABLED", "true"))
    host: str = field(default_factory=lambda: os.getenv("REDIS_HOST", "localhost"))
    port: int = field(default_factory=lambda: int(os.getenv("REDIS_PORT", "6379")))
    db: int = field(default_factory=lambda: int(os.getenv("REDIS_DB", "0")))
    password: str | None = field(default_factory=lambda: os.getenv("REDIS_PASSWORD"))
    key_prefix: str = "virtualdeck:session:"

    @property
    def url(self) -> str:
        """Build Redis connection URL."""
        auth = f":{self.password}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"


@dataclass(frozen=True)
class TableConfig:
    """Defaults for new pass-and-play tables."""

    deck_preset: str = field(default_factory=lambda: os.getenv("DEFAULT_DECK_PRESET", "standard"))
    freedom_mode: bool = field(default_factory=lambda: _env_flag("FREEDOM_MODE", "false"))
    min_players: int = 1
    max_players: int = 8


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    datefmt: str = "%H:%M:%S"


@dataclass(frozen=True)
class AppConfig:
    """Application configuration."""

    debug: bool = field(default_factory=lambda: _env_flag("DEBUG", "false"))
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    session_ttl: int = 3600  # Session timeout in seconds
    preferences_path: str = field(
        default_factory=lambda: os.getenv(
            "PREFERENCES_PATH", os.path.expanduser("~/.virtual_deck_preferences.json")
        )
    )

    redis: RedisConfig = field(default_factory=RedisConfig)
    table: TableConfig = field(default_factory=TableConfig)
    cors: CORSConfig = field(default_factory=CORSConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def setup_logging(settings: LoggingConfig | None = None) -> None:
    """Configure root logging once at program start."""
    settings = settings or config.logging
    logging.basicConfig(
        level=getattr(logging, settings.level, logging.INFO),
        format=settings.format,
        datefmt=settings.datefmt,
        stream=sys.stdout,
    )


# Global configuration instance
config = AppConfig()
