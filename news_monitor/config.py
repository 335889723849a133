from __future__ import annotations

from dataclasses import dataclass, field
import os
import re
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError
from .keywords import parse_keywords

DEFAULT_KEYWORDS = "pemerintah,prabowo"
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; PemerintahBot/1.0)"
DEFAULT_SOURCES = ["cnn_indonesia", "detik", "bbc_indonesia", "kompas"]
LOG_LEVELS = ("debug", "info", "warn", "warning", "error")

_WEBHOOK_RE = re.compile(r"^https://(?:discord|discordapp)\.com/api/webhooks/\d+/[\w-]+$")
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(slots=True)
class MonitorConfig:
    """Runtime configuration for the news monitor."""

    webhook_url: str
    keywords: List[str] = field(default_factory=lambda: parse_keywords(DEFAULT_KEYWORDS))
    check_interval_minutes: int = 5
    max_articles_per_check: int = 10
    log_level: str = "info"
    log_file: Optional[str] = "./logs/app.log"
    database_path: str = "./data/news.db"
    rate_limit_rpm: int = 30
    user_agent: str = DEFAULT_USER_AGENT
    sources: List[str] = field(default_factory=lambda: list(DEFAULT_SOURCES))
    retention_days: int = 30
    cleanup_cron: str = "0 2 * * *"
    status_interval_minutes: int = 60
    fetch_metadata: bool = True
    source_delay_seconds: float = 2.0
    notify_batch_size: int = 5
    batch_delay_seconds: float = 2.5
    shutdown_grace_seconds: float = 30.0
    timezone: str = "Asia/Jakarta"
    port: Optional[int] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MonitorConfig":
        if environ is None:
            # Values already present in the environment win over the .env file.
            load_dotenv()
            environ = os.environ

        webhook_url = _require(environ, "DISCORD_WEBHOOK_URL")
        if not _WEBHOOK_RE.match(webhook_url):
            raise ConfigurationError("DISCORD_WEBHOOK_URL is not a valid Discord webhook URL")

        keywords = parse_keywords(environ.get("KEYWORDS", DEFAULT_KEYWORDS))
        if not keywords:
            raise ConfigurationError("KEYWORDS must contain at least one keyword")

        log_level = environ.get("LOG_LEVEL", "info").strip().lower()
        if log_level not in LOG_LEVELS:
            raise ConfigurationError(f"LOG_LEVEL must be one of: {', '.join(LOG_LEVELS)}")

        sources = [name.lower() for name in _split_csv(environ.get("NEWS_SOURCES"))] or list(DEFAULT_SOURCES)
        unknown = [name for name in sources if name not in DEFAULT_SOURCES]
        if unknown:
            raise ConfigurationError(f"NEWS_SOURCES contains unknown sources: {', '.join(unknown)}")

        port_value = (environ.get("PORT") or "").strip()
        if port_value and not port_value.isdigit():
            raise ConfigurationError(f"PORT must be a port number, got {port_value!r}")

        return cls(
            webhook_url=webhook_url,
            keywords=keywords,
            check_interval_minutes=_parse_int(environ, "CHECK_INTERVAL_MINUTES", 5),
            max_articles_per_check=_parse_int(environ, "MAX_ARTICLES_PER_CHECK", 10),
            log_level=log_level,
            log_file=environ.get("LOG_FILE", "./logs/app.log").strip() or None,
            database_path=environ.get("DATABASE_PATH", "./data/news.db").strip() or "./data/news.db",
            rate_limit_rpm=_parse_int(environ, "RATE_LIMIT_RPM", 30),
            user_agent=environ.get("USER_AGENT", DEFAULT_USER_AGENT).strip() or DEFAULT_USER_AGENT,
            sources=sources,
            retention_days=_parse_int(environ, "RETENTION_DAYS", 30),
            cleanup_cron=environ.get("CLEANUP_CRON", "0 2 * * *").strip() or "0 2 * * *",
            status_interval_minutes=_parse_int(environ, "STATUS_INTERVAL_MINUTES", 60),
            fetch_metadata=_parse_bool(environ, "FETCH_METADATA", True),
            source_delay_seconds=_parse_float(environ, "SOURCE_DELAY_SECONDS", 2.0),
            notify_batch_size=_parse_int(environ, "NOTIFY_BATCH_SIZE", 5),
            batch_delay_seconds=_parse_float(environ, "BATCH_DELAY_SECONDS", 2.5),
            shutdown_grace_seconds=_parse_float(environ, "SHUTDOWN_GRACE_SECONDS", 30.0),
            timezone=environ.get("TIMEZONE", "Asia/Jakarta").strip() or "Asia/Jakarta",
            port=int(port_value) if port_value.isdigit() else None,
        )


def _require(environ: Mapping[str, str], key: str) -> str:
    value = (environ.get(key) or "").strip()
    if not value:
        raise ConfigurationError(f"Required environment variable {key} is not set")
    return value


def _parse_int(environ: Mapping[str, str], key: str, default: int) -> int:
    value = environ.get(key)
    if value is None or value.strip() == "":
        return default
    try:
        parsed = int(value)
    except ValueError:
        raise ConfigurationError(f"{key} must be a valid number, got {value!r}") from None
    if parsed <= 0:
        raise ConfigurationError(f"{key} must be a positive integer, got {parsed}")
    return parsed


def _parse_float(environ: Mapping[str, str], key: str, default: float) -> float:
    value = environ.get(key)
    if value is None or value.strip() == "":
        return default
    try:
        parsed = float(value)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {value!r}") from None
    if parsed < 0:
        raise ConfigurationError(f"{key} must not be negative, got {parsed}")
    return parsed


def _parse_bool(environ: Mapping[str, str], key: str, default: bool) -> bool:
    value = environ.get(key)
    if value is None or value.strip() == "":
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigurationError(f"{key} must be a boolean (true/false), got {value!r}")
