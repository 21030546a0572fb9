"""Hiring Notifier — Configuration Loader.

Loads and validates application configuration from a YAML file.
Resolves environment variables referenced via ${VAR_NAME} syntax.
Uses Python dataclasses for type-safe configuration access.

When the settings file does not exist a default one is written first,
so a fresh checkout only needs its secrets filled into .env.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from hiring_notifier.utils.logger import get_logger

logger = get_logger(__name__)

# ── Path Constants ────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
SETTINGS_PATH = CONFIG_DIR / "settings.yaml"

# ── Environment Variable Pattern ─────────────────────────
ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)}")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/14.1.1 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/92.0.4515.107 Safari/537.36",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 14_6 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/14.1.1 Mobile/15E148 Safari/604.1",
]

DEFAULT_SETTINGS: dict[str, Any] = {
    "jobs_api": {
        "api_url": "https://e5mquma77feepi2.amazonaws.com/graphql",
        "api_token": "${JOBS_API_TOKEN}",
        "country": "Canada",
        "locale": "en-US",
        "page_size": 100,
        "timeout_seconds": 30,
        "user_agents": DEFAULT_USER_AGENTS,
    },
    "telegram": {
        "bot_token": "${TELEGRAM_BOT_TOKEN}",
        "chat_id": "${TELEGRAM_CHAT_ID}",
    },
    "persistence": {
        "seen_jobs_file": "seen_jobs.txt",
        "persist_interval_seconds": 300,
    },
    "rate_limiting": {
        "requests_per_second": 2,
        "delay_between_requests_ms": 300,
        "retry_base_ms": 500,
        "retry_max_delay_ms": 10_000,
        "max_retries": 5,
    },
    "notifications": {
        "queue_capacity": 100,
    },
    "logging": {
        "level": "INFO",
    },
}


# ═══════════════════════════════════════════════════════════
# Configuration Dataclasses
# ═══════════════════════════════════════════════════════════


@dataclass(frozen=True)
class JobsApiConfig:
    """Configuration for the Jobs API client."""

    api_url: str
    api_token: str
    country: str
    locale: str
    page_size: int
    timeout_seconds: float
    user_agents: list[str]


@dataclass(frozen=True)
class TelegramConfig:
    """Configuration for Telegram notifications."""

    bot_token: str
    chat_id: str


@dataclass(frozen=True)
class PersistenceConfig:
    """Where and how often the seen-jobs set is written to disk."""

    seen_jobs_file: str
    persist_interval_seconds: float


@dataclass(frozen=True)
class RateLimitingConfig:
    """Request fan-out and retry tuning."""

    requests_per_second: int
    delay_between_requests_ms: int
    retry_base_ms: int
    retry_max_delay_ms: int
    max_retries: int


@dataclass(frozen=True)
class NotificationConfig:
    """Notification queue tuning."""

    queue_capacity: int = 100


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration container."""

    jobs_api: JobsApiConfig
    telegram: TelegramConfig
    persistence: PersistenceConfig
    rate_limiting: RateLimitingConfig
    notifications: NotificationConfig
    log_level: str


# ═══════════════════════════════════════════════════════════
# YAML Loading & Environment Variable Resolution
# ═══════════════════════════════════════════════════════════


def _resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ${VAR_NAME} references in YAML values.

    Args:
        value: A string, dict, list, or primitive from parsed YAML.

    Returns:
        The same structure with all ${VAR_NAME} placeholders replaced
        by their environment variable values.

    Raises:
        ValueError: If a referenced environment variable is not set.
    """
    if isinstance(value, str):
        for var_name in ENV_VAR_PATTERN.findall(value):
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(
                    f"Environment variable '${{{var_name}}}' is required but not set. "
                    f"Add it to your .env file or export it in your shell."
                )
            value = value.replace(f"${{{var_name}}}", env_value)
        return value
    elif isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


def write_default_settings(path: Path) -> None:
    """Write DEFAULT_SETTINGS to `path`, creating parent directories.

    Args:
        path: Destination settings file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(DEFAULT_SETTINGS, f, sort_keys=False, allow_unicode=True)
    logger.warning(
        "Created default config file at %s. Please update it with your settings.",
        path,
    )


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a YAML file with UTF-8 encoding.

    Args:
        path: Absolute or relative path to the YAML file.

    Returns:
        Parsed YAML content as a dictionary.

    Raises:
        FileNotFoundError: If the YAML file does not exist.
        ValueError: If the file is empty or not a mapping.
        yaml.YAMLError: If the file contains invalid YAML.
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        raise ValueError(f"Configuration file is empty: {path}")
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")

    logger.debug("Loaded configuration from %s", path)
    return data


# ═══════════════════════════════════════════════════════════
# Dataclass Builders
# ═══════════════════════════════════════════════════════════


def _build_jobs_api_config(data: dict[str, Any]) -> JobsApiConfig:
    """Build a JobsApiConfig from the 'jobs_api' section."""
    _validate_keys(data, ["api_url", "api_token", "country", "locale"], "jobs_api")

    user_agents = data.get("user_agents") or DEFAULT_USER_AGENTS
    if not isinstance(user_agents, list) or not all(isinstance(ua, str) for ua in user_agents):
        raise ValueError("'jobs_api.user_agents' must be a list of strings")

    api_token = str(data["api_token"] or "").strip()
    _require(bool(api_token), "jobs_api.api_token must not be empty")

    page_size = int(data.get("page_size", 100))
    _require(page_size >= 1, "jobs_api.page_size must be >= 1")
    timeout = float(data.get("timeout_seconds", 30))
    _require(timeout > 0, "jobs_api.timeout_seconds must be > 0")

    return JobsApiConfig(
        api_url=data["api_url"],
        api_token=api_token,
        country=data["country"],
        locale=data["locale"],
        page_size=page_size,
        timeout_seconds=timeout,
        user_agents=list(user_agents),
    )


def _build_telegram_config(data: dict[str, Any]) -> TelegramConfig:
    """Build a TelegramConfig from the 'telegram' section."""
    _validate_keys(data, ["bot_token", "chat_id"], "telegram")

    bot_token = str(data["bot_token"] or "").strip()
    chat_id = str(data["chat_id"] or "").strip()
    _require(bool(bot_token), "telegram.bot_token must not be empty")
    _require(bool(chat_id), "telegram.chat_id must not be empty")

    return TelegramConfig(bot_token=bot_token, chat_id=chat_id)


def _build_persistence_config(data: dict[str, Any]) -> PersistenceConfig:
    """Build a PersistenceConfig from the 'persistence' section."""
    _validate_keys(data, ["seen_jobs_file", "persist_interval_seconds"], "persistence")

    interval = float(data["persist_interval_seconds"])
    _require(interval >= 1, "persistence.persist_interval_seconds must be >= 1")

    return PersistenceConfig(
        seen_jobs_file=str(data["seen_jobs_file"]),
        persist_interval_seconds=interval,
    )


def _build_rate_limiting_config(data: dict[str, Any]) -> RateLimitingConfig:
    """Build a RateLimitingConfig from the 'rate_limiting' section.

    Raises:
        ValueError: If a value is negative or the retry bounds are inverted.
    """
    required_keys = [
        "requests_per_second", "delay_between_requests_ms",
        "retry_base_ms", "retry_max_delay_ms", "max_retries",
    ]
    _validate_keys(data, required_keys, "rate_limiting")

    values = {key: int(data[key]) for key in required_keys}
    for key, value in values.items():
        _require(value >= 0, f"rate_limiting.{key} must be >= 0, got {value}")
    _require(
        values["retry_base_ms"] <= values["retry_max_delay_ms"],
        "rate_limiting.retry_base_ms must not exceed retry_max_delay_ms",
    )

    return RateLimitingConfig(**values)


def _build_notification_config(data: dict[str, Any]) -> NotificationConfig:
    """Build a NotificationConfig from the optional 'notifications' section."""
    capacity = int(data.get("queue_capacity", 100))
    _require(capacity >= 1, "notifications.queue_capacity must be >= 1")
    return NotificationConfig(queue_capacity=capacity)


def _validate_keys(data: dict[str, Any], required: list[str], section: str) -> None:
    """Validate that all required keys exist in a config section.

    Args:
        data: The configuration dictionary to validate.
        required: List of required key names.
        section: Human-readable section name for error messages.

    Raises:
        ValueError: If any required key is missing.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Configuration section '{section}' must be a mapping")
    missing = [key for key in required if key not in data]
    if missing:
        raise ValueError(
            f"Missing required configuration keys in '{section}': {', '.join(missing)}"
        )


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ValueError(f"Invalid configuration: {message}")


# ═══════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════


def load_config(
    settings_path: Path | None = None,
    env_path: Path | None = None,
) -> AppConfig:
    """Load the complete application configuration.

    Loads settings.yaml (writing the defaults first if it is missing),
    resolves environment variables, validates all required fields, and
    returns a typed AppConfig instance.

    Args:
        settings_path: Override path to settings.yaml. Defaults to config/settings.yaml.
        env_path: Override path to .env file. Defaults to project root .env.

    Returns:
        A fully validated AppConfig instance.

    Raises:
        ValueError: If required fields are missing, invalid, or env vars are unset.
        yaml.YAMLError: If the settings file is not valid YAML.
    """
    env_file = env_path or (PROJECT_ROOT / ".env")
    load_dotenv(env_file)
    logger.debug("Loaded environment from %s", env_file)

    settings_file = Path(settings_path or SETTINGS_PATH)
    if not settings_file.exists():
        write_default_settings(settings_file)

    settings = _resolve_env_vars(_load_yaml(settings_file))

    _validate_keys(
        settings,
        ["jobs_api", "telegram", "persistence", "rate_limiting"],
        "settings",
    )

    log_level = str((settings.get("logging") or {}).get("level", "INFO")).upper()
    _require(log_level in LOG_LEVELS, f"logging.level must be one of {', '.join(LOG_LEVELS)}")

    config = AppConfig(
        jobs_api=_build_jobs_api_config(settings["jobs_api"]),
        telegram=_build_telegram_config(settings["telegram"]),
        persistence=_build_persistence_config(settings["persistence"]),
        rate_limiting=_build_rate_limiting_config(settings["rate_limiting"]),
        notifications=_build_notification_config(settings.get("notifications") or {}),
        log_level=log_level,
    )

    logger.info("Configuration loaded successfully")
    logger.debug("Jobs API: %s (%s)", config.jobs_api.api_url, config.jobs_api.country)
    logger.debug(
        "Rate limiting: %d req/s, %d ms apart, %d retries",
        config.rate_limiting.requests_per_second,
        config.rate_limiting.delay_between_requests_ms,
        config.rate_limiting.max_retries,
    )

    return config
