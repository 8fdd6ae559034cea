"""Configuration management for Taskpilot."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

TASKPILOT_HOME = Path(os.environ.get("TASKPILOT_HOME", Path.home() / "taskpilot"))
CONFIG_FILE = TASKPILOT_HOME / "config" / "taskpilot.conf"
DATA_DIR = TASKPILOT_HOME / "data"

AI_BACKENDS = ("claude_cli", "openrouter", "none")


class ConfigError(ValueError):
    """Raised when configuration values cannot be used."""

    pass


@dataclass
class Config:
    """Taskpilot configuration."""

    user_id: str = "me"
    data_dir: str = ""
    # AI scoring
    ai_backend: str = "claude_cli"
    ai_model: str = ""
    ai_timeout: int = 120
    ai_max_attempts: int = 2
    ai_base_delay: float = 1.0
    ai_max_delay: float = 10.0
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    # Detection thresholds
    min_pattern_occurrences: int = 3
    pattern_confidence_threshold: float = 0.6
    critical_high_complexity: int = 4
    # Pattern analysis worker
    worker_interval_hours: int = 4
    worker_max_users: int = 100
    worker_min_items: int = 3
    worker_notify_high_impact: bool = True

    @property
    def data_path(self) -> Path:
        if self.data_dir:
            return Path(self.data_dir).expanduser()
        return DATA_DIR

    @property
    def resolved_openrouter_key(self) -> str:
        return self.openrouter_api_key or os.environ.get("OPENROUTER_API_KEY", "")


def _strip_value(value: str) -> str:
    # Handle quoted values with inline comments: "value" # comment
    if value.startswith('"') or value.startswith("'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        return value[1:end_quote] if end_quote != -1 else value[1:]
    # Unquoted: strip inline comments
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def _as_int(key: str, value: str, default: int) -> int:
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {key.upper()}: {value!r}, using {default}")
        return default


def _as_float(key: str, value: str, default: float) -> float:
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Invalid number for {key.upper()}: {value!r}, using {default}")
        return default


def _as_bool(value: str) -> bool:
    return value.lower() in ("1", "true", "yes", "on")


def parse_config(text: str) -> Config:
    """Parse KEY = value lines into a Config."""
    config = Config()

    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _strip_value(value.strip())

        match key:
            case "user_id":
                config.user_id = value
            case "data_dir":
                config.data_dir = value
            case "ai_backend":
                if value.lower() in AI_BACKENDS:
                    config.ai_backend = value.lower()
                else:
                    logger.warning(f"Unknown AI_BACKEND {value!r}, expected one of {AI_BACKENDS}")
                    config.ai_backend = value.lower()
            case "ai_model":
                config.ai_model = value
            case "ai_timeout":
                config.ai_timeout = _as_int(key, value, config.ai_timeout)
            case "ai_max_attempts":
                config.ai_max_attempts = max(1, _as_int(key, value, config.ai_max_attempts))
            case "ai_base_delay":
                config.ai_base_delay = _as_float(key, value, config.ai_base_delay)
            case "ai_max_delay":
                config.ai_max_delay = _as_float(key, value, config.ai_max_delay)
            case "openrouter_api_key":
                config.openrouter_api_key = value
            case "openrouter_base_url":
                config.openrouter_base_url = value.rstrip("/")
            case "min_pattern_occurrences":
                config.min_pattern_occurrences = _as_int(key, value, config.min_pattern_occurrences)
            case "pattern_confidence_threshold":
                config.pattern_confidence_threshold = _as_float(key, value, config.pattern_confidence_threshold)
            case "critical_high_complexity":
                config.critical_high_complexity = _as_int(key, value, config.critical_high_complexity)
            case "worker_interval_hours":
                config.worker_interval_hours = max(1, _as_int(key, value, config.worker_interval_hours))
            case "worker_max_users":
                config.worker_max_users = _as_int(key, value, config.worker_max_users)
            case "worker_min_items":
                config.worker_min_items = _as_int(key, value, config.worker_min_items)
            case "worker_notify_high_impact":
                config.worker_notify_high_impact = _as_bool(value)
            case _:
                logger.debug(f"Ignoring unknown config key {key.upper()}")

    return config


def load_config(path: Path | None = None) -> Config:
    """Load configuration from taskpilot.conf file."""
    path = path or CONFIG_FILE
    if not path.exists():
        return Config()
    return parse_config(path.read_text())
