"""
Configuration for Memory Palace.

Handles the data directory, defaults, the JSON config file, and
environment-based overrides. Configuration is loaded from
~/.memory-palace/config.json with sensible defaults.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)

# Default data directory: ~/.memory-palace/
DEFAULT_DATA_DIR = Path.home() / ".memory-palace"
CONFIG_FILE_NAME = "config.json"

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "ollama_url": "http://localhost:11434",
    "llm_model": None,  # Auto-detected from Ollama
    "database_url": None,  # Defaults to sqlite file in the data dir
    "log_level": "INFO",
    "llm_timeout": 60,  # Seconds per completion call
    "extraction_max_chars": 2000,
    "discovery_max_comparisons": None,  # None = compare against every node
    "track_access": True,
}

# Preferred models for auto-detection (in order of preference)
PREFERRED_LLM_MODELS = [
    "qwen3:14b",
    "qwen3:8b",
    "qwen3:4b",
    "llama3.2",
    "llama3.1",
    "mistral",
]

# Module-level config cache
_config_cache: Optional[Dict[str, Any]] = None


def get_data_dir() -> Path:
    """Get the data directory, honouring MEMORY_PALACE_DATA_DIR."""
    return Path(os.environ.get("MEMORY_PALACE_DATA_DIR", DEFAULT_DATA_DIR)).expanduser()


def get_config_path() -> Path:
    """Get the path to the config file."""
    return get_data_dir() / CONFIG_FILE_NAME


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "" or str(value).lower() == "none":
        return None
    return int(value)


def load_config() -> Dict[str, Any]:
    """
    Load configuration from JSON file, with defaults for missing values.

    Environment variables can override config file values:
    - MEMORY_PALACE_DATA_DIR: Override data directory
    - OLLAMA_HOST: Override ollama_url
    - MEMORY_PALACE_LLM_MODEL: Override llm_model
    - MEMORY_PALACE_DATABASE_URL: Override database_url
    - MEMORY_PALACE_LOG_LEVEL: Override log_level
    - MEMORY_PALACE_LLM_TIMEOUT: Override llm_timeout
    - MEMORY_PALACE_DISCOVERY_MAX_COMPARISONS: Override discovery_max_comparisons

    Returns:
        Dict containing configuration values
    """
    global _config_cache

    if _config_cache is not None:
        return _config_cache

    config = DEFAULT_CONFIG.copy()
    config_path = get_config_path()

    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config.update(json.load(f))
        except (json.JSONDecodeError, IOError) as e:
            # Keep going with defaults
            logger.warning("Could not load config from %s: %s", config_path, e)

    if os.environ.get("OLLAMA_HOST"):
        config["ollama_url"] = os.environ["OLLAMA_HOST"]

    if os.environ.get("MEMORY_PALACE_LLM_MODEL"):
        config["llm_model"] = os.environ["MEMORY_PALACE_LLM_MODEL"]

    if os.environ.get("MEMORY_PALACE_DATABASE_URL"):
        config["database_url"] = os.environ["MEMORY_PALACE_DATABASE_URL"]

    if os.environ.get("MEMORY_PALACE_LOG_LEVEL"):
        config["log_level"] = os.environ["MEMORY_PALACE_LOG_LEVEL"]

    if os.environ.get("MEMORY_PALACE_LLM_TIMEOUT"):
        try:
            config["llm_timeout"] = float(os.environ["MEMORY_PALACE_LLM_TIMEOUT"])
        except ValueError as e:
            logger.warning("Ignoring MEMORY_PALACE_LLM_TIMEOUT: %s", e)

    if "MEMORY_PALACE_DISCOVERY_MAX_COMPARISONS" in os.environ:
        try:
            config["discovery_max_comparisons"] = _optional_int(
                os.environ["MEMORY_PALACE_DISCOVERY_MAX_COMPARISONS"]
            )
        except ValueError as e:
            logger.warning("Ignoring MEMORY_PALACE_DISCOVERY_MAX_COMPARISONS: %s", e)

    _config_cache = config
    return config


def save_config(config: Optional[Dict[str, Any]] = None) -> None:
    """
    Save configuration to JSON file.

    Args:
        config: Configuration dict to save. If None, saves current config.
    """
    global _config_cache

    if config is None:
        config = load_config()

    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2)

    _config_cache = config


def clear_config_cache() -> None:
    """Clear the config cache, forcing reload on next access."""
    global _config_cache
    _config_cache = None


def ensure_data_dir() -> Path:
    """Create data directory if it doesn't exist."""
    data_dir = get_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def get_database_url() -> str:
    """Get the SQLAlchemy URL for the durable store."""
    url = load_config().get("database_url")
    if url:
        return url
    return f"sqlite:///{get_data_dir() / 'palace.db'}"


def get_ollama_url() -> str:
    """Get the Ollama base URL from config."""
    return load_config().get("ollama_url", DEFAULT_CONFIG["ollama_url"])


def get_llm_model() -> Optional[str]:
    """Get the configured LLM model, or None for auto-detection."""
    return load_config().get("llm_model")


def get_llm_timeout() -> float:
    return float(load_config().get("llm_timeout") or DEFAULT_CONFIG["llm_timeout"])


def get_log_level() -> str:
    return str(load_config().get("log_level") or DEFAULT_CONFIG["log_level"])


def get_extraction_max_chars() -> int:
    return int(load_config().get("extraction_max_chars") or DEFAULT_CONFIG["extraction_max_chars"])


def get_discovery_max_comparisons() -> Optional[int]:
    """Cap on pairwise comparisons per new node, or None for no cap."""
    return _optional_int(load_config().get("discovery_max_comparisons"))


def get_track_access() -> bool:
    return bool(load_config().get("track_access", DEFAULT_CONFIG["track_access"]))
