"""
Configuration management for PR Scorecard.

Loads settings from:
1. Explicit setters (CLI flags)
2. Environment variables (and a local .env file)
3. .pr-scorecard.toml (local config)
4. pyproject.toml (project-level config)
"""

import os
import tomllib
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Config files are looked up relative to the working directory
PROJECT_ROOT = Path.cwd()

CONFIG_FILE_NAME = ".pr-scorecard.toml"
CONFIG_SECTION = "pr-scorecard"

# Global configuration for SSL verification
VERIFY_SSL = True

# Suppress console diagnostics (set by --quiet or PR_SCORECARD_QUIET)
QUIET = False

# Cache configuration
# Default cache directory: ~/.cache/pr-scorecard
DEFAULT_CACHE_DIR = Path.home() / ".cache" / "pr-scorecard"
# Default TTL: 24 hours (in seconds)
DEFAULT_CACHE_TTL = 24 * 60 * 60
# A completed run writes its checkpoint with this TTL so that it expires
# almost immediately; set a larger value to remember completed runs.
DEFAULT_CHECKPOINT_TTL = 1

# GitHub allows 5000 requests per hour
DEFAULT_REQUESTS_PER_MINUTE = 5000 // 60

_CACHE_DIR: Path | None = None
_CACHE_TTL: int | None = None
_CHECKPOINT_TTL: int | None = None
_REQUESTS_PER_MINUTE: int | None = None


def load_config_file(config_path: Path) -> dict:
    """Load a TOML configuration file."""
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        raise ValueError(f"Failed to load config from {config_path}: {e}") from e


def get_tool_config() -> dict[str, Any]:
    """
    Return the ``[tool.pr-scorecard]`` table.

    Priority:
    1. .pr-scorecard.toml (local config, highest priority)
    2. pyproject.toml (project-level config, fallback)
    """
    for path in (PROJECT_ROOT / CONFIG_FILE_NAME, PROJECT_ROOT / "pyproject.toml"):
        config = load_config_file(path)
        section = config.get("tool", {}).get(CONFIG_SECTION)
        if section:
            return section
    return {}


def _env_int(name: str) -> int | None:
    value = os.getenv(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def get_github_token() -> str | None:
    """Return the GitHub token from GH_TOKEN or GITHUB_TOKEN."""
    return os.getenv("GH_TOKEN") or os.getenv("GITHUB_TOKEN")


def get_app_credentials() -> tuple[str, str] | None:
    """
    Return GitHub App credentials (app id, private key) if both are set.

    GH_APP_PK may hold the PEM text itself or a path to a PEM file.
    """
    app_id = os.getenv("GH_APP_ID")
    private_key = os.getenv("GH_APP_PK")
    if not app_id or not private_key:
        return None
    key_path = Path(private_key).expanduser()
    if "BEGIN" not in private_key and key_path.is_file():
        private_key = key_path.read_text(encoding="utf-8")
    return app_id, private_key


def set_verify_ssl(verify: bool) -> None:
    """Set the SSL verification setting globally."""
    global VERIFY_SSL
    VERIFY_SSL = verify


def get_verify_ssl() -> bool:
    """Get the current SSL verification setting."""
    return VERIFY_SSL


def set_quiet(quiet: bool) -> None:
    """Enable or disable console diagnostics."""
    global QUIET
    QUIET = quiet


def is_quiet() -> bool:
    """Return True when console diagnostics are suppressed."""
    if QUIET:
        return True
    return os.getenv("PR_SCORECARD_QUIET", "").lower() in ("1", "true", "yes")


def get_cache_dir() -> Path:
    """
    Get the cache directory path.

    Priority:
    1. Explicitly set value via set_cache_dir()
    2. PR_SCORECARD_CACHE_DIR environment variable
    3. [tool.pr-scorecard.cache] directory
    4. Default: ~/.cache/pr-scorecard

    Returns:
        Path to the cache directory.
    """
    if _CACHE_DIR is not None:
        return _CACHE_DIR

    env_cache_dir = os.getenv("PR_SCORECARD_CACHE_DIR")
    if env_cache_dir:
        return Path(env_cache_dir).expanduser()

    cache_config = get_tool_config().get("cache", {})
    if "directory" in cache_config:
        return Path(cache_config["directory"]).expanduser()

    return DEFAULT_CACHE_DIR


def set_cache_dir(path: Path | str) -> None:
    """Set the cache directory path explicitly."""
    global _CACHE_DIR
    _CACHE_DIR = Path(path).expanduser()


def get_cache_ttl() -> int:
    """
    Get the cache TTL (Time To Live) in seconds.

    Priority:
    1. Explicitly set value via set_cache_ttl()
    2. PR_SCORECARD_CACHE_TTL environment variable
    3. [tool.pr-scorecard.cache] ttl_seconds
    4. Default: 86400 (24 hours)
    """
    if _CACHE_TTL is not None:
        return _CACHE_TTL

    env_ttl = _env_int("PR_SCORECARD_CACHE_TTL")
    if env_ttl is not None:
        return env_ttl

    cache_config = get_tool_config().get("cache", {})
    if "ttl_seconds" in cache_config:
        return int(cache_config["ttl_seconds"])

    return DEFAULT_CACHE_TTL


def set_cache_ttl(seconds: int) -> None:
    """Set the cache TTL explicitly."""
    global _CACHE_TTL
    _CACHE_TTL = seconds


def get_checkpoint_ttl() -> int:
    """
    Get the TTL, in seconds, of the checkpoint written after a completed run.

    Priority:
    1. Explicitly set value via set_checkpoint_ttl()
    2. PR_SCORECARD_CHECKPOINT_TTL environment variable
    3. [tool.pr-scorecard.cache] checkpoint_ttl_seconds
    4. Default: 1 second
    """
    if _CHECKPOINT_TTL is not None:
        return _CHECKPOINT_TTL

    env_ttl = _env_int("PR_SCORECARD_CHECKPOINT_TTL")
    if env_ttl is not None:
        return env_ttl

    cache_config = get_tool_config().get("cache", {})
    if "checkpoint_ttl_seconds" in cache_config:
        return int(cache_config["checkpoint_ttl_seconds"])

    return DEFAULT_CHECKPOINT_TTL


def set_checkpoint_ttl(seconds: int) -> None:
    """Set the completed-run checkpoint TTL explicitly."""
    global _CHECKPOINT_TTL
    _CHECKPOINT_TTL = seconds


def get_requests_per_minute() -> int:
    """
    Get the outbound query budget per minute.

    Priority:
    1. Explicitly set value via set_requests_per_minute()
    2. PR_SCORECARD_REQUESTS_PER_MINUTE environment variable
    3. [tool.pr-scorecard] requests_per_minute
    4. Default: 83 (5000 per hour)
    """
    if _REQUESTS_PER_MINUTE is not None:
        return _REQUESTS_PER_MINUTE

    env_rpm = _env_int("PR_SCORECARD_REQUESTS_PER_MINUTE")
    if env_rpm is not None:
        return env_rpm

    config = get_tool_config()
    if "requests_per_minute" in config:
        return int(config["requests_per_minute"])

    return DEFAULT_REQUESTS_PER_MINUTE


def set_requests_per_minute(value: int) -> None:
    """Set the outbound query budget explicitly."""
    global _REQUESTS_PER_MINUTE
    _REQUESTS_PER_MINUTE = value


def get_score_ranges() -> dict[str, dict[str, float]]:
    """
    Load metric ranges from ``[tool.pr-scorecard.ranges]``.

    Each entry is a table with ``min`` and ``max``.

    Raises:
        ValueError: If an entry is not a table with numeric min and max.
    """
    ranges = get_tool_config().get("ranges", {})
    validated: dict[str, dict[str, float]] = {}
    for key, value in ranges.items():
        if not isinstance(value, dict) or not {"min", "max"} <= value.keys():
            raise ValueError(
                f"Range '{key}' should be a table with min and max values."
            )
        validated[key] = {"min": float(value["min"]), "max": float(value["max"])}
    return validated


def get_score_weights() -> dict[str, float]:
    """
    Load metric weights from ``[tool.pr-scorecard.weights]``.

    Raises:
        ValueError: If a weight is negative or not a number.
    """
    weights = get_tool_config().get("weights", {})
    invalid = {
        key: value
        for key, value in weights.items()
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0
    }
    if invalid:
        invalid_list = ", ".join(f"{key}={value}" for key, value in invalid.items())
        raise ValueError(
            f"Weights must be non-negative numbers. Invalid values: {invalid_list}."
        )
    return {key: float(value) for key, value in weights.items()}
