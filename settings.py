"""
Centralized settings module for the red-flag engine.
Single source of truth for all configuration values.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).parent
DEFAULT_LIBRARY_PATH = BASE_DIR / "data" / "common_traps_library.json"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


class RedFlagSettings:
    """Centralized configuration for the red-flag engine."""

    # Rule Library Configuration
    RULES_LIBRARY_PATH: str = os.getenv("RF_RULES_LIBRARY_PATH", str(DEFAULT_LIBRARY_PATH))
    RULES_RETRY_ON_FAILURE: bool = _env_flag("RF_RULES_RETRY_ON_FAILURE", "true")
    RULES_STRICT: bool = _env_flag("RF_RULES_STRICT", "true")

    # Flag Assembly Configuration
    MAX_FLAGS: int = int(os.getenv("RF_MAX_FLAGS", "20"))
    CONFIDENCE_THRESHOLD: float = float(os.getenv("RF_CONFIDENCE_THRESHOLD", "0.4"))
    MATCH_POLICY: str = os.getenv("RF_MATCH_POLICY", "first")
    MATCH_TIME_BUDGET_SECONDS: float = float(os.getenv("RF_MATCH_TIME_BUDGET_SECONDS", "0.5"))

    # Contract Type Detection Configuration
    # Untuned constants carried over from the first classifier; recalibrate against real documents.
    DOC_TYPE_WINDOW_CHARS: int = int(os.getenv("RF_DOC_TYPE_WINDOW_CHARS", "2000"))
    DOC_TYPE_PRESENCE_BONUS: int = int(os.getenv("RF_DOC_TYPE_PRESENCE_BONUS", "2"))
    DOC_TYPE_MIN_SCORE: int = int(os.getenv("RF_DOC_TYPE_MIN_SCORE", "2"))

    # Logging
    LOG_LEVEL: str = os.getenv("RF_LOG_LEVEL", "ERROR")

    @classmethod
    def get_max_flags(cls, override: int | None = None) -> int:
        """
        Get the flag cap with optional per-request override.

        Args:
            override: Per-request override. If None, uses default setting.

        Returns:
            int: Maximum number of flags to emit
        """
        if override is not None:
            return override
        return cls.MAX_FLAGS

    @classmethod
    def get_library_path(cls) -> Path:
        return Path(cls.RULES_LIBRARY_PATH)


# Create singleton instance
settings = RedFlagSettings()
