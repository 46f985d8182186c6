"""
settings.py
===========
Launcher configuration loaded from config.json.

Layout:

    {
      "jvm":     {"java_home": null, "probe_timeout": 30, "locale": "en"},
      "logging": {"level": "INFO", "dir": "logs"}
    }

Every key is optional; missing or invalid values fall back to defaults.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from jvm import PROBE_TIMEOUT
from launcher_messages import DEFAULT_LOCALE

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Settings:
    """Resolved launcher settings."""

    java_home: Optional[str] = None
    probe_timeout: float = PROBE_TIMEOUT
    locale: str = DEFAULT_LOCALE
    log_level: str = "INFO"
    log_dir: str = "logs"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jvm": {
                "java_home": self.java_home,
                "probe_timeout": self.probe_timeout,
                "locale": self.locale,
            },
            "logging": {
                "level": self.log_level,
                "dir": self.log_dir,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        jvm_cfg = data.get("jvm") or {}
        log_cfg = data.get("logging") or {}
        settings = cls()

        java_home = jvm_cfg.get("java_home")
        if java_home:
            settings.java_home = str(java_home)

        timeout = jvm_cfg.get("probe_timeout", PROBE_TIMEOUT)
        try:
            timeout = float(timeout)
            if timeout <= 0:
                raise ValueError(timeout)
            settings.probe_timeout = timeout
        except (TypeError, ValueError):
            logger.warning("Invalid probe_timeout %r, using %ss", timeout, PROBE_TIMEOUT)

        locale = jvm_cfg.get("locale")
        if locale:
            settings.locale = str(locale)

        level = str(log_cfg.get("level", "INFO")).upper()
        if level in _LOG_LEVELS:
            settings.log_level = level
        else:
            logger.warning("Unknown log level %r, using INFO", level)

        if log_cfg.get("dir"):
            settings.log_dir = str(log_cfg["dir"])

        return settings


def load_settings(config_path: str | Path = "config.json") -> Settings:
    """Load settings from *config_path*; defaults when missing or corrupt."""
    path = Path(config_path)
    if not path.exists():
        logger.info("Config file not found, using defaults")
        return Settings()
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        logger.debug("Config loaded from %s", path)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to load config: %s", exc)
        return Settings()
    if not isinstance(data, dict):
        logger.error("Config root must be an object: %s", path)
        return Settings()
    return Settings.from_dict(data)
