"""
launcher_messages.py
====================
Error kinds and the localized message catalog used by the launcher.

Validation failures are raised as ``LauncherError`` subclasses whose text is
looked up in the active locale's catalog:

    pathDoesNotExist    – the Java home does not exist
    invalidDirectory    – the Java home is not a directory
    invalidJavaHomeBin  – the Java home has no ``bin/<exe>``

Locale lookup order:  exact match → language prefix → English.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en"

# ──────────────────────────────────────────────
#  Catalogs
# ──────────────────────────────────────────────

_CATALOGS: Dict[str, Dict[str, str]] = {
    "en": {
        "pathDoesNotExist": "The path '{path}' does not exist.",
        "invalidDirectory": "The path '{path}' is not a valid directory.",
        "invalidJavaHomeBin": (
            "Could not find the '{fragment}' file in the Java home directory '{path}'."
        ),
    },
    "zh-CN": {
        "pathDoesNotExist": "路径 '{path}' 不存在。",
        "invalidDirectory": "路径 '{path}' 不是有效的目录。",
        "invalidJavaHomeBin": "在 Java 主目录 '{path}' 中找不到 '{fragment}' 文件。",
    },
}


def available_locales() -> List[str]:
    """Return the locales that ship a catalog."""
    return sorted(_CATALOGS)


def resolve_locale(locale: Optional[str]) -> str:
    """
    Map a requested locale onto a shipped catalog.

    ``zh_CN`` and ``zh`` both resolve to ``zh-CN``; anything unknown
    resolves to English.
    """
    if not locale:
        return DEFAULT_LOCALE
    normalized = locale.replace("_", "-").split(".")[0]
    for known in _CATALOGS:
        if known.lower() == normalized.lower():
            return known
    language = normalized.split("-")[0].lower()
    for known in _CATALOGS:
        if known.split("-")[0].lower() == language:
            return known
    logger.debug("No catalog for locale %r, using %s", locale, DEFAULT_LOCALE)
    return DEFAULT_LOCALE


# ──────────────────────────────────────────────
#  Errors
# ──────────────────────────────────────────────

class LauncherError(Exception):
    """Base class for launcher validation errors."""

    kind = "launcherError"

    def __init__(self, message: str, path: Optional[str | Path] = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path


class PathNotFoundError(LauncherError):
    """The supplied Java home does not exist."""

    kind = "pathDoesNotExist"


class InvalidDirectoryError(LauncherError):
    """The supplied Java home is not a directory, or lacks ``bin/<exe>``."""

    kind = "invalidDirectory"

    def __init__(
        self,
        message: str,
        path: Optional[str | Path] = None,
        fragment: Optional[str] = None,
    ) -> None:
        super().__init__(message, path)
        self.fragment = fragment


# ──────────────────────────────────────────────
#  Message factory
# ──────────────────────────────────────────────

class LauncherMessages:
    """
    Builds localized launcher errors.

    Args:
        locale: Requested locale (e.g. "en", "zh-CN", "zh_CN.UTF-8")
    """

    def __init__(self, locale: Optional[str] = None) -> None:
        self.locale = resolve_locale(locale)

    def format(self, key: str, **values: Any) -> str:
        """Format the template for *key* in this locale, falling back to English."""
        catalog = _CATALOGS[self.locale]
        template = catalog.get(key) or _CATALOGS[DEFAULT_LOCALE][key]
        return template.format(**values)

    def path_does_not_exist(self, path: Optional[str | Path]) -> PathNotFoundError:
        return PathNotFoundError(self.format("pathDoesNotExist", path=path), path)

    def invalid_directory(self, path: str | Path) -> InvalidDirectoryError:
        return InvalidDirectoryError(self.format("invalidDirectory", path=path), path)

    def invalid_java_home_bin(self, fragment: str, path: str | Path) -> InvalidDirectoryError:
        return InvalidDirectoryError(
            self.format("invalidJavaHomeBin", fragment=fragment, path=path),
            path,
            fragment=fragment,
        )


MESSAGES = LauncherMessages(os.environ.get("LAUNCHER_LOCALE"))


def set_locale(locale: Optional[str]) -> LauncherMessages:
    """Switch the module-level catalog used for new errors."""
    global MESSAGES
    MESSAGES = LauncherMessages(locale)
    logger.debug("Launcher messages locale set to %s", MESSAGES.locale)
    return MESSAGES
