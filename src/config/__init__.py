"""Configuration package for the Story Rotation Engine"""

from .settings import Settings, get_settings
from .limits import (
    FREQUENCY_THRESHOLDS,
    CUSTOM_THEME_PREFIX,
    AGE_GROUP_BOUNDS,
    OLDEST_AGE_GROUP,
    CUSTOM_THEME_FALLBACK_LANGUAGES,
    THEME_FALLBACK_LANGUAGES,
    SUBTYPE_FALLBACK_LANGUAGES,
)

__all__ = [
    "Settings",
    "get_settings",
    "FREQUENCY_THRESHOLDS",
    "CUSTOM_THEME_PREFIX",
    "AGE_GROUP_BOUNDS",
    "OLDEST_AGE_GROUP",
    "CUSTOM_THEME_FALLBACK_LANGUAGES",
    "THEME_FALLBACK_LANGUAGES",
    "SUBTYPE_FALLBACK_LANGUAGES",
]
