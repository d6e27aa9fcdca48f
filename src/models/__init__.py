"""
Models package - Pydantic data models for the Story Rotation Engine

Re-exports all models for cleaner imports:
    from src.models import LearningConfig, SubtypeCatalogEntry, RotationPlan
"""

from src.models.rotation import (
    # Enums
    LearningFrequency,
    ThemeCategory,
    AgeGroup,
    # Learning themes
    LearningConfig,
    ThemeCatalogEntry,
    CustomTheme,
    StoryHistoryRecord,
    # Story subtypes
    SubtypeCatalogEntry,
    SubtypeHistoryRecord,
    # Results
    ThemeSelection,
    SubtypeSelection,
    RotationPlan,
)

__all__ = [
    "LearningFrequency",
    "ThemeCategory",
    "AgeGroup",
    "LearningConfig",
    "ThemeCatalogEntry",
    "CustomTheme",
    "StoryHistoryRecord",
    "SubtypeCatalogEntry",
    "SubtypeHistoryRecord",
    "ThemeSelection",
    "SubtypeSelection",
    "RotationPlan",
]
