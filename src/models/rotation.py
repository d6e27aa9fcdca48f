"""
Rotation Models for the Story Rotation Engine

Records read by the theme scheduler and subtype selector:
- LearningConfig / ThemeCatalogEntry / CustomTheme: caregiver learning themes
- StoryHistoryRecord: one row per generated story (theme applied or not)
- SubtypeCatalogEntry / SubtypeHistoryRecord: narrative subtype catalog + usage log

And the results handed to the story-generation pipeline:
- ThemeSelection, SubtypeSelection, RotationPlan
"""

from pydantic import BaseModel, Field, validator
from typing import List, Dict, Optional, Union
from datetime import datetime, timezone
from enum import Enum, IntEnum

from src.config.limits import AGE_GROUP_BOUNDS, OLDEST_AGE_GROUP, CUSTOM_THEME_PREFIX


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat a naive datetime as UTC; aware values pass through."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ============================================================================
# Enums
# ============================================================================

class LearningFrequency(IntEnum):
    """How often a caregiver wants learning themes woven into stories."""
    OCCASIONAL = 1
    REGULAR = 2
    FREQUENT = 3

    @classmethod
    def parse(cls, value: Union["LearningFrequency", int, str, None]) -> Optional["LearningFrequency"]:
        """
        Accept the stored numeric value (1/2/3), a name ("regular") or the enum.

        Returns None for anything unrecognized.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool) or value is None:
            return None
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                return None
        if isinstance(value, str):
            cleaned = value.strip()
            if cleaned.isdigit():
                return cls.parse(int(cleaned))
            return cls.__members__.get(cleaned.upper())
        return None


class ThemeCategory(str, Enum):
    MAGIC_FANTASY = "magic_fantasy"
    ADVENTURE_ACTION = "adventure_action"
    REAL_LIFE = "real_life"
    SURPRISE = "surprise"


class AgeGroup(str, Enum):
    AGES_6_7 = "6-7"
    AGES_8_9 = "8-9"
    AGES_10_11 = "10-11"

    @classmethod
    def for_age(cls, age: int) -> "AgeGroup":
        """Map a child's age to its subtype age group (fixed thresholds)."""
        for upper_bound, group in AGE_GROUP_BOUNDS:
            if age <= upper_bound:
                return cls(group)
        return cls(OLDEST_AGE_GROUP)


# ============================================================================
# Learning Themes
# ============================================================================

class LearningConfig(BaseModel):
    """
    Caregiver learning-theme settings for one child profile.

    `active_themes` order drives the round-robin. `frequency` is kept raw so
    an unrecognized stored value reaches the scheduler, which applies the
    default threshold.
    """
    kid_profile_id: str
    active_themes: List[str] = Field(default_factory=list)
    frequency: Union[int, str, None] = LearningFrequency.REGULAR.value

    @validator('active_themes', pre=True)
    def dedupe_active_themes(cls, v):
        """Keep the first occurrence of each theme key, preserving order."""
        if v is None:
            return []
        seen = set()
        unique = []
        for key in v:
            if key not in seen:
                seen.add(key)
                unique.append(key)
        return unique

    @property
    def parsed_frequency(self) -> Optional[LearningFrequency]:
        return LearningFrequency.parse(self.frequency)


class ThemeCatalogEntry(BaseModel):
    """Built-in learning theme (e.g. "sharing", "patience")."""
    theme_key: str
    labels: Dict[str, str] = Field(default_factory=dict)


class CustomTheme(BaseModel):
    """Caregiver-created learning theme, referenced as "custom:<id>"."""
    id: str
    name: Dict[str, str] = Field(default_factory=dict)
    story_guidance: Optional[str] = None

    @property
    def theme_key(self) -> str:
        return f"{CUSTOM_THEME_PREFIX}{self.id}"


class StoryHistoryRecord(BaseModel):
    """The slice of a generated story the scheduler cares about."""
    story_id: str
    kid_profile_id: str
    created_at: datetime = Field(default_factory=_utcnow)
    learning_theme_applied: Optional[str] = None

    @validator('created_at')
    def naive_created_at_is_utc(cls, v):
        return as_utc(v)


# ============================================================================
# Story Subtypes
# ============================================================================

class SubtypeCatalogEntry(BaseModel):
    """One narrative variant within a theme category."""
    subtype_key: str
    theme_category: ThemeCategory
    labels: Dict[str, str] = Field(default_factory=dict)
    prompt_hint: str = ""
    title_seeds: List[str] = Field(default_factory=list)
    setting_ideas: List[str] = Field(default_factory=list)
    age_groups: List[AgeGroup] = Field(default_factory=list)
    weight: float = Field(default=1.0, gt=0)
    is_active: bool = True

    @validator('title_seeds', 'setting_ideas', pre=True)
    def none_to_empty(cls, v):
        return v or []

    def matches(self, category: ThemeCategory, age_group: AgeGroup) -> bool:
        """Active, in this category, and suitable for this age group."""
        return self.is_active and self.theme_category == category and age_group in self.age_groups


class SubtypeHistoryRecord(BaseModel):
    """Append-only log row: a story used this subtype."""
    kid_profile_id: str
    theme_category: ThemeCategory
    subtype_key: str
    story_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    @validator('created_at')
    def naive_created_at_is_utc(cls, v):
        return as_utc(v)


# ============================================================================
# Selection Results
# ============================================================================

class ThemeSelection(BaseModel):
    """Learning theme to inject into the next story."""
    theme_key: str
    theme_label: str
    story_guidance: Optional[str] = None

    @property
    def is_custom(self) -> bool:
        return self.theme_key.startswith(CUSTOM_THEME_PREFIX)


class SubtypeSelection(BaseModel):
    """Narrative subtype chosen for the next story."""
    subtype_key: str
    prompt_hint: str
    title_seed: str = ""
    setting_idea: str = ""
    category: ThemeCategory
    label: str


class RotationPlan(BaseModel):
    """Everything the rotation engine decided for one story request."""
    theme: Optional[ThemeSelection] = None
    subtype: Optional[SubtypeSelection] = None

    @property
    def is_empty(self) -> bool:
        return self.theme is None and self.subtype is None
