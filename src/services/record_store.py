"""
Record Store for the rotation engine.

The theme scheduler and subtype selector only talk to this interface:
filtered/ordered/limited reads, read-by-key, counts and one insert.

Implementations:
- InMemoryRecordStore: dict/list backed, seeded from rotation_catalog.yaml
  (tests, local development, scripts/simulate_rotation.py)
- DatabaseService (database.py): Azure SQL
"""

import logging
import yaml
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Any

from src.models import (
    AgeGroup,
    CustomTheme,
    LearningConfig,
    StoryHistoryRecord,
    SubtypeCatalogEntry,
    SubtypeHistoryRecord,
    ThemeCatalogEntry,
    ThemeCategory,
)
from src.models.rotation import as_utc

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class RecordStoreError(Exception):
    """Raised by a store when the backing data source fails."""


class RecordStore(ABC):
    """Read/append access to rotation records."""

    # ===== Learning Themes =====

    @abstractmethod
    async def get_learning_config(self, kid_profile_id: str) -> Optional[LearningConfig]:
        ...

    async def count_stories_since_last_theme(self, kid_profile_id: str) -> Optional[int]:
        """
        Precomputed "untheme'd stories since last themed story" count.

        Returns None when the store has no such aggregate; callers then use
        get_last_themed_story + count_unthemed_stories_since.
        """
        return None

    @abstractmethod
    async def get_last_themed_story(self, kid_profile_id: str) -> Optional[StoryHistoryRecord]:
        ...

    @abstractmethod
    async def count_unthemed_stories_since(self, kid_profile_id: str, since: Optional[datetime]) -> int:
        ...

    @abstractmethod
    async def get_learning_theme(self, theme_key: str) -> Optional[ThemeCatalogEntry]:
        ...

    @abstractmethod
    async def get_custom_theme(self, custom_id: str) -> Optional[CustomTheme]:
        ...

    # ===== Story Subtypes =====

    @abstractmethod
    async def list_subtypes(self, category: ThemeCategory, age_group: AgeGroup) -> List[SubtypeCatalogEntry]:
        """Active subtypes in `category` that include `age_group`."""
        ...

    @abstractmethod
    async def get_recent_subtype_keys(
        self,
        kid_profile_id: str,
        category: ThemeCategory,
        limit: int
    ) -> List[str]:
        """Subtype keys from the newest `limit` history rows, newest first."""
        ...

    @abstractmethod
    async def insert_subtype_history(self, record: SubtypeHistoryRecord) -> SubtypeHistoryRecord:
        ...


def load_rotation_catalog(path: str) -> Dict[str, Any]:
    """
    Load learning themes and subtype catalog from YAML.

    Returns:
        {"learning_themes": [ThemeCatalogEntry], "subtypes": [SubtypeCatalogEntry]}
    """
    with open(path, 'r', encoding='utf-8') as f:
        raw = yaml.safe_load(f) or {}

    learning_themes = [
        ThemeCatalogEntry(theme_key=key, labels=labels or {})
        for key, labels in (raw.get("learning_themes") or {}).items()
    ]

    subtypes = []
    for category, entries in (raw.get("subtypes") or {}).items():
        for subtype_key, data in (entries or {}).items():
            subtypes.append(SubtypeCatalogEntry(
                subtype_key=subtype_key,
                theme_category=category,
                **(data or {})
            ))

    logger.info(
        f"📚 Loaded rotation catalog from {Path(path).name}: "
        f"{len(learning_themes)} learning themes, {len(subtypes)} subtypes"
    )
    return {"learning_themes": learning_themes, "subtypes": subtypes}


class InMemoryRecordStore(RecordStore):
    """
    Dict/list backed record store.

    Args:
        learning_themes: Built-in theme catalog
        subtypes: Subtype catalog (any order; list order is kept for selection)
        precompute_counts: Serve count_stories_since_last_theme directly
            instead of returning None
    """

    def __init__(
        self,
        learning_themes: Optional[List[ThemeCatalogEntry]] = None,
        subtypes: Optional[List[SubtypeCatalogEntry]] = None,
        precompute_counts: bool = False
    ):
        self.learning_themes: Dict[str, ThemeCatalogEntry] = {
            theme.theme_key: theme for theme in (learning_themes or [])
        }
        self.subtypes: List[SubtypeCatalogEntry] = list(subtypes or [])
        self.custom_themes: Dict[str, CustomTheme] = {}
        self.learning_configs: Dict[str, LearningConfig] = {}
        self.stories: List[StoryHistoryRecord] = []
        self.subtype_history: List[SubtypeHistoryRecord] = []
        self.precompute_counts = precompute_counts

    @classmethod
    def from_yaml(cls, path: str, precompute_counts: bool = False) -> "InMemoryRecordStore":
        catalog = load_rotation_catalog(path)
        return cls(
            learning_themes=catalog["learning_themes"],
            subtypes=catalog["subtypes"],
            precompute_counts=precompute_counts,
        )

    # ===== Seeding =====

    def set_learning_config(self, config: LearningConfig):
        self.learning_configs[config.kid_profile_id] = config

    def add_custom_theme(self, theme: CustomTheme):
        self.custom_themes[theme.id] = theme

    def add_story(self, story: StoryHistoryRecord):
        self.stories.append(story)

    def _stories_for(self, kid_profile_id: str) -> List[StoryHistoryRecord]:
        return [s for s in self.stories if s.kid_profile_id == kid_profile_id]

    def _stories_since_last_theme(self, kid_profile_id: str) -> int:
        last = self._last_themed(kid_profile_id)
        since = last.created_at if last else EPOCH
        return sum(
            1 for s in self._stories_for(kid_profile_id)
            if s.created_at > since and s.learning_theme_applied is None
        )

    def _last_themed(self, kid_profile_id: str) -> Optional[StoryHistoryRecord]:
        themed = [s for s in self._stories_for(kid_profile_id) if s.learning_theme_applied]
        if not themed:
            return None
        return max(themed, key=lambda s: s.created_at)

    # ===== RecordStore =====

    async def get_learning_config(self, kid_profile_id: str) -> Optional[LearningConfig]:
        return self.learning_configs.get(kid_profile_id)

    async def count_stories_since_last_theme(self, kid_profile_id: str) -> Optional[int]:
        if not self.precompute_counts:
            return None
        return self._stories_since_last_theme(kid_profile_id)

    async def get_last_themed_story(self, kid_profile_id: str) -> Optional[StoryHistoryRecord]:
        return self._last_themed(kid_profile_id)

    async def count_unthemed_stories_since(self, kid_profile_id: str, since: Optional[datetime]) -> int:
        since = as_utc(since) or EPOCH
        return sum(
            1 for s in self._stories_for(kid_profile_id)
            if s.created_at > since and s.learning_theme_applied is None
        )

    async def get_learning_theme(self, theme_key: str) -> Optional[ThemeCatalogEntry]:
        return self.learning_themes.get(theme_key)

    async def get_custom_theme(self, custom_id: str) -> Optional[CustomTheme]:
        return self.custom_themes.get(custom_id)

    async def list_subtypes(self, category: ThemeCategory, age_group: AgeGroup) -> List[SubtypeCatalogEntry]:
        return [s for s in self.subtypes if s.matches(category, age_group)]

    async def get_recent_subtype_keys(
        self,
        kid_profile_id: str,
        category: ThemeCategory,
        limit: int
    ) -> List[str]:
        rows = [
            (index, row) for index, row in enumerate(self.subtype_history)
            if row.kid_profile_id == kid_profile_id and row.theme_category == category
        ]
        # Newest first; insertion order breaks timestamp ties
        rows.sort(key=lambda pair: (pair[1].created_at, pair[0]), reverse=True)
        return [row.subtype_key for _, row in rows[:limit]]

    async def insert_subtype_history(self, record: SubtypeHistoryRecord) -> SubtypeHistoryRecord:
        self.subtype_history.append(record)
        return record


def create_record_store(settings=None) -> RecordStore:
    """
    Build the configured record store.

    USE_AZURE_SQL=true selects Azure SQL; otherwise an in-memory store seeded
    from the rotation catalog YAML.
    """
    from src.config import get_settings
    settings = settings or get_settings()

    if settings.use_azure_sql:
        # Imported lazily: pyodbc needs the ODBC driver libraries at import time
        from src.services.database import DatabaseService
        logger.info("🗄️ Using Azure SQL record store")
        return DatabaseService.from_settings(settings)

    logger.info("🗄️ Using in-memory record store")
    return InMemoryRecordStore.from_yaml(settings.rotation_catalog_path)
