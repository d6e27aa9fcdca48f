"""
Story Subtype Selector

Selects a narrative subtype for the next story based on:
1. Theme category (mapped from the story theme key)
2. Child's age group
3. Exclusion of recently used subtypes
4. Weighted randomization

Recency exclusion degrades in stages so a small catalog never starves:
    recent   - exclude the last `subtype_history_window` subtypes
    relaxed  - exclude only the last `subtype_relaxed_window` (catalog >= min size)
    all      - no exclusion

Two store reads per selection (catalog + history), one insert per recorded usage.
Nothing here raises to the caller: failures are logged and yield None.
"""

import logging
import random
from typing import Callable, List, Optional, Tuple, Union

from src.config import get_settings, Settings
from src.models import (
    AgeGroup,
    SubtypeCatalogEntry,
    SubtypeHistoryRecord,
    SubtypeSelection,
    ThemeCategory,
)
from src.services.record_store import RecordStore
from src.utils.localization import resolve_subtype_label
from src.utils.sampling import weighted_pick, random_pick

logger = logging.getLogger(__name__)


THEME_TO_CATEGORY = {
    'fantasy': ThemeCategory.MAGIC_FANTASY,
    'magic': ThemeCategory.MAGIC_FANTASY,
    'action': ThemeCategory.ADVENTURE_ACTION,
    'adventure': ThemeCategory.ADVENTURE_ACTION,
    'animals': ThemeCategory.REAL_LIFE,
    'everyday': ThemeCategory.REAL_LIFE,
    'friends': ThemeCategory.REAL_LIFE,
    'educational': ThemeCategory.REAL_LIFE,
    'humor': ThemeCategory.SURPRISE,
    'surprise': ThemeCategory.SURPRISE,
}

DEFAULT_CATEGORY = ThemeCategory.SURPRISE


def resolve_category(theme_key_or_category: Union[str, ThemeCategory, None]) -> ThemeCategory:
    """
    Map a story theme key (or a category value) to its theme category.

    Unknown keys fall back to 'surprise' with a warning.
    """
    if isinstance(theme_key_or_category, ThemeCategory):
        return theme_key_or_category

    key = str(theme_key_or_category or "").strip().lower()
    if key in THEME_TO_CATEGORY:
        return THEME_TO_CATEGORY[key]
    try:
        return ThemeCategory(key)
    except ValueError:
        logger.warning(
            f"[SubtypeSelector] Unknown theme_key: {theme_key_or_category!r}, "
            f"defaulting to '{DEFAULT_CATEGORY.value}'"
        )
        return DEFAULT_CATEGORY


def narrow_candidates(
    catalog: List[SubtypeCatalogEntry],
    recent_keys: List[str],
    history_window: int = 5,
    relaxed_window: int = 2,
    min_candidates: int = 3
) -> Tuple[List[SubtypeCatalogEntry], str]:
    """
    Apply recency exclusion with staged relaxation.

    Args:
        catalog: Active subtypes for the category + age group
        recent_keys: Recently used subtype keys, newest first
        history_window: Keys excluded in the first stage
        relaxed_window: Keys excluded once the first stage leaves too few
        min_candidates: Candidate count below which exclusion is relaxed

    Returns:
        (candidates, stage name) - candidates is non-empty whenever catalog is
    """
    catalog_is_large = len(catalog) >= min_candidates

    stages: List[Tuple[str, List[str], Callable[[list], bool]]] = [
        ("recent", recent_keys[:history_window],
         lambda found: len(found) >= min_candidates or (bool(found) and not catalog_is_large)),
    ]
    if catalog_is_large:
        stages.append(("relaxed", recent_keys[:relaxed_window], bool))
    stages.append(("all", [], lambda found: True))

    for stage_name, excluded, accept in stages:
        candidates = [s for s in catalog if s.subtype_key not in excluded]
        if accept(candidates):
            return candidates, stage_name

    return list(catalog), "all"


class SubtypeSelector:
    """Weighted, recency-aware subtype selection."""

    def __init__(self, settings: Optional[Settings] = None, rng: Optional[random.Random] = None):
        self.settings = settings or get_settings()
        self.rng = rng or random.Random()

    async def select(
        self,
        theme_key_or_category: Union[str, ThemeCategory],
        kid_profile_id: Optional[str],
        age: int,
        language: Optional[str],
        store: RecordStore
    ) -> Optional[SubtypeSelection]:
        """
        Select a story subtype for the given theme, child and age.

        Args:
            theme_key_or_category: Story theme key ("fantasy", "animals", ...) or category
            kid_profile_id: Child profile for recency exclusion (None for guests)
            age: Child's age in years
            language: Language code for the subtype label
            store: Record store for the catalog and subtype history

        Returns:
            SubtypeSelection, or None if no subtype is available
        """
        category = resolve_category(theme_key_or_category)
        try:
            return await self._select(category, kid_profile_id, age, language, store)
        except Exception as e:
            logger.error(
                f"[SubtypeSelector] Error selecting subtype for kid={kid_profile_id}, "
                f"category={category.value}: {e}"
            )
            return None

    async def _select(
        self,
        category: ThemeCategory,
        kid_profile_id: Optional[str],
        age: int,
        language: Optional[str],
        store: RecordStore
    ) -> Optional[SubtypeSelection]:
        age_group = AgeGroup.for_age(age)
        language = language or self.settings.default_story_language

        try:
            catalog = await store.list_subtypes(category, age_group)
        except Exception as e:
            logger.error(f"[SubtypeSelector] Store error loading subtypes: {e}")
            return None

        if not catalog:
            logger.warning(
                f"[SubtypeSelector] No subtypes found for category={category.value}, ageGroup={age_group.value}"
            )
            return None

        logger.info(f"[SubtypeSelector] Found {len(catalog)} subtypes for {category.value} / {age_group.value}")

        recent_keys = await self._recent_keys(kid_profile_id, category, store)
        candidates, stage = narrow_candidates(
            catalog,
            recent_keys,
            history_window=self.settings.subtype_history_window,
            relaxed_window=self.settings.subtype_relaxed_window,
            min_candidates=self.settings.subtype_min_candidates,
        )
        if stage != "recent":
            logger.info(f"[SubtypeSelector] Exclusion stage '{stage}', candidates: {len(candidates)}")

        selected = weighted_pick(candidates, self.rng)

        result = SubtypeSelection(
            subtype_key=selected.subtype_key,
            prompt_hint=selected.prompt_hint,
            title_seed=random_pick(selected.title_seeds, self.rng) or "",
            setting_idea=random_pick(selected.setting_ideas, self.rng) or "",
            category=category,
            label=resolve_subtype_label(selected.labels, language, selected.subtype_key),
        )

        logger.info(
            f"[SubtypeSelector] Selected: {result.subtype_key} ({result.label}) "
            f"for {category.value}/{age_group.value}"
        )
        return result

    async def _recent_keys(
        self,
        kid_profile_id: Optional[str],
        category: ThemeCategory,
        store: RecordStore
    ) -> List[str]:
        """Recently used subtype keys, newest first. History failures mean no exclusion."""
        if not kid_profile_id:
            return []
        try:
            recent_keys = await store.get_recent_subtype_keys(
                kid_profile_id, category, self.settings.subtype_history_window
            )
        except Exception as e:
            logger.warning(f"[SubtypeSelector] History load failed, continuing without exclusion: {e}")
            return []

        if recent_keys:
            logger.info(f"[SubtypeSelector] Recent subtypes to exclude: [{', '.join(recent_keys)}]")
        return recent_keys

    async def record_usage(
        self,
        kid_profile_id: Optional[str],
        category: Union[str, ThemeCategory],
        subtype_key: str,
        story_id: Optional[str],
        store: RecordStore
    ) -> None:
        """
        Append a subtype usage to the history log.

        Skipped for guests (no kid_profile_id). Failures are logged, never raised.
        """
        if not kid_profile_id:
            logger.info("[SubtypeSelector] No kid_profile_id, skipping history write")
            return

        try:
            await store.insert_subtype_history(SubtypeHistoryRecord(
                kid_profile_id=kid_profile_id,
                theme_category=resolve_category(category),
                subtype_key=subtype_key,
                story_id=story_id or None,
            ))
            logger.info(f"[SubtypeSelector] History recorded: {subtype_key} for kid={kid_profile_id}")
        except Exception as e:
            logger.warning(f"[SubtypeSelector] Failed to record history: {e}")
