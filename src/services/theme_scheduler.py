"""
Learning Theme Scheduler

Decides whether the next story for a child gets a caregiver-enabled
learning theme, and which one:

1. No config / no active themes → no theme (the common case, one read)
2. Count untheme'd stories since the last themed story
3. Compare against the frequency threshold (occasional 3, regular 2, frequent 1)
4. Pick the next theme round-robin after the last one applied
5. Resolve a display label (and story guidance for custom themes)

The round-robin cursor is never stored: it is re-derived from the most
recent themed story on every call.

Theme injection is best-effort. decide() never raises; any store failure
is logged and treated as "no theme".
"""

import logging
from typing import List, Optional, Union

from src.config import get_settings, Settings, FREQUENCY_THRESHOLDS, CUSTOM_THEME_PREFIX
from src.models import LearningFrequency, ThemeSelection, StoryHistoryRecord
from src.services.record_store import RecordStore
from src.utils.localization import resolve_theme_label, resolve_custom_theme_label

logger = logging.getLogger(__name__)


def frequency_threshold(frequency: Union[LearningFrequency, int, str, None], default: int = 2) -> int:
    """
    Untheme'd stories required before the next learning theme.

    Unrecognized frequencies use `default` (the regular threshold).
    """
    parsed = LearningFrequency.parse(frequency)
    if parsed is None:
        return default
    return FREQUENCY_THRESHOLDS.get(parsed.value, default)


def next_theme(active_themes: List[str], last_used: Optional[str]) -> str:
    """
    Round-robin: the theme after `last_used` in `active_themes`.

    Starts at index 0 when nothing was used yet or when `last_used` has been
    removed from the list.

    Raises:
        ValueError: if active_themes is empty
    """
    if not active_themes:
        raise ValueError("active_themes must not be empty")
    if last_used in active_themes:
        return active_themes[(active_themes.index(last_used) + 1) % len(active_themes)]
    return active_themes[0]


def is_custom_theme(theme_key: str) -> bool:
    return theme_key.startswith(CUSTOM_THEME_PREFIX)


class ThemeScheduler:
    """Round-robin learning theme scheduler driven by story history."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    async def decide(
        self,
        kid_profile_id: str,
        story_language: str,
        store: RecordStore
    ) -> Optional[ThemeSelection]:
        """
        Decide the learning theme for the next story.

        Args:
            kid_profile_id: Child profile the story is for
            story_language: Language code used for the theme label
            store: Record store for config, story history and theme catalogs

        Returns:
            ThemeSelection, or None when no theme should be applied
        """
        try:
            return await self._decide(kid_profile_id, story_language, store)
        except Exception as e:
            logger.error(f"[ThemeScheduler] Error deciding theme for kid={kid_profile_id}: {e}")
            return None

    async def _decide(
        self,
        kid_profile_id: str,
        story_language: str,
        store: RecordStore
    ) -> Optional[ThemeSelection]:
        config = await store.get_learning_config(kid_profile_id)
        if not config or not config.active_themes:
            return None

        stories_since, last_themed = await self._stories_since_last_theme(kid_profile_id, store)
        threshold = frequency_threshold(config.frequency, self.settings.default_learning_threshold)

        if config.parsed_frequency is None:
            logger.warning(
                f"[ThemeScheduler] Unknown frequency {config.frequency!r} for kid={kid_profile_id}, "
                f"using threshold {threshold}"
            )

        if stories_since < threshold:
            logger.info(
                f"[ThemeScheduler] Not yet time ({stories_since}/{threshold} stories since last theme)"
            )
            return None

        if last_themed is None:
            last_themed = await store.get_last_themed_story(kid_profile_id)
        last_used = last_themed.learning_theme_applied if last_themed else None

        theme_key = next_theme(config.active_themes, last_used)
        selection = await self._resolve_selection(theme_key, story_language, store)

        logger.info(
            f"[ThemeScheduler] Applying theme: {selection.theme_key} ({selection.theme_label})"
            f"{' [custom]' if selection.story_guidance else ''}"
        )
        return selection

    async def _stories_since_last_theme(self, kid_profile_id: str, store: RecordStore):
        """
        Count untheme'd stories after the most recent themed one.

        Prefers the store's precomputed aggregate. Returns the count and the
        last themed story when it had to be read (None otherwise).
        """
        precomputed = await store.count_stories_since_last_theme(kid_profile_id)
        if precomputed is not None:
            return precomputed, None

        last_themed: Optional[StoryHistoryRecord] = await store.get_last_themed_story(kid_profile_id)
        since = last_themed.created_at if last_themed else None
        count = await store.count_unthemed_stories_since(kid_profile_id, since)
        return count, last_themed

    async def _resolve_selection(
        self,
        theme_key: str,
        story_language: str,
        store: RecordStore
    ) -> ThemeSelection:
        if is_custom_theme(theme_key):
            custom_id = theme_key[len(CUSTOM_THEME_PREFIX):]
            custom = await store.get_custom_theme(custom_id)
            return ThemeSelection(
                theme_key=theme_key,
                theme_label=resolve_custom_theme_label(custom.name if custom else None, story_language, theme_key),
                story_guidance=(custom.story_guidance or None) if custom else None,
            )

        entry = await store.get_learning_theme(theme_key)
        return ThemeSelection(
            theme_key=theme_key,
            theme_label=resolve_theme_label(entry.labels if entry else None, story_language, theme_key),
        )
