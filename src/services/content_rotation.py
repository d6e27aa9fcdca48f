"""
Content Rotation Service

Entry point for the story-generation pipeline. One call per story request:

    service = get_content_rotation_service()
    plan = await service.plan(kid_profile_id, "fantasy", age=7, language="de", store=store)
    # ... generate story using plan.theme / plan.subtype ...
    await service.record_story(kid_profile_id, plan, story_id, store)

The theme half and the subtype half are independent: either may be None
without affecting the other.
"""

import logging
import random
from typing import Optional

from src.config import get_settings, Settings
from src.models import RotationPlan
from src.services.record_store import RecordStore
from src.services.subtype_selector import SubtypeSelector
from src.services.theme_scheduler import ThemeScheduler

logger = logging.getLogger(__name__)


class ContentRotationService:
    """Runs the theme scheduler, then the subtype selector."""

    def __init__(self, settings: Optional[Settings] = None, rng: Optional[random.Random] = None):
        self.settings = settings or get_settings()
        self.theme_scheduler = ThemeScheduler(self.settings)
        self.subtype_selector = SubtypeSelector(self.settings, rng=rng)

    async def plan(
        self,
        kid_profile_id: Optional[str],
        story_theme_key: str,
        age: int,
        language: str,
        store: RecordStore
    ) -> RotationPlan:
        """
        Decide learning theme and subtype for the next story.

        Args:
            kid_profile_id: Child profile (None for guests: no theme, no recency exclusion)
            story_theme_key: Story theme picked by the child ("fantasy", "animals", ...)
            age: Child's age in years
            language: Story language code
            store: Record store

        Returns:
            RotationPlan (never raises)
        """
        theme = None
        if kid_profile_id:
            theme = await self.theme_scheduler.decide(kid_profile_id, language, store)

        subtype = await self.subtype_selector.select(story_theme_key, kid_profile_id, age, language, store)

        plan = RotationPlan(theme=theme, subtype=subtype)
        logger.info(
            f"🎲 Rotation plan for kid={kid_profile_id}: "
            f"theme={theme.theme_key if theme else None}, "
            f"subtype={subtype.subtype_key if subtype else None}"
        )
        return plan

    async def record_story(
        self,
        kid_profile_id: Optional[str],
        plan: RotationPlan,
        story_id: Optional[str],
        store: RecordStore
    ) -> None:
        """
        Record what a generated story used.

        Only the subtype is written here; the applied learning theme is stored
        on the story record itself by the pipeline.
        """
        if plan.subtype is None:
            return
        await self.subtype_selector.record_usage(
            kid_profile_id,
            plan.subtype.category,
            plan.subtype.subtype_key,
            story_id,
            store,
        )


# Singleton instance
_content_rotation_service: Optional[ContentRotationService] = None


def get_content_rotation_service() -> ContentRotationService:
    """
    Get singleton ContentRotationService instance.

    Returns:
        ContentRotationService instance (creates one if not initialized)
    """
    global _content_rotation_service
    if _content_rotation_service is None:
        _content_rotation_service = ContentRotationService()
    return _content_rotation_service


def init_content_rotation_service(
    settings: Optional[Settings] = None,
    rng: Optional[random.Random] = None
) -> ContentRotationService:
    """Initialize the service (call at app startup)."""
    global _content_rotation_service
    _content_rotation_service = ContentRotationService(settings, rng=rng)
    return _content_rotation_service


def reset_content_rotation_service():
    """Reset the singleton (useful for testing)."""
    global _content_rotation_service
    _content_rotation_service = None
