"""
Unit tests for the learning theme scheduler.

Tests the frequency thresholds, round-robin rotation derived from story
history, label resolution for catalog and custom themes, and the
"never raise" failure semantics.

Run with: python -m pytest tests/test_theme_scheduler.py -v
"""

import asyncio
import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import Settings
from src.models import (
    CustomTheme,
    LearningConfig,
    StoryHistoryRecord,
    ThemeCatalogEntry,
)
from src.services.record_store import InMemoryRecordStore, RecordStoreError
from src.services.theme_scheduler import ThemeScheduler, frequency_threshold, next_theme

KID = "kid_emma"
BASE_TIME = datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc)


def make_store(
    themes: Optional[List[str]] = None,
    frequency=2,
    history: Optional[List[Optional[str]]] = None,
    precompute_counts: bool = False
) -> InMemoryRecordStore:
    """
    Build a store with a learning config and story history.

    history: learning_theme_applied per story, oldest first (None = untheme'd)
    """
    store = InMemoryRecordStore(
        learning_themes=[
            ThemeCatalogEntry(theme_key="sharing", labels={"en": "Sharing", "de": "Teilen"}),
            ThemeCatalogEntry(theme_key="honesty", labels={"fr": "Honnêteté", "de": "Ehrlichkeit"}),
        ],
        precompute_counts=precompute_counts,
    )
    if themes is not None:
        store.set_learning_config(LearningConfig(kid_profile_id=KID, active_themes=themes, frequency=frequency))
    for index, theme in enumerate(history or []):
        store.add_story(StoryHistoryRecord(
            story_id=f"story_{index}",
            kid_profile_id=KID,
            created_at=BASE_TIME + timedelta(minutes=index),
            learning_theme_applied=theme,
        ))
    return store


def decide(store, language: str = "en"):
    return asyncio.run(ThemeScheduler(Settings()).decide(KID, language, store))


class TestNextTheme:
    """Round-robin is a pure function of (active_themes, last_used)."""

    def test_advances_one_slot(self):
        assert next_theme(["A", "B", "C"], "B") == "C"

    def test_wraps_around(self):
        assert next_theme(["A", "B", "C"], "C") == "A"

    def test_nothing_used_starts_at_first(self):
        assert next_theme(["A", "B", "C"], None) == "A"

    def test_removed_theme_restarts_at_first(self):
        assert next_theme(["A", "B", "C"], "Z") == "A"

    def test_single_theme_repeats(self):
        assert next_theme(["A"], "A") == "A"

    def test_empty_list_rejected(self):
        with pytest.raises(ValueError):
            next_theme([], "A")


class TestFrequencyThreshold:

    @pytest.mark.parametrize("frequency,expected", [
        (1, 3), (2, 2), (3, 1),
        ("occasional", 3), ("regular", 2), ("frequent", 1),
        ("weekly", 2), (None, 2), (7, 2),
    ])
    def test_thresholds(self, frequency, expected):
        assert frequency_threshold(frequency) == expected


class TestShortCircuit:

    def test_no_config_means_no_theme(self):
        assert decide(make_store(themes=None, history=[None, None, None])) is None

    def test_empty_active_themes_means_no_theme(self):
        assert decide(make_store(themes=[], history=[None, None, None])) is None


class TestThresholdGate:
    """A theme is applied only once enough untheme'd stories have passed."""

    @pytest.mark.parametrize("frequency", [1, 2, 3])
    @pytest.mark.parametrize("untheme_count", [0, 1, 2, 3, 4])
    def test_threshold_per_frequency(self, frequency, untheme_count):
        history = ["sharing"] + [None] * untheme_count
        result = decide(make_store(themes=["sharing", "honesty"], frequency=frequency, history=history))

        threshold = {1: 3, 2: 2, 3: 1}[frequency]
        if untheme_count >= threshold:
            assert result is not None, f"{untheme_count} stories should meet threshold {threshold}"
        else:
            assert result is None, f"{untheme_count} stories should not meet threshold {threshold}"

    def test_stories_before_last_theme_do_not_count(self):
        history = [None, None, None, None, "sharing", None]
        assert decide(make_store(themes=["sharing", "honesty"], frequency=2, history=history)) is None

    def test_no_themed_story_yet_counts_from_epoch(self):
        result = decide(make_store(themes=["sharing", "honesty"], frequency=2, history=[None, None]))
        assert result is not None
        assert result.theme_key == "sharing", "first themed story starts at index 0"

    def test_unknown_frequency_uses_regular_threshold(self):
        store = make_store(themes=["sharing"], frequency="weekly", history=[None])
        assert decide(store) is None
        store = make_store(themes=["sharing"], frequency="weekly", history=[None, None])
        assert decide(store) is not None

    @pytest.mark.parametrize("precompute_counts", [False, True])
    def test_aggregate_and_manual_counts_agree(self, precompute_counts):
        history = [None, "sharing", None, None, None]
        store = make_store(themes=["sharing", "honesty"], frequency=1, history=history,
                           precompute_counts=precompute_counts)
        result = decide(store)
        assert result is not None
        assert result.theme_key == "honesty"


class TestRoundRobin:

    def test_next_after_last_used(self):
        store = make_store(themes=["A", "B", "C"], frequency=3, history=["A", None, "B", None])
        assert decide(store).theme_key == "C"

    def test_removed_theme_restarts(self):
        store = make_store(themes=["A", "C"], frequency=3, history=["B", None])
        assert decide(store).theme_key == "A"

    def test_animals_then_magic(self):
        """Regular frequency, two untheme'd stories after 'animals' → 'magic'."""
        store = make_store(themes=["animals", "magic"], frequency=2, history=["animals", None, None])
        result = decide(store)
        assert result is not None
        assert result.theme_key == "magic"

    def test_naive_story_timestamp_counts(self):
        store = make_store(themes=["sharing"], frequency=3)
        store.add_story(StoryHistoryRecord(story_id="seeded", kid_profile_id=KID, created_at=datetime(2026, 1, 1)))
        result = decide(store)
        assert result is not None, "a naive timestamp is read as UTC"
        assert result.theme_key == "sharing"


class TestLabels:

    def test_catalog_label_in_story_language(self):
        store = make_store(themes=["sharing"], history=[None, None])
        assert decide(store, "de").theme_label == "Teilen"

    def test_catalog_label_falls_back_to_french(self):
        store = make_store(themes=["honesty"], history=[None, None])
        result = decide(store, "es")
        assert result.theme_label == "Honnêteté"
        assert result.story_guidance is None

    def test_unknown_catalog_theme_uses_key(self):
        store = make_store(themes=["kindness"], history=[None, None])
        assert decide(store, "en").theme_label == "kindness"

    def test_custom_theme_label_and_guidance(self):
        store = make_store(themes=["custom:42"], history=[None, None])
        store.add_custom_theme(CustomTheme(
            id="42",
            name={"de": "Aufräumen", "fr": "Ranger"},
            story_guidance="Show that tidying up together can be fun.",
        ))
        result = decide(store, "es")
        assert result.theme_key == "custom:42"
        assert result.theme_label == "Aufräumen", "custom themes fall back en→de"
        assert result.story_guidance == "Show that tidying up together can be fun."
        assert result.is_custom

    def test_missing_custom_theme_uses_key(self):
        store = make_store(themes=["custom:99"], history=[None, None])
        result = decide(store, "en")
        assert result.theme_label == "custom:99"
        assert result.story_guidance is None


class FailingStore(InMemoryRecordStore):

    def __init__(self, fail_on: str):
        super().__init__()
        self.fail_on = fail_on
        self.set_learning_config(LearningConfig(kid_profile_id=KID, active_themes=["sharing"], frequency=3))

    async def get_learning_config(self, kid_profile_id):
        if self.fail_on == "config":
            raise RecordStoreError("connection reset")
        return await super().get_learning_config(kid_profile_id)

    async def count_unthemed_stories_since(self, kid_profile_id, since):
        if self.fail_on == "count":
            raise TimeoutError("query timed out")
        return 5

    async def get_learning_theme(self, theme_key):
        if self.fail_on == "label":
            raise RecordStoreError("malformed row")
        return await super().get_learning_theme(theme_key)


class TestFailures:
    """Store failures are logged and become 'no theme'."""

    @pytest.mark.parametrize("fail_on", ["config", "count", "label"])
    def test_failure_returns_none(self, fail_on, caplog):
        with caplog.at_level(logging.ERROR, logger="src.services.theme_scheduler"):
            assert decide(FailingStore(fail_on)) is None
        assert KID in caplog.text, "error log should name the profile"

    def test_failing_store_works_without_failure(self):
        assert decide(FailingStore("none")).theme_key == "sharing"
