"""
Unit tests for rotation models.

Run with: python -m pytest tests/test_models.py -v
"""

import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.models import (
    AgeGroup,
    CustomTheme,
    LearningConfig,
    LearningFrequency,
    RotationPlan,
    SubtypeCatalogEntry,
    ThemeCategory,
    ThemeSelection,
)


class TestLearningFrequency:

    def test_parses_stored_numbers(self):
        assert LearningFrequency.parse(1) is LearningFrequency.OCCASIONAL
        assert LearningFrequency.parse(2) is LearningFrequency.REGULAR
        assert LearningFrequency.parse(3) is LearningFrequency.FREQUENT
        assert LearningFrequency.parse("3") is LearningFrequency.FREQUENT

    def test_parses_names(self):
        assert LearningFrequency.parse("occasional") is LearningFrequency.OCCASIONAL
        assert LearningFrequency.parse(" Frequent ") is LearningFrequency.FREQUENT

    def test_unknown_values(self):
        for value in [0, 4, "sometimes", None, True, 2.5]:
            assert LearningFrequency.parse(value) is None, f"{value!r} should not parse"


class TestAgeGroup:

    @pytest.mark.parametrize("age,expected", [
        (3, "6-7"), (6, "6-7"), (7, "6-7"),
        (8, "8-9"), (9, "8-9"),
        (10, "10-11"), (11, "10-11"), (14, "10-11"),
    ])
    def test_for_age(self, age, expected):
        assert AgeGroup.for_age(age).value == expected


class TestLearningConfig:

    def test_duplicates_dropped_keeping_order(self):
        config = LearningConfig(kid_profile_id="kid", active_themes=["b", "a", "b", "c", "a"])
        assert config.active_themes == ["b", "a", "c"]

    def test_none_themes_become_empty(self):
        config = LearningConfig(kid_profile_id="kid", active_themes=None)
        assert config.active_themes == []

    def test_unknown_frequency_is_kept_raw(self):
        config = LearningConfig(kid_profile_id="kid", active_themes=["a"], frequency="weekly")
        assert config.frequency == "weekly"
        assert config.parsed_frequency is None


class TestSubtypeCatalogEntry:

    def _entry(self, **overrides):
        data = dict(
            subtype_key="wizard_school",
            theme_category="magic_fantasy",
            age_groups=["8-9", "10-11"],
            weight=1.5,
        )
        data.update(overrides)
        return SubtypeCatalogEntry(**data)

    def test_non_positive_weight_rejected(self):
        with pytest.raises(ValidationError):
            self._entry(weight=0)
        with pytest.raises(ValidationError):
            self._entry(weight=-1)

    def test_unknown_category_rejected(self):
        with pytest.raises(ValidationError):
            self._entry(theme_category="horror")

    def test_matches(self):
        entry = self._entry()
        assert entry.matches(ThemeCategory.MAGIC_FANTASY, AgeGroup.AGES_8_9)
        assert not entry.matches(ThemeCategory.MAGIC_FANTASY, AgeGroup.AGES_6_7)
        assert not entry.matches(ThemeCategory.SURPRISE, AgeGroup.AGES_8_9)
        assert not self._entry(is_active=False).matches(ThemeCategory.MAGIC_FANTASY, AgeGroup.AGES_8_9)

    def test_missing_seed_lists_become_empty(self):
        entry = self._entry(title_seeds=None, setting_ideas=None)
        assert entry.title_seeds == []
        assert entry.setting_ideas == []


class TestResults:

    def test_custom_theme_key(self):
        theme = CustomTheme(id="42", name={"en": "Tidying up"})
        assert theme.theme_key == "custom:42"
        assert ThemeSelection(theme_key=theme.theme_key, theme_label="Tidying up").is_custom
        assert not ThemeSelection(theme_key="sharing", theme_label="Sharing").is_custom

    def test_empty_plan(self):
        assert RotationPlan().is_empty
