"""
Centralized Rotation Constants

Fixed tables used by the theme scheduler and subtype selector.
Tunable window sizes live in Settings (see settings.py).
"""

# =============================================================================
# LEARNING THEME FREQUENCY
# =============================================================================

# Untheme'd stories required since the last themed story before the next
# learning theme is injected, keyed by LearningFrequency value:
#   1 (occasional): every 4th story
#   2 (regular):    every 3rd story
#   3 (frequent):   every 2nd story
FREQUENCY_THRESHOLDS = {
    1: 3,
    2: 2,
    3: 1,
}

# Prefix marking a caregiver-created theme in LearningConfig.active_themes
CUSTOM_THEME_PREFIX = "custom:"

# =============================================================================
# AGE GROUPS
# =============================================================================

# Upper bound (inclusive) of each age group, checked in order
AGE_GROUP_BOUNDS = [
    (7, "6-7"),
    (9, "8-9"),
]
OLDEST_AGE_GROUP = "10-11"

# =============================================================================
# LABEL FALLBACK CHAINS
# =============================================================================

# Tried after the story language itself.
# Custom themes fall back en→de, catalog themes en→fr. Keep both as-is.
CUSTOM_THEME_FALLBACK_LANGUAGES = ["en", "de"]
THEME_FALLBACK_LANGUAGES = ["en", "fr"]
SUBTYPE_FALLBACK_LANGUAGES = ["en", "de"]
