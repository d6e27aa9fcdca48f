"""
Localized Label Resolution

Theme and subtype labels are stored as {language_code: text} maps.
A label is resolved by trying an ordered list of languages and falling
back to the record key when none of them has text.

Chains in use:
- Built-in learning themes: story language → en → fr → theme key
- Custom learning themes:   story language → en → de → theme key
- Story subtypes:           story language → en → de → subtype key
"""

from typing import Dict, List, Optional

from src.config.limits import (
    CUSTOM_THEME_FALLBACK_LANGUAGES,
    THEME_FALLBACK_LANGUAGES,
    SUBTYPE_FALLBACK_LANGUAGES,
)


def label_chain(language: Optional[str], fallbacks: List[str]) -> List[str]:
    """Build the ordered list of languages to try for `language`."""
    chain = [language] if language else []
    return chain + list(fallbacks)


def resolve_label(labels: Optional[Dict[str, str]], languages: List[str], fallback: str) -> str:
    """
    Return the first non-empty label in `languages` order, else `fallback`.

    Pure: same inputs always give the same output.
    """
    labels = labels or {}
    for language in languages:
        text = labels.get(language)
        if text:
            return text
    return fallback


def resolve_theme_label(labels: Optional[Dict[str, str]], language: Optional[str], theme_key: str) -> str:
    return resolve_label(labels, label_chain(language, THEME_FALLBACK_LANGUAGES), theme_key)


def resolve_custom_theme_label(names: Optional[Dict[str, str]], language: Optional[str], theme_key: str) -> str:
    return resolve_label(names, label_chain(language, CUSTOM_THEME_FALLBACK_LANGUAGES), theme_key)


def resolve_subtype_label(labels: Optional[Dict[str, str]], language: Optional[str], subtype_key: str) -> str:
    return resolve_label(labels, label_chain(language, SUBTYPE_FALLBACK_LANGUAGES), subtype_key)
