"""Services package for the Story Rotation Engine"""

from .record_store import (
    RecordStore,
    RecordStoreError,
    InMemoryRecordStore,
    load_rotation_catalog,
    create_record_store,
)
from .theme_scheduler import (
    ThemeScheduler,
    frequency_threshold,
    next_theme,
    is_custom_theme,
)
from .subtype_selector import (
    SubtypeSelector,
    THEME_TO_CATEGORY,
    resolve_category,
    narrow_candidates,
)
from .content_rotation import (
    ContentRotationService,
    get_content_rotation_service,
    init_content_rotation_service,
    reset_content_rotation_service,
)
from .logger import init_logging, get_log_file

__all__ = [
    # Record store
    "RecordStore",
    "RecordStoreError",
    "InMemoryRecordStore",
    "load_rotation_catalog",
    "create_record_store",
    # Theme scheduler
    "ThemeScheduler",
    "frequency_threshold",
    "next_theme",
    "is_custom_theme",
    # Subtype selector
    "SubtypeSelector",
    "THEME_TO_CATEGORY",
    "resolve_category",
    "narrow_candidates",
    # Content rotation
    "ContentRotationService",
    "get_content_rotation_service",
    "init_content_rotation_service",
    "reset_content_rotation_service",
    # Logging
    "init_logging",
    "get_log_file",
]
