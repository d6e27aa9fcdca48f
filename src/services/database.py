"""
Azure SQL record store for the rotation engine.

Tables read:
- parent_learning_config   (kid_profile_id, active_themes JSON, frequency)
- stories                  (id, kid_profile_id, created_at, learning_theme_applied)
- learning_themes          (theme_key, labels JSON)
- custom_learning_themes   (id, name JSON, story_guidance)
- story_subtypes           (subtype_key, theme_key, labels JSON, prompt_hint_en,
                            title_seeds JSON, setting_ideas JSON, age_groups JSON,
                            weight, is_active)
Table appended:
- story_subtype_history    (kid_profile_id, theme_key, subtype_key, story_id, created_at)
"""

import pyodbc
import json
import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, List
from datetime import datetime, timezone
from uuid import uuid4, UUID
import uuid as uuid_module

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
from src.services.record_store import RecordStore, RecordStoreError, EPOCH

logger = logging.getLogger(__name__)


# =========================================================================
# UUID Helpers - Convert string IDs to valid UUIDs for Azure SQL
# =========================================================================

ROTATION_NAMESPACE = UUID('6ba7b810-9dad-11d1-80b4-00c04fd430c8')  # DNS namespace


def is_valid_uuid(value: str) -> bool:
    """Check if a string is a valid UUID."""
    if not value:
        return False
    try:
        UUID(str(value))
        return True
    except (ValueError, AttributeError):
        return False


def to_uuid(value: str) -> str:
    """
    Convert a string to a valid UUID string.

    Valid UUIDs are normalized; other strings map to a deterministic UUID5,
    so the same profile id always hits the same rows.
    """
    if not value:
        return str(uuid4())

    if is_valid_uuid(value):
        return str(UUID(value))

    return str(uuid_module.uuid5(ROTATION_NAMESPACE, value))


def _json_list(value) -> list:
    if not value:
        return []
    return json.loads(value) if isinstance(value, str) else list(value)


def _json_dict(value) -> dict:
    if not value:
        return {}
    return json.loads(value) if isinstance(value, str) else dict(value)


class DatabaseService(RecordStore):
    """Azure SQL implementation of the rotation record store."""

    def __init__(
        self,
        server: str,
        database: str,
        username: str,
        password: str,
        max_workers: int = 5
    ):
        """
        Initialize database service.

        Args:
            server: Azure SQL server (e.g., fablino-db.database.windows.net)
            database: Database name
            username: SQL username
            password: SQL password
            max_workers: Thread pool size for blocking pyodbc calls
        """
        self.connection_string = (
            f"Driver={{ODBC Driver 18 for SQL Server}};"
            f"Server=tcp:{server},1433;"
            f"Database={database};"
            f"Uid={username};"
            f"Pwd={password};"
            f"Encrypt=yes;TrustServerCertificate=no;Connection Timeout=30;"
        )
        self._executor = ThreadPoolExecutor(max_workers=max_workers)

    @classmethod
    def from_settings(cls, settings) -> "DatabaseService":
        if not settings.has_azure_sql_credentials():
            raise RecordStoreError("Azure SQL credentials are not configured")
        return cls(
            server=settings.azure_sql_server,
            database=settings.azure_sql_database,
            username=settings.azure_sql_username,
            password=settings.azure_sql_password,
        )

    def _get_connection(self) -> pyodbc.Connection:
        """Get a database connection."""
        return pyodbc.connect(self.connection_string)

    async def _run_async(self, func, *args, **kwargs):
        """Run a sync function in the thread pool, wrapping driver errors."""
        loop = asyncio.get_running_loop()
        started = time.monotonic()
        try:
            return await loop.run_in_executor(
                self._executor,
                lambda: func(*args, **kwargs)
            )
        except pyodbc.Error as e:
            raise RecordStoreError(f"{func.__name__} failed: {e}") from e
        finally:
            logger.debug(f"[DB] {func.__name__} ({time.monotonic() - started:.3f}s)")

    def _fetchone(self, query: str, params: tuple):
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchone()

    def _fetchall(self, query: str, params: tuple):
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()

    # =========================================================================
    # Learning Themes
    # =========================================================================

    def _get_learning_config_sync(self, kid_profile_id: str) -> Optional[LearningConfig]:
        row = self._fetchone(
            "SELECT active_themes, frequency FROM parent_learning_config WHERE kid_profile_id = ?",
            (to_uuid(kid_profile_id),)
        )
        if not row:
            return None
        return LearningConfig(
            kid_profile_id=kid_profile_id,
            active_themes=_json_list(row.active_themes),
            frequency=row.frequency,
        )

    async def get_learning_config(self, kid_profile_id: str) -> Optional[LearningConfig]:
        return await self._run_async(self._get_learning_config_sync, kid_profile_id)

    def _count_stories_since_last_theme_sync(self, kid_profile_id: str) -> int:
        kid_uuid = to_uuid(kid_profile_id)
        row = self._fetchone("""
            SELECT COUNT(*) AS story_count
            FROM stories
            WHERE kid_profile_id = ?
              AND learning_theme_applied IS NULL
              AND created_at > COALESCE(
                  (SELECT MAX(created_at) FROM stories
                   WHERE kid_profile_id = ? AND learning_theme_applied IS NOT NULL),
                  '1970-01-01T00:00:00'
              )
        """, (kid_uuid, kid_uuid))
        return int(row.story_count) if row else 0

    async def count_stories_since_last_theme(self, kid_profile_id: str) -> Optional[int]:
        return await self._run_async(self._count_stories_since_last_theme_sync, kid_profile_id)

    def _get_last_themed_story_sync(self, kid_profile_id: str) -> Optional[StoryHistoryRecord]:
        row = self._fetchone("""
            SELECT TOP 1 id, created_at, learning_theme_applied
            FROM stories
            WHERE kid_profile_id = ? AND learning_theme_applied IS NOT NULL
            ORDER BY created_at DESC
        """, (to_uuid(kid_profile_id),))
        if not row:
            return None
        return StoryHistoryRecord(
            story_id=str(row.id),
            kid_profile_id=kid_profile_id,
            created_at=as_utc(row.created_at),
            learning_theme_applied=row.learning_theme_applied,
        )

    async def get_last_themed_story(self, kid_profile_id: str) -> Optional[StoryHistoryRecord]:
        return await self._run_async(self._get_last_themed_story_sync, kid_profile_id)

    def _count_unthemed_stories_since_sync(self, kid_profile_id: str, since: Optional[datetime]) -> int:
        since = (as_utc(since) or EPOCH).astimezone(timezone.utc).replace(tzinfo=None)
        row = self._fetchone("""
            SELECT COUNT(*) AS story_count FROM stories
            WHERE kid_profile_id = ? AND created_at > ? AND learning_theme_applied IS NULL
        """, (to_uuid(kid_profile_id), since))
        return int(row.story_count) if row else 0

    async def count_unthemed_stories_since(self, kid_profile_id: str, since: Optional[datetime]) -> int:
        return await self._run_async(self._count_unthemed_stories_since_sync, kid_profile_id, since)

    def _get_learning_theme_sync(self, theme_key: str) -> Optional[ThemeCatalogEntry]:
        row = self._fetchone("SELECT labels FROM learning_themes WHERE theme_key = ?", (theme_key,))
        if not row:
            return None
        return ThemeCatalogEntry(theme_key=theme_key, labels=_json_dict(row.labels))

    async def get_learning_theme(self, theme_key: str) -> Optional[ThemeCatalogEntry]:
        return await self._run_async(self._get_learning_theme_sync, theme_key)

    def _get_custom_theme_sync(self, custom_id: str) -> Optional[CustomTheme]:
        row = self._fetchone(
            "SELECT name, story_guidance FROM custom_learning_themes WHERE id = ?",
            (custom_id,)
        )
        if not row:
            return None
        return CustomTheme(id=custom_id, name=_json_dict(row.name), story_guidance=row.story_guidance)

    async def get_custom_theme(self, custom_id: str) -> Optional[CustomTheme]:
        return await self._run_async(self._get_custom_theme_sync, custom_id)

    # =========================================================================
    # Story Subtypes
    # =========================================================================

    def _list_subtypes_sync(self, category: ThemeCategory, age_group: AgeGroup) -> List[SubtypeCatalogEntry]:
        rows = self._fetchall("""
            SELECT subtype_key, labels, prompt_hint_en, title_seeds, setting_ideas,
                   age_groups, weight, is_active
            FROM story_subtypes
            WHERE theme_key = ? AND is_active = 1
              AND EXISTS (SELECT 1 FROM OPENJSON(age_groups) WHERE value = ?)
        """, (category.value, age_group.value))

        return [
            SubtypeCatalogEntry(
                subtype_key=row.subtype_key,
                theme_category=category,
                labels=_json_dict(row.labels),
                prompt_hint=row.prompt_hint_en or "",
                title_seeds=_json_list(row.title_seeds),
                setting_ideas=_json_list(row.setting_ideas),
                age_groups=_json_list(row.age_groups),
                weight=row.weight,
                is_active=bool(row.is_active),
            )
            for row in rows
        ]

    async def list_subtypes(self, category: ThemeCategory, age_group: AgeGroup) -> List[SubtypeCatalogEntry]:
        return await self._run_async(self._list_subtypes_sync, category, age_group)

    def _get_recent_subtype_keys_sync(self, kid_profile_id: str, category: ThemeCategory, limit: int) -> List[str]:
        rows = self._fetchall("""
            SELECT TOP (?) subtype_key FROM story_subtype_history
            WHERE kid_profile_id = ? AND theme_key = ?
            ORDER BY created_at DESC
        """, (int(limit), to_uuid(kid_profile_id), category.value))
        return [row.subtype_key for row in rows]

    async def get_recent_subtype_keys(self, kid_profile_id: str, category: ThemeCategory, limit: int) -> List[str]:
        return await self._run_async(self._get_recent_subtype_keys_sync, kid_profile_id, category, limit)

    def _insert_subtype_history_sync(self, record: SubtypeHistoryRecord) -> SubtypeHistoryRecord:
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO story_subtype_history (kid_profile_id, theme_key, subtype_key, story_id, created_at)
                VALUES (?, ?, ?, ?, ?)
            """, (
                to_uuid(record.kid_profile_id),
                record.theme_category.value,
                record.subtype_key,
                record.story_id,
                record.created_at.astimezone(timezone.utc).replace(tzinfo=None),
            ))
            conn.commit()
        return record

    async def insert_subtype_history(self, record: SubtypeHistoryRecord) -> SubtypeHistoryRecord:
        return await self._run_async(self._insert_subtype_history_sync, record)
