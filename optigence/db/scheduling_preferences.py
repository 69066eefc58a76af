"""Database operations for user scheduling preferences."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from optigence.core.logging import get_logger
from optigence.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "scheduling_preferences"


class PreferenceStoreError(Exception):
    """Raised when the preference store cannot be read or written."""


def get_scheduling_preferences(user_id: UUID) -> dict | None:
    """
    Get the stored scheduling preference row for a user.

    Args:
        user_id: User UUID

    Returns:
        Row dict, or None if the user has never saved preferences

    Raises:
        PreferenceStoreError: If the Supabase query fails
    """
    supabase = get_supabase()
    try:
        result = (
            supabase.table(TABLE)
            .select("*")
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.error(f"Failed to load scheduling preferences for {user_id}: {e}")
        raise PreferenceStoreError(f"Failed to load scheduling preferences: {e}") from e

    return result.data[0] if result.data else None


def upsert_scheduling_preferences(user_id: UUID, preferences: dict[str, Any]) -> dict:
    """
    Create or replace a user's scheduling preferences.

    Args:
        user_id: User UUID
        preferences: JSON-safe preference payload (business_hours,
            preferred_slots, blocked_times, timezone)

    Returns:
        The stored row

    Raises:
        PreferenceStoreError: If the write fails or returns nothing
    """
    supabase = get_supabase()
    row = {
        "user_id": str(user_id),
        **preferences,
        "updated_at": datetime.now(UTC).isoformat(),
    }

    try:
        result = supabase.table(TABLE).upsert(row, on_conflict="user_id").execute()
    except Exception as e:
        logger.error(f"Failed to save scheduling preferences for {user_id}: {e}")
        raise PreferenceStoreError(f"Failed to save scheduling preferences: {e}") from e

    if not result.data:
        raise PreferenceStoreError("Preference upsert returned no data")

    logger.info(f"Saved scheduling preferences for user {user_id}")
    return result.data[0]
