"""Database operations for per-user Google Calendar integrations."""

from uuid import UUID

from optigence.core.logging import get_logger
from optigence.db.supabase_client import get_supabase

logger = get_logger(__name__)


def get_integration(user_id: UUID) -> dict | None:
    """Get a user's active calendar integration row, if any."""
    supabase = get_supabase()
    result = (
        supabase.table("calendar_integration")
        .select("*")
        .eq("user_id", str(user_id))
        .eq("is_active", True)
        .execute()
    )
    return result.data[0] if result.data else None
