"""Calendar availability and scheduling preference endpoints."""

import logging
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException

from optigence.core.auth_middleware import AuthContext, get_current_user, require_auth
from optigence.core.google_calendar_service import (
    CalendarNotConfiguredError,
    CalendarServiceError,
)
from optigence.core.schemas_scheduling import FreeBusyRequest, FreeBusyResponse, UserPreference
from optigence.db.scheduling_preferences import PreferenceStoreError
from optigence.services import scheduling_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calendar", tags=["calendar"])


def _calendar_http_error(error: CalendarServiceError) -> HTTPException:
    status_code = 503 if isinstance(error, CalendarNotConfiguredError) else 502
    return HTTPException(
        status_code=status_code,
        detail={"error": str(error), "error_code": error.error_code},
    )


def _preferences_http_error(error: PreferenceStoreError) -> HTTPException:
    return HTTPException(
        status_code=502,
        detail={"error": str(error), "error_code": "preferences_unavailable"},
    )


@router.post("/freebusy", response_model=FreeBusyResponse)
async def calendar_free_busy(
    request: FreeBusyRequest,
    auth: Optional[AuthContext] = Depends(get_current_user),
):
    """
    Busy times in the window plus the best-scoring open meeting slots.

    Anonymous callers get default preferences and the server calendar.
    """
    user_id = auth.user_id if auth else None
    request_id = str(uuid4())

    try:
        return await scheduling_service.propose_meeting_slots(
            request, user_id=user_id, request_id=request_id
        )
    except CalendarServiceError as e:
        logger.warning(f"Calendar free/busy {request_id} failed ({e.error_code}): {e}")
        raise _calendar_http_error(e) from e
    except PreferenceStoreError as e:
        logger.error(f"Preference lookup failed for {user_id}: {e}")
        raise _preferences_http_error(e) from e


@router.get("/preferences", response_model=UserPreference)
async def get_preferences(auth: AuthContext = Depends(require_auth)):
    """Get the caller's scheduling preferences (defaults if none stored)."""
    try:
        return scheduling_service.load_user_preference(auth.user_id)
    except PreferenceStoreError as e:
        raise _preferences_http_error(e) from e


@router.put("/preferences", response_model=UserPreference)
async def update_preferences(
    preference: UserPreference,
    auth: AuthContext = Depends(require_auth),
):
    """Replace the caller's scheduling preferences."""
    try:
        saved = scheduling_service.save_user_preference(auth.user_id, preference)
    except PreferenceStoreError as e:
        logger.error(f"Failed to save preferences for {auth.user_id}: {e}")
        raise _preferences_http_error(e) from e

    logger.info(f"Updated scheduling preferences for {auth.user_id}")
    return saved
