"""Meeting slot proposal service.

Fetches preferences and busy intervals from the collaborators, runs the slot
proposal pipeline, and shapes the response. Collaborator failures propagate
unchanged; the pipeline never runs on partial or guessed data.
"""

import logging
import time
from datetime import UTC, datetime
from uuid import UUID

from pydantic import ValidationError

from optigence.core.config import get_settings
from optigence.core.google_calendar_service import (
    fetch_busy_intervals,
    resolve_calendar_credentials,
)
from optigence.core.logging import get_logger, log_with_context
from optigence.core.schemas_scheduling import (
    AvailabilityResponse,
    BusyTimeResponse,
    FreeBusyMetadata,
    FreeBusyRequest,
    FreeBusyResponse,
    ProposedSlotResponse,
    UserPreference,
)
from optigence.core.slot_proposals import BusyInterval, TimeWindow, propose_slots
from optigence.db import scheduling_preferences as preferences_db
from optigence.db.scheduling_preferences import PreferenceStoreError

logger = get_logger(__name__)


def load_user_preference(user_id: UUID | None) -> UserPreference:
    """
    Get a user's scheduling preferences, or the defaults.

    Anonymous callers and users without a stored row get the defaults.

    Raises:
        PreferenceStoreError: If the store fails or holds an unreadable row
    """
    if user_id is None:
        return UserPreference()

    row = preferences_db.get_scheduling_preferences(user_id)
    if row is None:
        logger.debug(f"No stored scheduling preferences for {user_id}, using defaults")
        return UserPreference()

    try:
        return UserPreference.from_row(row)
    except ValidationError as e:
        raise PreferenceStoreError(f"Stored scheduling preferences are invalid: {e}") from e


def save_user_preference(user_id: UUID, preference: UserPreference) -> UserPreference:
    """Persist preferences and return what the store now holds."""
    row = preferences_db.upsert_scheduling_preferences(user_id, preference.to_row())
    try:
        return UserPreference.from_row(row)
    except ValidationError as e:
        raise PreferenceStoreError(f"Stored scheduling preferences are invalid: {e}") from e


def _request_window(request: FreeBusyRequest, preference: UserPreference) -> TimeWindow:
    return TimeWindow(
        start=request.window_start,
        end=request.window_end,
        timezone=request.timezone or preference.timezone,
    )


def build_free_busy_response(
    request: FreeBusyRequest,
    busy_intervals: list[BusyInterval],
    preference: UserPreference,
    generated_at: datetime,
    limit: int,
    duration_ms: int = 0,
) -> FreeBusyResponse:
    """
    Run the slot pipeline and shape the response.

    Blocked times from the preferences are treated as additional busy
    intervals for conflict checks but are not echoed in busy_times. Slots are
    scored on the request timezone, or the preference timezone when the
    request names none.
    """
    window = _request_window(request, preference)
    blocked = [BusyInterval(start=b.start, end=b.end) for b in preference.blocked_times]

    proposal = propose_slots(
        window,
        request.duration,
        busy_intervals + blocked,
        preference,
        limit=limit,
    )

    return FreeBusyResponse(
        availability=AvailabilityResponse(
            busy_times=[BusyTimeResponse(**b.to_dict()) for b in busy_intervals],
            user_preferences=preference.model_dump(mode="json"),
            proposed_slots=[ProposedSlotResponse(**s.to_dict()) for s in proposal.proposed],
        ),
        metadata=FreeBusyMetadata(
            window_start=request.window_start.isoformat(),
            window_end=request.window_end.isoformat(),
            duration_minutes=request.duration,
            timezone=window.timezone,
            generated_at=generated_at.isoformat(),
            duration_ms=duration_ms,
            candidate_count=len(proposal.candidates),
            available_count=proposal.available_count,
        ),
    )


async def propose_meeting_slots(
    request: FreeBusyRequest,
    user_id: UUID | None = None,
    now: datetime | None = None,
    request_id: str | None = None,
) -> FreeBusyResponse:
    """
    Propose the best meeting slots for a caller.

    Args:
        request: Validated free/busy request
        user_id: Authenticated caller, or None for anonymous
        now: Clock override for the response timestamp
        request_id: Correlation id attached to the completion log line

    Returns:
        FreeBusyResponse with up to max_results proposed slots

    Raises:
        PreferenceStoreError: Preference store failure
        CalendarServiceError: Calendar collaborator failure (any subclass)
    """
    started = time.monotonic()
    generated_at = now or datetime.now(UTC)
    settings = get_settings()

    preference = load_user_preference(user_id)

    window = _request_window(request, preference)
    credentials = resolve_calendar_credentials(user_id)
    busy_intervals = await fetch_busy_intervals(window, credentials)

    limit = request.max_results or settings.MAX_PROPOSED_SLOTS
    response = build_free_busy_response(
        request,
        busy_intervals,
        preference,
        generated_at=generated_at,
        limit=limit,
    )
    response.metadata.duration_ms = int((time.monotonic() - started) * 1000)

    log_with_context(
        logger,
        logging.INFO,
        "Calendar free/busy completed",
        request_id=request_id,
        busy_periods=len(busy_intervals),
        candidates=response.metadata.candidate_count,
        proposed_slots=len(response.availability.proposed_slots),
        duration_ms=response.metadata.duration_ms,
    )
    return response
