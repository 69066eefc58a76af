"""Google Calendar free/busy client.

Resolves which refresh token to use for a caller, exchanges it for an access
token, and queries the Calendar API v3 `freeBusy` endpoint via httpx.

Every failure is raised as a CalendarServiceError subclass. A failed lookup
is never reported as "no busy intervals".
"""

import logging
from dataclasses import dataclass
from uuid import UUID

import httpx
from cryptography.fernet import InvalidToken

from optigence.core.config import get_settings
from optigence.core.google_auth_helper import exchange_refresh_for_access
from optigence.core.slot_proposals import BusyInterval, TimeWindow, normalize_busy_intervals
from optigence.db import calendar_integrations as integrations_db

logger = logging.getLogger(__name__)

CALENDAR_API_URL = "https://www.googleapis.com/calendar/v3"
DEFAULT_CALENDAR_ID = "primary"


class CalendarServiceError(Exception):
    """Base error for calendar collaborator failures."""

    error_code = "calendar_unavailable"


class CalendarNotConfiguredError(CalendarServiceError):
    """No OAuth client or refresh token is available."""

    error_code = "calendar_not_configured"


class CalendarAuthError(CalendarServiceError):
    """Google rejected the refresh token exchange."""

    error_code = "calendar_auth_failed"


class CalendarProviderError(CalendarServiceError):
    """freeBusy failed, timed out, or returned an unusable payload."""

    error_code = "calendar_unavailable"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class CalendarCredentials:
    """Refresh token plus the calendar it grants access to."""

    refresh_token: str
    calendar_id: str = DEFAULT_CALENDAR_ID
    encrypted: bool = True


def resolve_calendar_credentials(user_id: UUID | None) -> CalendarCredentials:
    """
    Pick the refresh token for a caller.

    Authenticated users with an active integration use their own (encrypted)
    token and calendar. Everyone else uses the server-level GCAL_REFRESH_TOKEN
    against the primary calendar.

    Raises:
        CalendarNotConfiguredError: If neither source has a token
        CalendarProviderError: If the integration lookup fails
    """
    if user_id is not None:
        try:
            integration = integrations_db.get_integration(user_id)
        except Exception as e:
            raise CalendarProviderError(f"Failed to load calendar integration: {e}") from e

        if integration and integration.get("google_refresh_token"):
            return CalendarCredentials(
                refresh_token=integration["google_refresh_token"],
                calendar_id=integration.get("calendar_id") or DEFAULT_CALENDAR_ID,
                encrypted=True,
            )

    settings = get_settings()
    if settings.GCAL_REFRESH_TOKEN:
        return CalendarCredentials(
            refresh_token=settings.GCAL_REFRESH_TOKEN,
            calendar_id=DEFAULT_CALENDAR_ID,
            encrypted=False,
        )

    raise CalendarNotConfiguredError("Google Calendar credentials not configured")


async def query_free_busy(
    window: TimeWindow,
    access_token: str,
    calendar_id: str = DEFAULT_CALENDAR_ID,
    timeout: float = 10,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[BusyInterval]:
    """
    Query busy intervals for one calendar.

    Args:
        window: Time window to query
        access_token: Google access token
        calendar_id: Calendar to check
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests)

    Returns:
        BusyIntervals as reported by Google (order not guaranteed)

    Raises:
        CalendarProviderError: On HTTP/network errors, per-calendar errors,
            or malformed busy entries
    """
    body = {
        "timeMin": window.start.isoformat(),
        "timeMax": window.end.isoformat(),
        "timeZone": window.timezone,
        "items": [{"id": calendar_id}],
    }

    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.post(
                f"{CALENDAR_API_URL}/freeBusy",
                headers={"Authorization": f"Bearer {access_token}"},
                json=body,
            )
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPStatusError as e:
        logger.error(f"Google FreeBusy error: status={e.response.status_code}")
        raise CalendarProviderError(
            "Failed to query calendar availability", status_code=e.response.status_code
        ) from e
    except httpx.RequestError as e:
        logger.error(f"Google FreeBusy request failed: {e}")
        raise CalendarProviderError(f"Calendar provider unreachable: {e}") from e
    except ValueError as e:
        raise CalendarProviderError("freeBusy response was not valid JSON") from e

    calendar = (data.get("calendars") or {}).get(calendar_id)
    if calendar is None:
        raise CalendarProviderError(f"Calendar {calendar_id} missing from freeBusy response")

    errors = calendar.get("errors") or []
    if errors:
        reasons = ", ".join(err.get("reason", "unknown") for err in errors)
        raise CalendarProviderError(f"Calendar {calendar_id} returned errors: {reasons}")

    try:
        return normalize_busy_intervals(calendar.get("busy") or [])
    except (KeyError, TypeError, ValueError) as e:
        raise CalendarProviderError(f"Malformed busy interval from provider: {e}") from e


async def fetch_busy_intervals(
    window: TimeWindow,
    credentials: CalendarCredentials,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[BusyInterval]:
    """
    Exchange credentials for an access token and return busy intervals.

    Raises:
        CalendarNotConfiguredError: OAuth client or encryption key missing
        CalendarAuthError: Token could not be decrypted or was rejected
        CalendarProviderError: Google unreachable or freeBusy failed
    """
    if timeout is None:
        timeout = get_settings().GOOGLE_CALENDAR_TIMEOUT_SECONDS

    try:
        access_token = await exchange_refresh_for_access(
            credentials.refresh_token,
            encrypted=credentials.encrypted,
            timeout=timeout,
            transport=transport,
        )
    except ValueError as e:
        raise CalendarNotConfiguredError(str(e)) from e
    except InvalidToken as e:
        raise CalendarAuthError("Stored refresh token could not be decrypted") from e
    except httpx.HTTPStatusError as e:
        logger.error(f"Google token refresh error: status={e.response.status_code}")
        raise CalendarAuthError("Failed to refresh Google Calendar access token") from e
    except KeyError as e:
        raise CalendarAuthError("Token response did not include an access token") from e
    except httpx.RequestError as e:
        raise CalendarProviderError(f"Google token endpoint unreachable: {e}") from e

    busy = await query_free_busy(
        window,
        access_token,
        calendar_id=credentials.calendar_id,
        timeout=timeout,
        transport=transport,
    )
    logger.info(f"Google FreeBusy returned {len(busy)} busy intervals for {credentials.calendar_id}")
    return busy
