"""Pydantic schemas for meeting slot proposals and scheduling preferences."""

from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

# datetime.weekday() order
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def _parse_hour(value: Any) -> int:
    """Accept 9, "9", "09:00" or "09:30:00" and return the hour."""
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip():
        return int(value.strip().split(":")[0])
    raise ValueError(f"Invalid hour value: {value!r}")


def _clock_strings_to_hours(data: Any) -> Any:
    """Map the stored {"start": "09:00", "end": "17:00"} shape onto hour fields."""
    if not isinstance(data, dict):
        return data
    data = dict(data)
    for key in ("start", "end"):
        if key in data and f"{key}_hour" not in data:
            data[f"{key}_hour"] = _parse_hour(data.pop(key))
    return data


def _ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _validate_timezone(value: str) -> str:
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {value}") from e
    return value


# ============================================================================
# Preferences
# ============================================================================


class BusinessHours(BaseModel):
    """Working hours used by the +50 business-hours bonus."""

    start_hour: int = Field(9, ge=0, le=23)
    end_hour: int = Field(17, ge=0, le=23)
    days: list[str] = Field(default_factory=lambda: list(WEEKDAYS[:5]))

    @model_validator(mode="before")
    @classmethod
    def accept_clock_strings(cls, data: Any) -> Any:
        return _clock_strings_to_hours(data)

    @field_validator("days")
    @classmethod
    def validate_days(cls, v: list[str]) -> list[str]:
        days = [d.strip().lower() for d in v]
        unknown = [d for d in days if d not in WEEKDAYS]
        if unknown:
            raise ValueError(f"Unknown weekday(s): {unknown}")
        return days


class PreferredRange(BaseModel):
    """An hour range the user prefers, weighted by preference label."""

    start_hour: int = Field(..., ge=0, le=23)
    end_hour: int = Field(..., ge=0, le=23)
    preference: str = Field("medium", description="high, medium, or anything else (low)")

    @model_validator(mode="before")
    @classmethod
    def accept_clock_strings(cls, data: Any) -> Any:
        return _clock_strings_to_hours(data)


class BlockedTime(BaseModel):
    """A user-declared interval that must never be proposed."""

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def make_aware(cls, v: datetime) -> datetime:
        return _ensure_aware(v)


def _default_preferred_ranges() -> list[PreferredRange]:
    return [
        PreferredRange(start_hour=9, end_hour=11, preference="high"),
        PreferredRange(start_hour=14, end_hour=16, preference="medium"),
    ]


class UserPreference(BaseModel):
    """Scheduling preferences for one user.

    Defaults: business hours 09:00-17:00 Monday-Friday, preferred ranges
    09:00-11:00 (high) and 14:00-16:00 (medium), no blocked times.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    business_hours: BusinessHours = Field(default_factory=BusinessHours)
    preferred_ranges: list[PreferredRange] = Field(
        default_factory=_default_preferred_ranges,
        validation_alias=AliasChoices("preferred_ranges", "preferred_slots"),
    )
    blocked_times: list[BlockedTime] = Field(default_factory=list)
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        return _validate_timezone(v)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "UserPreference":
        """Build from a stored row; NULL columns fall back to defaults."""
        return cls.model_validate({k: v for k, v in row.items() if v is not None})

    def to_row(self) -> dict[str, Any]:
        """JSON-safe columns for the scheduling_preferences table."""
        row = self.model_dump(mode="json")
        row["preferred_slots"] = row.pop("preferred_ranges")
        return row


# ============================================================================
# Free/busy request and response
# ============================================================================


class FreeBusyRequest(BaseModel):
    """Request for proposed meeting slots within a window."""

    model_config = ConfigDict(populate_by_name=True)

    window_start: datetime = Field(
        ..., validation_alias=AliasChoices("window_start", "windowStart")
    )
    window_end: datetime = Field(..., validation_alias=AliasChoices("window_end", "windowEnd"))
    duration: int = Field(
        60,
        ge=15,
        le=480,
        description="Meeting duration in minutes",
        validation_alias=AliasChoices("duration", "duration_minutes"),
    )
    timezone: str | None = Field(
        None, description="IANA timezone for scoring (defaults to the user's preference timezone)"
    )
    max_results: int | None = Field(
        None,
        ge=1,
        le=20,
        description="Number of slots to return (defaults to MAX_PROPOSED_SLOTS)",
        validation_alias=AliasChoices("max_results", "maxResults"),
    )

    @field_validator("window_start", "window_end")
    @classmethod
    def make_aware(cls, v: datetime) -> datetime:
        return _ensure_aware(v)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _validate_timezone(v)

    @model_validator(mode="after")
    def check_window_order(self) -> "FreeBusyRequest":
        if self.window_end <= self.window_start:
            raise ValueError("window_end must be after window_start")
        return self


class BusyTimeResponse(BaseModel):
    start: str
    end: str


class ProposedSlotResponse(BaseModel):
    start: str
    end: str
    available: bool
    score: int
    reason: str


class AvailabilityResponse(BaseModel):
    busy_times: list[BusyTimeResponse]
    user_preferences: dict[str, Any]
    proposed_slots: list[ProposedSlotResponse]


class FreeBusyMetadata(BaseModel):
    window_start: str
    window_end: str
    duration_minutes: int
    timezone: str
    generated_at: str
    duration_ms: int
    candidate_count: int
    available_count: int


class FreeBusyResponse(BaseModel):
    """Proposed slots plus the busy times and preferences that produced them."""

    availability: AvailabilityResponse
    metadata: FreeBusyMetadata
