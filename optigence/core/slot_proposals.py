"""Meeting slot proposal algorithm.

Pipeline:
1. Normalize the provider's busy intervals into aware datetimes
2. Generate candidate slots every 30 minutes across the window
3. Mark candidates that conflict with a busy interval as unavailable
4. Score each candidate against the user's scheduling preferences
5. Rank available candidates by score and keep the top N

Every function here is pure. The caller supplies all inputs, including the
clock used to timestamp responses, so results are reproducible.
"""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from typing import Any, Iterable
from zoneinfo import ZoneInfo

from dateutil import parser as dateutil_parser

from optigence.core.schemas_scheduling import WEEKDAYS, UserPreference

SLOT_STEP = timedelta(minutes=30)
DEFAULT_MAX_SLOTS = 3

BUSINESS_HOURS_BONUS = 50
PREFERENCE_WEIGHTS = {"high": 30, "medium": 20}
DEFAULT_PREFERENCE_WEIGHT = 10
OFF_HOURS_PENALTY = 20
EARLY_BONUS_CUTOFF_HOUR = 18

CONFLICT_REASON = "Conflicts with existing appointment"


@dataclass(frozen=True)
class TimeWindow:
    """The span to search for a meeting."""

    start: datetime
    end: datetime
    timezone: str = "UTC"


@dataclass(frozen=True)
class BusyInterval:
    """A provider-reported conflict."""

    start: datetime
    end: datetime

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True)
class CandidateSlot:
    """A proposed meeting placement."""

    start: datetime
    end: datetime
    available: bool = True
    score: int = 0
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "available": self.available,
            "score": self.score,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class SlotProposal:
    """All candidates considered plus the ranked subset returned to callers."""

    candidates: list[CandidateSlot] = field(default_factory=list)
    proposed: list[CandidateSlot] = field(default_factory=list)

    @property
    def available_count(self) -> int:
        return sum(1 for slot in self.candidates if slot.available)


def _parse_instant(value: str | datetime) -> datetime:
    parsed = value if isinstance(value, datetime) else dateutil_parser.isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def normalize_busy_intervals(raw_busy: Iterable[dict[str, Any]]) -> list[BusyInterval]:
    """
    Convert provider busy entries into BusyInterval objects.

    Args:
        raw_busy: Iterable of {"start": iso8601, "end": iso8601} dicts

    Returns:
        BusyIntervals in input order (naive timestamps are taken as UTC)

    Raises:
        KeyError: If an entry lacks start or end
        ValueError: If a timestamp is not ISO-8601
    """
    return [
        BusyInterval(start=_parse_instant(entry["start"]), end=_parse_instant(entry["end"]))
        for entry in raw_busy
    ]


def generate_candidate_slots(
    window_start: datetime,
    window_end: datetime,
    duration_minutes: int,
) -> list[CandidateSlot]:
    """
    Propose a slot at every 30-minute step from window_start.

    Each start is computed as window_start + k * step so no datetime is
    mutated across iterations. Generation stops once a slot would end past
    window_end; a window shorter than the duration yields no slots.
    """
    duration = timedelta(minutes=duration_minutes)
    slots: list[CandidateSlot] = []

    k = 0
    while True:
        start = window_start + k * SLOT_STEP
        end = start + duration
        if end > window_end:
            break
        slots.append(CandidateSlot(start=start, end=end))
        k += 1

    return slots


def conflicts_with(slot_start: datetime, slot_end: datetime, busy: BusyInterval) -> bool:
    """
    Three-clause conflict test.

    A slot conflicts when it starts inside the busy interval, ends inside it,
    or fully contains it. Boundaries follow [start, end) for the start clause
    and (start, end] for the end clause.
    """
    return (
        (busy.start <= slot_start < busy.end)
        or (busy.start < slot_end <= busy.end)
        or (slot_start <= busy.start and slot_end >= busy.end)
    )


def is_slot_available(slot: CandidateSlot, busy_intervals: Iterable[BusyInterval]) -> bool:
    return not any(conflicts_with(slot.start, slot.end, busy) for busy in busy_intervals)


def mark_availability(
    slots: Iterable[CandidateSlot],
    busy_intervals: Iterable[BusyInterval],
) -> list[CandidateSlot]:
    """Return copies of the slots with `available` set by the conflict test."""
    busy = list(busy_intervals)
    marked = []
    for slot in slots:
        available = is_slot_available(slot, busy)
        marked.append(
            replace(slot, available=available, reason="" if available else CONFLICT_REASON)
        )
    return marked


def _local_time(instant: datetime, timezone: str) -> datetime:
    return instant.astimezone(ZoneInfo(timezone))


def score_slot(slot_start: datetime, preference: UserPreference, timezone: str = "UTC") -> int:
    """
    Score a slot start against the user's preferences.

    Hour and weekday are read in `timezone`. Scores are relative and only
    meaningful for ordering.
    """
    local = _local_time(slot_start, timezone)
    hour = local.hour
    day_name = WEEKDAYS[local.weekday()]
    score = 0

    hours = preference.business_hours
    if day_name in hours.days and hours.start_hour <= hour <= hours.end_hour:
        score += BUSINESS_HOURS_BONUS

    for preferred in preference.preferred_ranges:
        if preferred.start_hour <= hour <= preferred.end_hour:
            score += PREFERENCE_WEIGHTS.get(preferred.preference, DEFAULT_PREFERENCE_WEIGHT)

    if hour < 8 or hour > 18:
        score -= OFF_HOURS_PENALTY

    score += max(0, EARLY_BONUS_CUTOFF_HOUR - hour)

    return score


def _describe(slot_start: datetime, preference: UserPreference, timezone: str) -> str:
    """Human-readable summary of what the score rewarded."""
    local = _local_time(slot_start, timezone)
    hour = local.hour
    notes = []

    hours = preference.business_hours
    if WEEKDAYS[local.weekday()] in hours.days and hours.start_hour <= hour <= hours.end_hour:
        notes.append("within business hours")

    labels = [
        p.preference for p in preference.preferred_ranges if p.start_hour <= hour <= p.end_hour
    ]
    if labels:
        notes.append(f"preferred window ({', '.join(labels)})")

    if hour < 8 or hour > 18:
        notes.append("outside normal working hours")

    if not notes:
        return "Available"
    summary = "; ".join(notes)
    return summary[0].upper() + summary[1:]


def score_slots(
    slots: Iterable[CandidateSlot],
    preference: UserPreference,
    timezone: str = "UTC",
) -> list[CandidateSlot]:
    """Attach a score to every slot; available slots also get a reason."""
    scored = []
    for slot in slots:
        score = score_slot(slot.start, preference, timezone)
        reason = _describe(slot.start, preference, timezone) if slot.available else slot.reason
        scored.append(replace(slot, score=score, reason=reason))
    return scored


def rank_slots(slots: Iterable[CandidateSlot], limit: int | None = DEFAULT_MAX_SLOTS) -> list[CandidateSlot]:
    """
    Keep available slots, best score first, truncated to `limit`.

    sorted() is stable, so equal scores stay in chronological order.
    An empty result is a valid answer, not an error.
    """
    available = [slot for slot in slots if slot.available]
    ranked = sorted(available, key=lambda slot: slot.score, reverse=True)
    if limit is None:
        return ranked
    return ranked[:limit]


def propose_slots(
    window: TimeWindow,
    duration_minutes: int,
    busy_intervals: Iterable[BusyInterval],
    preference: UserPreference,
    limit: int | None = DEFAULT_MAX_SLOTS,
) -> SlotProposal:
    """
    Run the full pipeline for one window.

    Args:
        window: Search window (timezone drives the scoring clock)
        duration_minutes: Meeting length, already validated to 15-480
        busy_intervals: Conflicts from the calendar provider (and blocked times)
        preference: Preferences to score against
        limit: Max slots to return (None for all)

    Returns:
        SlotProposal with every candidate and the ranked top slots
    """
    candidates = generate_candidate_slots(window.start, window.end, duration_minutes)
    candidates = mark_availability(candidates, busy_intervals)
    candidates = score_slots(candidates, preference, window.timezone)
    return SlotProposal(candidates=candidates, proposed=rank_slots(candidates, limit))
