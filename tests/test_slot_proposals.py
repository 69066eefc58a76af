"""Tests for the slot generation, conflict, scoring and ranking pipeline."""

from datetime import UTC, datetime, timedelta

import pytest

from optigence.core.schemas_scheduling import BusinessHours, PreferredRange, UserPreference
from optigence.core.slot_proposals import (
    CONFLICT_REASON,
    BusyInterval,
    CandidateSlot,
    TimeWindow,
    conflicts_with,
    generate_candidate_slots,
    mark_availability,
    normalize_busy_intervals,
    propose_slots,
    rank_slots,
    score_slot,
)

# 2025-01-06 is a Monday
MONDAY_9 = datetime(2025, 1, 6, 9, 0, tzinfo=UTC)
MONDAY_17 = datetime(2025, 1, 6, 17, 0, tzinfo=UTC)


def _at(hour: int, minute: int = 0, day: int = 6) -> datetime:
    return datetime(2025, 1, day, hour, minute, tzinfo=UTC)


@pytest.fixture
def workday_window():
    return TimeWindow(start=MONDAY_9, end=MONDAY_17)


@pytest.fixture
def default_preference():
    return UserPreference()


class TestNormalizeBusyIntervals:
    def test_parses_iso_strings(self):
        busy = normalize_busy_intervals(
            [{"start": "2025-01-06T10:00:00Z", "end": "2025-01-06T11:00:00Z"}]
        )

        assert busy == [BusyInterval(start=_at(10), end=_at(11))]

    def test_offsets_are_preserved_as_instants(self):
        busy = normalize_busy_intervals(
            [{"start": "2025-01-06T05:00:00-05:00", "end": "2025-01-06T06:00:00-05:00"}]
        )

        assert busy[0].start == _at(10)
        assert busy[0].end == _at(11)

    def test_naive_timestamps_are_utc(self):
        busy = normalize_busy_intervals([{"start": "2025-01-06T10:00:00", "end": "2025-01-06T11:00:00"}])

        assert busy[0].start.tzinfo is not None
        assert busy[0].start == _at(10)

    def test_missing_key_raises(self):
        with pytest.raises(KeyError):
            normalize_busy_intervals([{"start": "2025-01-06T10:00:00Z"}])

    def test_garbage_timestamp_raises(self):
        with pytest.raises(ValueError):
            normalize_busy_intervals([{"start": "not a date", "end": "2025-01-06T11:00:00Z"}])


class TestGenerateCandidateSlots:
    def test_every_slot_has_requested_duration(self):
        slots = generate_candidate_slots(MONDAY_9, MONDAY_17, 45)

        assert slots
        assert all(s.end - s.start == timedelta(minutes=45) for s in slots)

    def test_no_slot_ends_after_window(self):
        slots = generate_candidate_slots(MONDAY_9, _at(12, 10), 60)

        assert all(s.end <= _at(12, 10) for s in slots)
        assert slots[-1].start == _at(11)

    def test_starts_step_every_30_minutes(self):
        slots = generate_candidate_slots(MONDAY_9, MONDAY_17, 60)

        assert len(slots) == 15
        assert slots[0].start == MONDAY_9
        assert slots[-1].start == _at(16)
        for k, slot in enumerate(slots):
            assert slot.start == MONDAY_9 + k * timedelta(minutes=30)

    def test_step_does_not_depend_on_duration(self):
        slots = generate_candidate_slots(MONDAY_9, _at(11), 15)

        assert [s.start for s in slots] == [_at(9), _at(9, 30), _at(10), _at(10, 30)]

    def test_window_shorter_than_duration_is_empty(self):
        assert generate_candidate_slots(MONDAY_9, _at(9, 30), 60) == []

    def test_window_equal_to_duration_yields_one_slot(self):
        slots = generate_candidate_slots(MONDAY_9, MONDAY_17, 480)

        assert len(slots) == 1
        assert slots[0].start == MONDAY_9
        assert slots[0].end == MONDAY_17


class TestConflicts:
    busy = BusyInterval(start=_at(10), end=_at(11))

    def test_slot_starting_inside_busy(self):
        assert conflicts_with(_at(10, 30), _at(11, 30), self.busy)

    def test_slot_ending_inside_busy(self):
        assert conflicts_with(_at(9, 30), _at(10, 30), self.busy)

    def test_slot_containing_busy(self):
        assert conflicts_with(_at(9), _at(12), self.busy)

    def test_slot_equal_to_busy(self):
        assert conflicts_with(_at(10), _at(11), self.busy)

    def test_back_to_back_before(self):
        assert not conflicts_with(_at(9), _at(10), self.busy)

    def test_back_to_back_after(self):
        assert not conflicts_with(_at(11), _at(12), self.busy)

    def test_mark_availability_sets_reason_on_conflict(self):
        slots = [CandidateSlot(start=_at(10), end=_at(11)), CandidateSlot(start=_at(11), end=_at(12))]

        marked = mark_availability(slots, [self.busy])

        assert [s.available for s in marked] == [False, True]
        assert marked[0].reason == CONFLICT_REASON
        # originals untouched
        assert slots[0].available is True


class TestScoring:
    def test_morning_preferred_slot(self, default_preference):
        # business hours +50, high range +30, 18 - 9 = +9
        assert score_slot(_at(9), default_preference) == 89

    def test_afternoon_medium_slot(self, default_preference):
        # +50, medium +20, 18 - 14 = +4
        assert score_slot(_at(14), default_preference) == 74

    def test_business_hours_end_is_inclusive(self, default_preference):
        # 17:00 is still within 9-17: +50, no range, +1
        assert score_slot(_at(17), default_preference) == 51

    def test_off_hours_penalty(self, default_preference):
        # 06:00: no business bonus, -20, +12
        assert score_slot(_at(6), default_preference) == -8
        # 20:00: -20, no early bonus
        assert score_slot(_at(20), default_preference) == -20

    def test_weekend_gets_no_business_bonus(self, default_preference):
        # 2025-01-11 is a Saturday: high range +30, +9
        assert score_slot(_at(9, day=11), default_preference) == 39

    def test_low_label_gets_default_weight(self):
        preference = UserPreference(
            preferred_ranges=[PreferredRange(start_hour=12, end_hour=13, preference="low")]
        )

        # +50, low +10, +6
        assert score_slot(_at(12), preference) == 66

    def test_overlapping_ranges_accumulate(self):
        preference = UserPreference(
            preferred_ranges=[
                PreferredRange(start_hour=9, end_hour=12, preference="high"),
                PreferredRange(start_hour=10, end_hour=11, preference="medium"),
            ]
        )

        # +50, +30, +20, +8
        assert score_slot(_at(10), preference) == 108

    def test_hour_is_read_in_window_timezone(self, default_preference):
        # 14:00 UTC is 09:00 in New York (EST)
        assert score_slot(_at(14), default_preference, "America/New_York") == 89

    def test_custom_business_days(self):
        preference = UserPreference(
            business_hours=BusinessHours(start_hour=9, end_hour=17, days=["saturday"]),
            preferred_ranges=[],
        )

        assert score_slot(_at(10, day=11), preference) == 58
        assert score_slot(_at(10), preference) == 8


class TestRanking:
    def test_only_available_slots_are_ranked(self):
        slots = [
            CandidateSlot(start=_at(9), end=_at(10), available=False, score=100),
            CandidateSlot(start=_at(10), end=_at(11), score=50),
        ]

        assert rank_slots(slots) == [slots[1]]

    def test_ties_keep_chronological_order(self):
        slots = [
            CandidateSlot(start=_at(9), end=_at(10), score=10),
            CandidateSlot(start=_at(10), end=_at(11), score=20),
            CandidateSlot(start=_at(11), end=_at(12), score=10),
        ]

        ranked = rank_slots(slots, limit=None)

        assert [s.start for s in ranked] == [_at(10), _at(9), _at(11)]

    def test_limit_truncates(self):
        slots = [CandidateSlot(start=_at(h), end=_at(h + 1), score=h) for h in range(9, 15)]

        assert len(rank_slots(slots, limit=2)) == 2
        assert len(rank_slots(slots)) == 3

    def test_fewer_than_limit_returns_all(self):
        slots = [CandidateSlot(start=_at(9), end=_at(10), score=1)]

        assert rank_slots(slots, limit=5) == slots

    def test_nothing_available_is_empty(self):
        slots = [CandidateSlot(start=_at(9), end=_at(10), available=False)]

        assert rank_slots(slots) == []


class TestProposeSlots:
    def test_open_workday_prefers_morning(self, workday_window, default_preference):
        proposal = propose_slots(workday_window, 60, [], default_preference)

        assert len(proposal.proposed) == 3
        assert proposal.proposed[0].start.hour in (9, 10)
        assert [s.start for s in proposal.proposed] == [_at(9), _at(9, 30), _at(10)]
        assert proposal.proposed[0].score == 89
        assert proposal.available_count == 15

    def test_busy_hour_excludes_overlapping_starts(self, workday_window, default_preference):
        busy = [BusyInterval(start=_at(10), end=_at(11))]

        proposal = propose_slots(workday_window, 60, busy, default_preference, limit=None)
        starts = [s.start for s in proposal.proposed]

        assert _at(10) not in starts
        assert _at(9, 30) not in starts
        assert _at(10, 30) not in starts
        assert _at(9) in starts
        assert _at(11) in starts
        assert len(proposal.candidates) == 15
        assert proposal.available_count == 12

    def test_full_window_duration_has_one_candidate(self, workday_window, default_preference):
        proposal = propose_slots(workday_window, 480, [], default_preference)

        assert len(proposal.candidates) == 1
        assert len(proposal.proposed) == 1

    def test_proposed_slots_never_overlap_busy(self, workday_window, default_preference):
        busy = [
            BusyInterval(start=_at(9, 15), end=_at(9, 45)),
            BusyInterval(start=_at(13), end=_at(14, 30)),
            BusyInterval(start=_at(16, 30), end=_at(18)),
        ]

        proposal = propose_slots(workday_window, 30, busy, default_preference, limit=None)

        for slot in proposal.proposed:
            for b in busy:
                assert slot.end <= b.start or slot.start >= b.end

    def test_is_deterministic(self, workday_window, default_preference):
        busy = [BusyInterval(start=_at(12), end=_at(13))]

        first = propose_slots(workday_window, 60, busy, default_preference)
        second = propose_slots(workday_window, 60, busy, default_preference)

        assert first == second

    def test_adding_busy_removes_only_conflicting_slots(self, workday_window, default_preference):
        base = [BusyInterval(start=_at(12), end=_at(13))]
        added = BusyInterval(start=_at(9), end=_at(10, 30))

        before = propose_slots(workday_window, 60, base, default_preference, limit=None)
        after = propose_slots(workday_window, 60, base + [added], default_preference, limit=None)

        before_by_start = {s.start: s for s in before.proposed}
        after_by_start = {s.start: s for s in after.proposed}
        removed = set(before_by_start) - set(after_by_start)

        assert set(after_by_start) <= set(before_by_start)
        assert removed == {
            s.start for s in before.proposed if conflicts_with(s.start, s.end, added)
        }
        assert removed == {_at(9), _at(9, 30), _at(10)}
        for start, slot in after_by_start.items():
            assert slot.score == before_by_start[start].score
            assert slot.reason == before_by_start[start].reason

    def test_fully_busy_window_is_empty(self, workday_window, default_preference):
        busy = [BusyInterval(start=MONDAY_9, end=MONDAY_17)]

        proposal = propose_slots(workday_window, 60, busy, default_preference)

        assert proposal.proposed == []
        assert proposal.available_count == 0

    def test_short_window_is_empty(self, default_preference):
        window = TimeWindow(start=MONDAY_9, end=_at(9, 30))

        proposal = propose_slots(window, 60, [], default_preference)

        assert proposal.candidates == []
        assert proposal.proposed == []

    def test_available_slots_get_readable_reason(self, workday_window, default_preference):
        proposal = propose_slots(workday_window, 60, [], default_preference, limit=1)

        assert proposal.proposed[0].reason == "Within business hours; preferred window (high)"
