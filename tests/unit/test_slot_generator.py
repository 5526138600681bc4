"""Test candidate slot generation."""

import pytest

from slotbook.services.scheduling.clock import Interval, format_minutes
from slotbook.services.scheduling.resolver import WorkingWindow
from slotbook.services.scheduling.slots import generate_candidates


def times(candidates):
    return [format_minutes(candidate) for candidate in candidates]


class TestGenerateCandidates:
    def test_lunch_split_day(self):
        window = WorkingWindow(intervals=(Interval(540, 720), Interval(780, 1020)))

        candidates = generate_candidates(window, duration_minutes=30, granularity_minutes=30)

        assert times(candidates) == [
            "09:00", "09:30", "10:00", "10:30", "11:00", "11:30",
            "13:00", "13:30", "14:00", "14:30", "15:00", "15:30", "16:00", "16:30",
        ]

    def test_last_slot_ends_exactly_at_close(self):
        candidates = generate_candidates([Interval(540, 600)], 60, 15)
        assert candidates == [540]

    def test_service_longer_than_window_yields_nothing(self):
        assert generate_candidates([Interval(540, 570)], 45, 15) == []

    def test_window_start_is_not_rounded_to_grid(self):
        candidates = generate_candidates([Interval(550, 640)], 30, 30)
        assert times(candidates) == ["09:10", "09:40", "10:10"]

    def test_closed_window_yields_nothing(self):
        assert generate_candidates(WorkingWindow(), 30, 15) == []

    def test_intervals_are_processed_in_order(self):
        candidates = generate_candidates([Interval(780, 840), Interval(540, 600)], 30, 30)
        assert candidates == [540, 570, 780, 810]

    @pytest.mark.parametrize("duration, granularity", [(0, 15), (30, 0), (-5, 15)])
    def test_rejects_non_positive_inputs(self, duration, granularity):
        with pytest.raises(ValueError):
            generate_candidates([Interval(540, 600)], duration, granularity)
