from datetime import date, datetime, time

from clinic_backend.services.slot_service import (
    day_of_week,
    iter_slots,
    occupied_interval,
    overlaps,
    parse_hhmm,
)

MONDAY = date(2026, 3, 2)
EARLIER = datetime(2026, 3, 1, 12, 0)
NINE_TO_TEN = [(time(9, 0), time(10, 0))]


def _slots(duration, windows=NINE_TO_TEN, occupied=(), now=EARLIER, granularity=30):
    return [
        (start.strftime("%H:%M"), available)
        for start, available in iter_slots(MONDAY, duration, windows, list(occupied), now, granularity)
    ]


def test_overlap_is_half_open():
    a = (datetime(2026, 3, 2, 9, 0), datetime(2026, 3, 2, 9, 50))
    assert overlaps(a, (datetime(2026, 3, 2, 9, 30), datetime(2026, 3, 2, 10, 20)))
    assert overlaps(a, (datetime(2026, 3, 2, 8, 0), datetime(2026, 3, 2, 11, 0)))
    assert not overlaps(a, (datetime(2026, 3, 2, 9, 50), datetime(2026, 3, 2, 10, 40)))
    assert not overlaps(a, (datetime(2026, 3, 2, 8, 10), datetime(2026, 3, 2, 9, 0)))


def test_occupied_interval_adds_duration():
    start = datetime(2026, 3, 2, 9, 0)
    assert occupied_interval(start, 50) == (start, datetime(2026, 3, 2, 9, 50))


def test_day_of_week_counts_from_sunday():
    assert day_of_week(date(2026, 3, 1)) == 0
    assert day_of_week(MONDAY) == 1
    assert day_of_week(date(2026, 3, 7)) == 6


def test_parse_hhmm():
    assert parse_hhmm("09:30") == time(9, 30)


def test_candidate_must_fit_inside_window():
    # 09:30 + 50 minutes ends at 10:20, past the window
    assert _slots(50) == [("09:00", True)]


def test_steps_by_granularity():
    assert _slots(30) == [("09:00", True), ("09:30", True)]
    assert _slots(15, granularity=15) == [
        ("09:00", True),
        ("09:15", True),
        ("09:30", True),
        ("09:45", True),
    ]


def test_booked_interval_marks_overlapping_candidates_unavailable():
    booked = occupied_interval(datetime(2026, 3, 2, 9, 0), 30)
    assert _slots(30, occupied=[booked]) == [("09:00", False), ("09:30", True)]


def test_adjacent_booking_keeps_candidate_available():
    booked = occupied_interval(datetime(2026, 3, 2, 8, 30), 30)
    assert _slots(30, occupied=[booked]) == [("09:00", True), ("09:30", True)]


def test_start_not_after_now_is_unavailable():
    now = datetime(2026, 3, 2, 9, 0)
    assert _slots(30, now=now) == [("09:00", False), ("09:30", True)]


def test_no_windows_yields_nothing():
    assert _slots(30, windows=[]) == []


def test_unavailable_candidates_are_still_emitted():
    now = datetime(2026, 3, 3, 0, 0)
    assert _slots(30, now=now) == [("09:00", False), ("09:30", False)]


def test_multiple_windows_in_order():
    windows = [(time(9, 0), time(10, 0)), (time(14, 0), time(15, 0))]
    assert [t for t, _ in _slots(60, windows=windows)] == ["09:00", "14:00"]


def test_generation_is_repeatable():
    booked = [occupied_interval(datetime(2026, 3, 2, 9, 30), 30)]
    first = _slots(30, occupied=booked)
    second = _slots(30, occupied=booked)
    assert first == second
