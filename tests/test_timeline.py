import datetime as dt

from conftest import make_entry, make_machine

from bag_planner.scheduling.timeline import IDLE, PRODUCTION, SETUP, build_timeline, timeline_frame

DAY = dt.date(2025, 3, 3)


def at(h, m=0):
    return dt.datetime.combine(DAY, dt.time(h, m))


def test_single_entry_day():
    events = build_timeline([make_machine("M1")], [make_entry("O1", "M1", at(8), 4.5)])
    got = [(e.kind, e.start, e.end) for e in events]
    assert got == [
        (IDLE, at(6), at(8)),
        (SETUP, at(8), at(8, 30)),
        (PRODUCTION, at(8, 30), at(12, 30)),
        (IDLE, at(12, 30), at(22)),
    ]
    assert [e.priority for e in events] == ["low", "medium", "high", "low"]
    assert events[2].order_id == "O1"
    assert events[2].quantity == 100.0


def test_zero_setup_is_skipped():
    events = build_timeline(["M1"], [make_entry("O1", "M1", at(6), 2, setup_hours=0)])
    assert [e.kind for e in events] == [PRODUCTION, IDLE]


def test_back_to_back_entries_have_no_idle_gap():
    entries = [make_entry("A", "M1", at(6), 3), make_entry("B", "M1", at(9), 3)]
    events = build_timeline(["M1"], entries)
    kinds = [e.kind for e in events]
    assert kinds == [SETUP, PRODUCTION, SETUP, PRODUCTION, IDLE]


def test_machine_without_work_is_idle_all_day():
    events = build_timeline(["M1", "M2"], [make_entry("O1", "M1", at(10), 2)])
    m2 = [e for e in events if e.machine_id == "M2"]
    assert [(e.kind, e.start, e.end) for e in m2] == [(IDLE, at(6), at(22))]
    assert events == sorted(events, key=lambda e: e.start)


def test_empty_timeline_without_date():
    assert build_timeline(["M1"], []) == []
    events = build_timeline(["M1"], [], work_date=DAY)
    assert len(events) == 1
    assert events[0].hours == 16


def test_timeline_frame():
    df = timeline_frame(build_timeline(["M1"], [make_entry("O1", "M1", at(8), 4.5)]))
    assert list(df["kind"]) == [IDLE, SETUP, PRODUCTION, IDLE]
    assert list(df["hours"]) == [2.0, 0.5, 4.0, 9.5]
    assert timeline_frame([]).empty


def test_late_entry_idle_stops_at_day_end():
    events = build_timeline(["M1"], [make_entry("O1", "M1", at(23), 2)], work_date=DAY)
    assert (events[0].kind, events[0].start, events[0].end) == (IDLE, at(6), at(22))
    assert [e.kind for e in events] == [IDLE, SETUP, PRODUCTION]
    assert all(e.end <= at(22) for e in events if e.kind == IDLE)
