import datetime

from focus_keeper.history import SessionHistory
from focus_keeper.session import FocusSession, SessionRecord


def rec(day, score=90, completed=True, actual=1800, sid=None, violations=()):
    start = datetime.datetime(2026, 10, day, 9, 0, 0)
    return SessionRecord(
        id=sid or f"s-{day}-{score}-{completed}",
        start_time=start,
        planned_duration_sec=1800,
        actual_duration_sec=actual,
        score=score,
        completed=completed,
        blocked_apps=("Discord",),
        violations=tuple(violations),
    )


def v(target, seconds):
    return {"target": target, "started_at": "2026-10-01T09:05:00", "duration_sec": seconds, "dismissals": 0}


def test_streaks():
    h = SessionHistory([rec(17), rec(18), rec(19)])
    assert h.current_streak(datetime.date(2026, 10, 19)) == 3
    assert h.current_streak(datetime.date(2026, 10, 20)) == 3
    assert h.current_streak(datetime.date(2026, 10, 21)) == 0
    assert h.best_streak() == 3


def test_non_qualifying_sessions_break_streak():
    h = SessionHistory(
        [
            rec(10),
            rec(11),
            rec(12, score=60),
            rec(13, completed=False),
            rec(14, actual=600),
            rec(15),
            rec(16),
            rec(17),
            rec(17, score=100),
        ]
    )
    assert h.best_streak() == 3
    assert h.current_streak(datetime.date(2026, 10, 17)) == 3
    assert h.current_streak(datetime.date(2026, 10, 12)) == 2


def test_totals_and_lookup():
    h = SessionHistory(
        [
            rec(18, score=80, violations=[v("Discord", 30), v("web:youtube.com", 90)]),
            rec(19, score=60, completed=False, actual=900, violations=[v("Discord", 70)]),
        ]
    )
    assert h.count == 2
    assert h.total_focus_sec() == 1800
    assert h.average_score() == 70
    assert h.most_distracting_target() == "Discord"
    assert len(h.sessions_on("2026-10-18")) == 1
    assert len(h.sessions_on(datetime.date(2026, 10, 19))) == 1
    assert h.sessions_on("2026-10-20") == []


def test_duplicate_ids_ignored():
    h = SessionHistory()
    h.add(rec(18, sid="same"))
    h.add(rec(19, sid="same"))
    assert h.count == 1


def test_records_sorted_by_start():
    h = SessionHistory([rec(19), rec(17), rec(18)])
    assert [r.start_time.day for r in h.records] == [17, 18, 19]


def test_snapshot_round_trip_from_finished_session():
    s = FocusSession(1800, ["Discord"])
    s.start_violation("Discord")
    s.add_violation_duration(125)
    s.end_current_violation()
    s.complete(1800)

    h = SessionHistory([s.to_record()])
    snap = h.snapshot(today=s.start_time.date())
    assert snap["lifetime"]["total_sessions"] == 1
    assert snap["lifetime"]["current_streak"] == 1
    assert snap["lifetime"]["most_distracting"] == "Discord"
    assert snap["sessions"][0]["score"] == 93

    restored = SessionHistory.from_dict(snap)
    assert restored.records == h.records


def test_empty_history():
    h = SessionHistory()
    assert h.average_score() == 0.0
    assert h.most_distracting_target() is None
    assert h.best_streak() == 0
    assert h.current_streak(datetime.date(2026, 10, 19)) == 0
    assert SessionHistory.from_dict({"sessions": [{"id": "broken"}]}).count == 0


def test_most_distracting_sums_across_sessions():
    h = SessionHistory(
        [
            rec(18, violations=[v("Discord", 60), v("web:reddit.com", 100)]),
            rec(19, violations=[v("Discord", 60)]),
        ]
    )
    assert h.most_distracting_target() == "Discord"
