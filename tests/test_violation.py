import datetime

import pytest

from focus_keeper.errors import InvalidStateError, PreconditionError
from focus_keeper.violation import Violation


def test_create_starts_empty():
    before = datetime.datetime.now()
    v = Violation.create("Discord")
    assert v.target == "Discord"
    assert v.duration_sec == 0
    assert v.dismissals == 0
    assert not v.closed
    assert v.started_at >= before


def test_duration_and_dismissals_accumulate():
    v = Violation.create("Discord")
    v.add_duration(1)
    v.add_duration(5)
    v.add_duration(0)
    v.record_dismissal()
    v.record_dismissal()
    assert v.duration_sec == 6
    assert v.dismissals == 2


def test_negative_duration_rejected_without_change():
    v = Violation.create("Discord")
    v.add_duration(3)
    with pytest.raises(PreconditionError):
        v.add_duration(-1)
    assert v.duration_sec == 3


def test_empty_target_rejected():
    with pytest.raises(PreconditionError):
        Violation.create("")


def test_closed_violation_is_frozen():
    v = Violation.create("Steam")
    v.add_duration(10)
    v.close()
    with pytest.raises(InvalidStateError):
        v.add_duration(1)
    with pytest.raises(InvalidStateError):
        v.record_dismissal()
    assert v.duration_sec == 10
    assert v.dismissals == 0


def test_dict_shape():
    started = datetime.datetime(2026, 10, 19, 9, 30, 0)
    v = Violation("web:youtube.com", started_at=started, duration_sec=125, dismissals=3)
    data = v.to_dict()
    assert data == {
        "target": "web:youtube.com",
        "started_at": "2026-10-19T09:30:00",
        "duration_sec": 125,
        "dismissals": 3,
    }
    restored = Violation.from_dict(data)
    assert restored.closed
    assert restored.duration_minutes == 2
    assert restored.started_at == started
