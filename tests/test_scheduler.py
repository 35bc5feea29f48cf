import pytest

from nanoboy.save_state import SaveState
from nanoboy.scheduler import (
    MAX_EVENTS,
    EventClass,
    Scheduler,
    SchedulerError,
    event_uid,
)


def _recording(scheduler, event_class=EventClass.TM_OVERFLOW):
    fired = []
    scheduler.register(event_class, lambda data: fired.append((data, scheduler.timestamp_now)))
    return fired


def test_events_fire_in_timestamp_order():
    s = Scheduler()
    fired = _recording(s)
    s.add(30, EventClass.TM_OVERFLOW, user_data=3)
    s.add(10, EventClass.TM_OVERFLOW, user_data=1)
    s.add(20, EventClass.TM_OVERFLOW, user_data=2)
    s.add_cycles(25)
    assert fired == [(1, 10), (2, 20)]
    assert s.timestamp_now == 25
    s.add_cycles(10)
    assert fired[-1] == (3, 30)


def test_priority_breaks_ties():
    s = Scheduler()
    fired = _recording(s)
    s.add(10, EventClass.TM_OVERFLOW, priority=2, user_data=1)
    s.add(10, EventClass.TM_OVERFLOW, priority=0, user_data=2)
    s.add_cycles(10)
    assert [data for data, _ in fired] == [2, 1]


def test_cancel_prevents_firing():
    s = Scheduler()
    fired = _recording(s)
    keep = s.add(5, EventClass.TM_OVERFLOW, user_data=1)
    drop = s.add(6, EventClass.TM_OVERFLOW, user_data=2)
    s.cancel(drop)
    s.add_cycles(10)
    assert [data for data, _ in fired] == [1]
    assert keep.uid != drop.uid


def test_target_and_remaining_cycles():
    s = Scheduler()
    s.add_cycles(7)
    s.add(100, EventClass.TM_OVERFLOW)
    assert s.timestamp_target() == 107
    assert s.remaining_cycle_count() == 100


def test_maximum_event_count():
    s = Scheduler()
    for _ in range(MAX_EVENTS - 1):
        s.add(1, EventClass.TM_OVERFLOW)
    with pytest.raises(SchedulerError):
        s.add(1, EventClass.TM_OVERFLOW)


def test_priority_out_of_range():
    with pytest.raises(SchedulerError):
        Scheduler().add(1, EventClass.TM_OVERFLOW, priority=4)


def test_unhandled_event_class():
    s = Scheduler()
    s.add(1, EventClass.DMA_ACTIVATED)
    with pytest.raises(SchedulerError):
        s.add_cycles(1)


def test_end_of_queue_is_fatal():
    s = Scheduler()
    with pytest.raises(SchedulerError):
        s.add_cycles((1 << 64) - 1)


def test_get_event_by_uid_and_event_uid():
    s = Scheduler()
    event = s.add(4, EventClass.TM_OVERFLOW)
    assert s.get_event_by_uid(event.uid) is event
    assert s.get_event_by_uid(event.uid + 100) is None
    assert event_uid(event) == event.uid
    assert event_uid(None) == 0


def test_reset_clears_pending_events():
    s = Scheduler()
    event = s.add(4, EventClass.TM_OVERFLOW)
    uid = event.uid
    s.reset()
    assert s.get_event_by_uid(uid) is None
    assert s.timestamp_now == 0


def test_state_round_trip():
    first = Scheduler()
    a = first.add(10, EventClass.TM_OVERFLOW, priority=1, user_data=5)
    b = first.add(20, EventClass.APU_MIXER, user_data=6)
    saved = [(e.uid, e.timestamp, e.event_class, e.user_data) for e in (a, b)]

    state = SaveState()
    state.timestamp = first.timestamp_now
    first.copy_state(state)
    assert state.scheduler.event_count == len(state.scheduler.events)

    second = Scheduler()
    second.load_state(state)
    for uid, timestamp, event_class, user_data in saved:
        event = second.get_event_by_uid(uid)
        assert (event.timestamp, event.event_class, event.user_data) == (timestamp, event_class, user_data)

    assert first.add(1, EventClass.TM_OVERFLOW).uid == second.add(1, EventClass.TM_OVERFLOW).uid