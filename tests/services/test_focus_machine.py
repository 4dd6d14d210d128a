import pytest
from datetime import datetime, timedelta
from unittest.mock import Mock
from mintik.models.activity import AppState, SessionType
from mintik.models.app_config import AppConfig
from mintik.models.events import DataMutated, StateChangeEvent, StatusUpdate
from mintik.services.focus_machine import FocusStateMachine
from mintik.services.notifier import warning_message

def run_ticks(machine, clock, count, idle=0.0):
    """Advance the clock one second per tick"""
    events = []
    for _ in range(count):
        events.extend(machine.tick(idle, clock.advance(1)))
    return events

def today(machine):
    return machine.daily_store.get_or_create(machine.current_day)

def test_initial_state(machine):
    """A fresh machine starts active with nothing recorded"""
    assert machine.state == AppState.ACTIVE
    assert machine.work_time == 0
    assert machine.formatted_time == "00:00"
    assert machine.ledger.total_seconds() == 0

def test_active_ticks_accumulate_work_time(machine, clock):
    run_ticks(machine, clock, 30)

    assert machine.state == AppState.ACTIVE
    assert machine.work_time == 30
    assert machine.ledger.total_seconds() == 30
    assert machine.formatted_time == "00:30"
    # The live hour is mirrored into the day record every tick
    assert today(machine).hourly_activity[10] == 30

def test_reaching_limit_enters_warning(machine, clock, notifier):
    """61 seconds of input against a 60 second limit ends in warning"""
    run_ticks(machine, clock, 61)

    assert machine.state == AppState.WARNING
    assert machine.work_time == 61
    notifier.dispatch_warning.assert_called_once_with(warning_message(1))

def test_warning_dispatched_once_per_episode(machine, clock, notifier):
    run_ticks(machine, clock, 60)
    # Pause and resume while still over the limit
    machine.tick(10, clock.advance(1))
    assert machine.state == AppState.PAUSED
    run_ticks(machine, clock, 5)

    assert machine.state == AppState.WARNING
    assert notifier.dispatch_warning.call_count == 1

def test_full_screen_reminder_when_enabled(machine, clock, notifier, config_holder, short_config):
    config_holder["config"] = short_config.with_changes({"enableFullScreenNotification": True})
    run_ticks(machine, clock, 60)

    notifier.show_reminder.assert_called_once_with(1)

def test_notifier_failure_does_not_break_tick(machine, clock, notifier):
    notifier.dispatch_warning.side_effect = RuntimeError("no display")
    run_ticks(machine, clock, 62)

    assert machine.state == AppState.WARNING
    assert machine.work_time == 62

def test_raising_limit_demotes_warning(machine, clock, config_holder, short_config, notifier):
    run_ticks(machine, clock, 61)
    assert machine.state == AppState.WARNING

    config_holder["config"] = short_config.with_changes({"focus_duration_sec": 120})
    machine.tick(0, clock.advance(1))

    assert machine.state == AppState.ACTIVE
    assert machine.work_time == 62

    # A new episode notifies again
    run_ticks(machine, clock, 60)
    assert machine.state == AppState.WARNING
    assert notifier.dispatch_warning.call_count == 2
    notifier.dispatch_warning.assert_called_with(warning_message(2))

def test_mid_range_idle_pauses_without_counting(machine, clock):
    run_ticks(machine, clock, 10)
    machine.tick(30, clock.advance(1))

    assert machine.state == AppState.PAUSED
    assert machine.work_time == 10
    assert machine.ledger.total_seconds() == 10

    machine.tick(0, clock.advance(1))
    assert machine.state == AppState.ACTIVE
    assert machine.work_time == 11

def test_threshold_boundaries(machine, clock):
    """Idle equal to the active threshold pauses, equal to the reset ends focus"""
    run_ticks(machine, clock, 5)
    machine.tick(5, clock.advance(1))
    assert machine.state == AppState.PAUSED

    machine.tick(180, clock.advance(1))
    assert machine.state == AppState.IDLE

def test_resume_from_pause_over_limit_goes_to_warning(machine, clock):
    machine.work_time = 75
    machine.state = AppState.PAUSED

    machine.tick(0, clock.advance(1))

    assert machine.state == AppState.WARNING
    assert machine.work_time == 76

def test_deep_idle_records_focus_session(machine, clock):
    run_ticks(machine, clock, 45)
    now = clock.advance(1)
    events = machine.tick(200, now)

    assert machine.state == AppState.IDLE
    assert machine.work_time == 0
    assert machine.rest_start_time == now - timedelta(seconds=200)

    day = today(machine)
    assert day.focus_session_count == 1
    session = day.sessions[0]
    assert session.type == SessionType.FOCUS
    assert session.duration == 45
    assert session.start_time == now - timedelta(seconds=45)

    mutations = [e for e in events if isinstance(e, DataMutated)]
    assert len(mutations) == 1
    assert mutations[0].session_boundary

def test_idle_without_work_records_empty_focus_session(machine, clock):
    """Going idle before any input still closes out a zero-length focus session"""
    now = clock.advance(1)
    machine.tick(500, now)

    assert machine.state == AppState.IDLE
    day = today(machine)
    assert day.focus_session_count == 1
    assert len(day.sessions) == 1
    session = day.sessions[0]
    assert session.type == SessionType.FOCUS
    assert session.duration == 0
    assert session.start_time == now

def test_staying_idle_records_once(machine, clock):
    run_ticks(machine, clock, 20)
    machine.tick(200, clock.advance(1))
    machine.tick(201, clock.advance(1))
    machine.tick(202, clock.advance(1))

    assert today(machine).focus_session_count == 1

def test_input_after_rest_records_capped_rest_session(machine, clock):
    run_ticks(machine, clock, 45)
    idle_at = clock.advance(1)
    machine.tick(200, idle_at)
    rest_start = machine.rest_start_time

    now = clock.advance(10)
    events = machine.tick(2, now)

    assert machine.state == AppState.ACTIVE
    assert machine.rest_start_time is None
    assert machine.work_time == 1

    day = today(machine)
    rest = day.sessions_of(SessionType.REST)
    assert len(rest) == 1
    assert rest[0].start_time == rest_start
    # 210s elapsed, but one rest counts for at most rest_reset_sec
    assert rest[0].duration == 180
    assert day.rest_session_count == 1
    assert day.total_rest_time == 180
    assert any(isinstance(e, DataMutated) and e.session_boundary for e in events)

def test_rest_duration_clamped_when_clock_moves_back(machine, clock):
    machine.state = AppState.IDLE
    machine.rest_start_time = clock() + timedelta(minutes=5)

    machine.tick(0, clock.advance(1))

    rest = today(machine).sessions_of(SessionType.REST)
    assert rest[0].duration == 0
    assert machine.state == AppState.ACTIVE

def test_hour_rollover_flushes_previous_hour(machine, clock):
    minutes = [0] * 60
    minutes[0], minutes[1], minutes[59] = 20, 20, 2
    machine.ledger.minute_activity = list(minutes)
    machine.ledger.fatigue_heat[5] = 0.5

    # Mid-range idle so the new hour records nothing itself
    clock.set(datetime(2024, 1, 1, 11, 0, 0))
    events = machine.tick(100, clock())

    day = machine.daily_store.get("2024-01-01")
    assert day.hourly_activity[10] == 42
    assert day.minute_history[10] == minutes
    assert machine.ledger.minute_activity == [0] * 60
    assert machine.ledger.fatigue_heat == [0.0] * 60
    assert machine.ledger.last_tick_hour == 11
    assert day.hourly_activity[11] == 0
    assert any(isinstance(e, DataMutated) for e in events)

def test_empty_hour_rollover_writes_no_history(machine, clock):
    clock.set(datetime(2024, 1, 1, 11, 0, 0))
    machine.tick(100, clock())

    day = machine.daily_store.get("2024-01-01")
    assert 10 not in day.minute_history
    assert day.total_active_time == 0

def test_midnight_rollover_closes_previous_day(machine, clock):
    clock.set(datetime(2024, 1, 1, 23, 59, 0))
    machine.tick(0, clock())  # rollover into 23:00, then one active second
    run_ticks(machine, clock, 30)

    clock.set(datetime(2024, 1, 2, 0, 0, 0))
    machine.tick(0, clock())

    yesterday = machine.daily_store.get("2024-01-01")
    assert yesterday.hourly_activity[23] == 31
    assert machine.current_day == "2024-01-02"
    new_day = machine.daily_store.get("2024-01-02")
    assert new_day is not None
    assert new_day.hourly_activity[0] == 1
    # The focus period continues across midnight
    assert machine.work_time == 32

def test_same_hour_next_day_still_rolls_over(machine, clock):
    run_ticks(machine, clock, 10)
    clock.set(datetime(2024, 1, 2, 10, 0, 30))
    machine.tick(100, clock())

    assert machine.daily_store.get("2024-01-01").hourly_activity[10] == 10
    assert machine.daily_store.get("2024-01-02").hourly_activity[10] == 0
    assert machine.ledger.total_seconds() == 0

def test_fatigue_heat_only_rises(machine, clock):
    """A lower severity later in the same minute keeps the higher heat"""
    clock.set(datetime(2024, 1, 1, 10, 7, 0))
    machine.ledger.fatigue_heat[7] = 0.6
    machine.state = AppState.WARNING
    machine.work_time = 83  # next tick: 24s over a 60s limit, severity 0.4

    machine.tick(0, clock.advance(1))

    assert machine.ledger.fatigue_heat[7] == 0.6

def test_fatigue_heat_tracks_overrun(machine, clock):
    clock.set(datetime(2024, 1, 1, 10, 7, 0))
    machine.state = AppState.WARNING
    machine.work_time = 89

    machine.tick(0, clock.advance(1))
    assert machine.ledger.fatigue_heat[7] == pytest.approx(0.5)

    machine.work_time = 500
    machine.tick(0, clock.advance(1))
    assert machine.ledger.fatigue_heat[7] == 1.0

def test_minute_slot_caps_at_sixty(machine, clock):
    clock.set(datetime(2024, 1, 1, 10, 3, 0))
    machine.ledger.minute_activity[3] = 60

    machine.tick(0, clock())

    assert machine.ledger.minute_activity[3] == 60
    assert machine.work_time == 1

def test_negative_idle_counts_as_active(machine, clock):
    machine.tick(-3, clock.advance(1))

    assert machine.state == AppState.ACTIVE
    assert machine.work_time == 1

def test_screen_off_pauses_then_ends_focus(machine, clock):
    run_ticks(machine, clock, 30)
    off_at = clock()
    machine.handle_screen_sleep(off_at)

    # Idle input below the threshold is ignored while the screen is off
    machine.tick(0, clock.advance(10))
    assert machine.state == AppState.PAUSED
    assert machine.work_time == 30

    machine.tick(0, clock.advance(170))
    assert machine.state == AppState.IDLE
    assert machine.rest_start_time == off_at
    assert today(machine).sessions_of(SessionType.FOCUS)[0].duration == 30

def test_wake_after_long_sleep_ends_focus(machine, clock):
    run_ticks(machine, clock, 40)
    asleep_at = clock()
    machine.handle_screen_sleep(asleep_at)

    events = machine.handle_wake(clock.advance(600))

    assert machine.state == AppState.IDLE
    assert machine.screen_off is False
    assert machine.screen_off_since is None
    assert machine.rest_start_time == asleep_at
    assert today(machine).focus_session_count == 1
    assert any(isinstance(e, DataMutated) and e.session_boundary for e in events)

    machine.tick(0, clock.advance(1))
    rest = today(machine).sessions_of(SessionType.REST)
    assert rest[0].duration == 180

def test_short_sleep_keeps_focus(machine, clock):
    run_ticks(machine, clock, 40)
    machine.handle_screen_sleep(clock())
    machine.handle_wake(clock.advance(30))

    assert machine.state == AppState.ACTIVE
    assert machine.work_time == 40
    assert today(machine).sessions == []

def test_events_emitted_per_tick(machine, clock):
    received = []
    machine.subscribe(received.append)

    events = machine.tick(30, clock.advance(1))

    assert received == events
    assert isinstance(events[0], StateChangeEvent)
    assert events[0].old_state == AppState.ACTIVE
    assert events[0].new_state == AppState.PAUSED
    assert isinstance(events[-1], StatusUpdate)
    assert events[-1].state == AppState.PAUSED

def test_status_update_reports_whole_minutes(machine, clock):
    machine.work_time = 119
    events = machine.tick(0, clock.advance(1))

    assert events[-1] == StatusUpdate(2, AppState.WARNING)

def test_unsubscribe(machine, clock):
    received = []
    unsubscribe = machine.subscribe(received.append)
    unsubscribe()

    machine.tick(0, clock.advance(1))
    assert received == []

def test_failing_subscriber_does_not_abort_tick(machine, clock):
    other = Mock()
    machine.subscribe(Mock(side_effect=RuntimeError("boom")))
    machine.subscribe(other)

    machine.tick(0, clock.advance(1))

    assert machine.work_time == 1
    assert other.called

def test_daily_store_failure_does_not_abort_tick(machine, clock, monkeypatch):
    run_ticks(machine, clock, 20)
    monkeypatch.setattr(
        machine.daily_store, "record_focus_session", Mock(side_effect=RuntimeError("disk"))
    )

    machine.tick(300, clock.advance(1))

    assert machine.state == AppState.IDLE
    assert machine.work_time == 0

def test_snapshot_restore_roundtrip(machine, clock, ledger, daily_store, config_holder):
    run_ticks(machine, clock, 25)
    snapshot = machine.snapshot()

    restored = FocusStateMachine(daily_store, ledger, lambda: config_holder["config"], clock=clock)
    restored.ledger.start_hour(clock())
    restored.restore(snapshot, clock())

    assert restored.work_time == 25
    assert restored.ledger.total_seconds() == 25
    assert restored.ledger.last_tick_hour == 10
    assert restored.current_day == "2024-01-01"

def test_reset_clears_live_state(machine, clock):
    run_ticks(machine, clock, 70)
    machine.reset(clock())

    assert machine.state == AppState.ACTIVE
    assert machine.work_time == 0
    assert machine.ledger.total_seconds() == 0

def test_minute_history_lookup(machine, clock):
    run_ticks(machine, clock, 3)
    assert machine.get_minute_history(10)[0] == 3
    assert machine.get_minute_history(9) == [0] * 60
    assert machine.earliest_recorded_hour == 10

    clock.set(datetime(2024, 1, 1, 11, 0, 0))
    machine.tick(100, clock())
    assert machine.get_minute_history(10)[0] == 3
    assert machine.earliest_recorded_hour == 10

def test_config_provider_read_each_tick(machine, clock, config_holder):
    config_holder["config"] = AppConfig(focus_duration_sec=3, active_threshold_sec=5, rest_reset_sec=180)
    run_ticks(machine, clock, 3)

    assert machine.state == AppState.WARNING
