"""Focus/rest state machine driven by a 1 Hz idle-seconds tick.

Each tick consumes the seconds since the last input event plus the wall-clock
time and moves between ``active``, ``warning``, ``paused`` and ``idle``.
Active seconds land in the live ledger; closed focus and rest periods become
sessions in the day's record.

Rules, in priority order:

1. screen off: after ``rest_reset_sec`` of darkness the focus period ends,
   before that an active period is paused
2. ``idle_seconds >= rest_reset_sec``: the focus period ends
3. ``idle_seconds < active_threshold_sec``: a rest ends or work resumes, and
   active/warning ticks count one second of work
4. anything in between pauses an active period

Hour and day rollover runs before all of them.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Union

from mintik.models.activity import AppState, ActivitySnapshot, zero_minutes
from mintik.models.app_config import AppConfig
from mintik.models.daily import date_key
from mintik.models.events import DataMutated, StateChangeEvent, StatusUpdate
from mintik.services.daily_store import DailyAggregateStore
from mintik.services.ledger import ActivityLedger
from mintik.services.notifier import NotificationSink, warning_message

logger = logging.getLogger(__name__)

Event = Union[StateChangeEvent, DataMutated, StatusUpdate]
Subscriber = Callable[[Event], None]

WORKING_STATES = (AppState.ACTIVE, AppState.WARNING)

class FocusStateMachine:
    def __init__(
        self,
        daily_store: DailyAggregateStore,
        ledger: ActivityLedger,
        config_provider: Callable[[], AppConfig],
        notifier: Optional[NotificationSink] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.daily_store = daily_store
        self.ledger = ledger
        self.config_provider = config_provider
        self.notifier = notifier
        self._clock = clock

        self.state = AppState.ACTIVE
        self.work_time = 0
        self.rest_start_time: Optional[datetime] = None
        self.screen_off = False
        self.screen_off_since: Optional[datetime] = None
        self._warning_dispatched = False

        self._subscribers: List[Subscriber] = []
        self._tick_events: List[Event] = []
        self._mutated = False
        self._session_boundary = False

    @property
    def current_day(self) -> str:
        return self.ledger.last_tick_date

    @property
    def formatted_time(self) -> str:
        minutes, seconds = divmod(self.work_time, 60)
        return f"{minutes:02d}:{seconds:02d}"

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register for state, mutation and status events; returns an unsubscribe"""
        self._subscribers.append(subscriber)
        return lambda: self._subscribers.remove(subscriber)

    def _emit(self, event: Event) -> None:
        self._tick_events.append(event)
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception as e:
                logger.error(f"Subscriber failed on {type(event).__name__}: {e}", exc_info=True)

    def _transition(self, new_state: AppState, now: datetime, cause: str) -> None:
        old_state = self.state
        if old_state == new_state:
            return
        self.state = new_state
        level = logging.WARNING if new_state == AppState.WARNING else logging.INFO
        logger.log(level, f"State changed to {new_state.value.upper()} ({cause}). WorkTime: {self.work_time}")
        self._emit(StateChangeEvent(old_state, new_state, cause, now))

    def _record(self, description: str, fn: Callable[..., object], *args: object) -> None:
        """Write to the daily store without letting a failure abort the tick"""
        try:
            fn(*args)
        except Exception as e:
            logger.error(f"Failed to record {description}: {e}", exc_info=True)

    # Lifecycle

    def restore(self, snapshot: ActivitySnapshot, now: Optional[datetime] = None) -> None:
        self.ledger.restore(snapshot, now or self._clock())
        self.work_time = snapshot.work_time
        logger.info(
            f"Restored ledger for {self.ledger.last_tick_date} {self.ledger.last_tick_hour:02d}:00, "
            f"workTime {self.work_time}"
        )

    def snapshot(self) -> ActivitySnapshot:
        return self.ledger.to_snapshot(self.work_time)

    def initialize_today(self, now: Optional[datetime] = None) -> None:
        now = now or self._clock()
        self.daily_store.get_or_create(date_key(now))
        self.sync_current_hour()

    def reset(self, now: Optional[datetime] = None) -> None:
        """Drop all live state, as after a full data reset"""
        self.ledger.start_hour(now or self._clock())
        self.work_time = 0
        self.state = AppState.ACTIVE
        self.rest_start_time = None
        self._warning_dispatched = False

    # Tick

    def tick(self, idle_seconds: float, now: Optional[datetime] = None) -> List[Event]:
        """Advance one second; returns the events emitted during the tick"""
        now = now or self._clock()
        idle_seconds = max(0.0, float(idle_seconds))
        config = self.config_provider()
        self._tick_events = []
        self._mutated = False
        self._session_boundary = False

        self._check_rollover(now)

        if self.screen_off:
            self._handle_screen_off(now, config)
        elif idle_seconds >= config.rest_reset_sec:
            if self.state != AppState.IDLE:
                self._enter_idle(now, now - timedelta(seconds=idle_seconds), "User Inactive")
        elif idle_seconds < config.active_threshold_sec:
            self._handle_input(now, config)
        elif self.state in WORKING_STATES:
            self._transition(AppState.PAUSED, now, "User Inactive but < RestDuration")

        self.sync_current_hour()
        if self._mutated:
            self._emit(DataMutated(now, self._session_boundary))
        self._emit_status()
        return self._tick_events

    def _check_rollover(self, now: datetime) -> None:
        day = date_key(now)
        if now.hour == self.ledger.last_tick_hour and day == self.current_day:
            return

        old_day, old_hour = self.current_day, self.ledger.last_tick_hour
        total = self.ledger.total_seconds()
        if total > 0:
            self._record("hour rollover", self._flush_hour, old_day, old_hour, total)
            logger.info(f"Hour {old_hour:02d} of {old_day} closed with {total}s active")
        self.ledger.start_hour(now)
        self.daily_store.get_or_create(day)
        self._mutated = True

    def _flush_hour(self, day: str, hour: int, total: int) -> None:
        self.daily_store.update_hour(day, hour, total)
        self.daily_store.set_minute_history(day, hour, list(self.ledger.minute_activity))

    def _handle_screen_off(self, now: datetime, config: AppConfig) -> None:
        if self.screen_off_since is None:
            return
        off_duration = (now - self.screen_off_since).total_seconds()
        if off_duration >= config.rest_reset_sec:
            if self.state != AppState.IDLE:
                self._enter_idle(now, self.screen_off_since, "Screen Off")
        elif self.state in WORKING_STATES:
            self._transition(AppState.PAUSED, now, "Screen Off")

    def _enter_idle(self, now: datetime, rest_start: datetime, cause: str) -> None:
        """Close the focus period and start resting from ``rest_start``"""
        duration = max(0, self.work_time)
        self._record(
            "focus session",
            self.daily_store.record_focus_session,
            self.current_day, now - timedelta(seconds=duration), duration
        )
        self.rest_start_time = rest_start
        self._transition(AppState.IDLE, now, cause)
        self.work_time = 0
        self._warning_dispatched = False
        self._mutated = True
        self._session_boundary = True

    def _handle_input(self, now: datetime, config: AppConfig) -> None:
        limit = max(1, int(config.focus_duration_sec))

        if self.state == AppState.IDLE:
            if self.rest_start_time is not None:
                elapsed = max(0, int((now - self.rest_start_time).total_seconds()))
                # Long sleeps or shutdowns count as one full rest at most
                duration = min(elapsed, int(config.rest_reset_sec))
                self._record(
                    "rest session",
                    self.daily_store.record_rest_session,
                    self.current_day, self.rest_start_time, duration
                )
                self.rest_start_time = None
                self._mutated = True
                self._session_boundary = True
            self._transition(AppState.ACTIVE, now, "User Active")

        if self.state == AppState.PAUSED:
            resumed = AppState.WARNING if self.work_time >= limit else AppState.ACTIVE
            self._transition(resumed, now, "Resumed from PAUSED")

        if self.state not in WORKING_STATES:
            return

        self.work_time += 1
        minute = now.minute
        self.ledger.record_second(minute)
        self._mutated = True

        if self.work_time >= limit:
            self._transition(AppState.WARNING, now, "Time Limit Reached")
            overrun = self.work_time - limit
            severity = min(1.0, overrun / limit)
            self.ledger.raise_heat(minute, severity)
            self._dispatch_warning_if_needed(config, limit)
        else:
            self._warning_dispatched = False
            if self.state == AppState.WARNING:
                # The duration setting was raised while warning
                self._transition(AppState.ACTIVE, now, "Limit Increased")

    def _dispatch_warning_if_needed(self, config: AppConfig, limit: int) -> None:
        if self._warning_dispatched:
            return
        self._warning_dispatched = True
        if self.notifier is None:
            return
        minutes = max(self.work_time // 60, limit // 60)
        try:
            self.notifier.dispatch_warning(warning_message(minutes))
            if config.enable_full_screen_notification:
                self.notifier.show_reminder(minutes)
        except Exception as e:
            logger.error(f"Failed to dispatch warning: {e}", exc_info=True)

    def _emit_status(self) -> None:
        self._emit(StatusUpdate(max(self.work_time // 60, 0), self.state))

    # Aggregates

    def sync_current_hour(self) -> None:
        """Overwrite the live hour's total in the day record from the minute slots"""
        total = self.ledger.total_seconds()
        if total > 0:
            self._record(
                "current hour",
                self.daily_store.update_hour,
                self.current_day, self.ledger.last_tick_hour, total
            )

    # Screen and system power

    def handle_screen_sleep(self, now: Optional[datetime] = None) -> None:
        self.screen_off = True
        self.screen_off_since = now or self._clock()

    def handle_wake(self, now: Optional[datetime] = None) -> List[Event]:
        """Screen or system woke up; a long enough sleep counts as rest"""
        now = now or self._clock()
        self._tick_events = []
        self.check_sleep_duration(now)
        self.screen_off = False
        self.screen_off_since = None
        return self._tick_events

    def check_sleep_duration(self, now: datetime) -> None:
        if self.screen_off_since is None:
            return
        slept = (now - self.screen_off_since).total_seconds()
        if slept < self.config_provider().rest_reset_sec or self.state == AppState.IDLE:
            return
        self._enter_idle(now, self.screen_off_since, "Woke After Long Sleep")
        self._emit(DataMutated(now, session_boundary=True))
        self._emit_status()

    # Read helpers

    def get_minute_history(self, hour: int) -> List[int]:
        """Live slots for the hour in progress, otherwise today's stored history"""
        if hour == self.ledger.last_tick_hour:
            return list(self.ledger.minute_activity)
        day = self.daily_store.get(self.current_day)
        if day is None or hour not in day.minute_history:
            return zero_minutes()
        return list(day.minute_history[hour])

    @property
    def earliest_recorded_hour(self) -> int:
        day = self.daily_store.get(self.current_day)
        if day is None or not day.minute_history:
            return self.ledger.last_tick_hour
        return min(day.minute_history)
