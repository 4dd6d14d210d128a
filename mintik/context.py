import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from mintik.config.settings import Settings
from mintik.models.app_config import AppConfig
from mintik.models.daily import DailyActivityData, date_key
from mintik.models.events import DataMutated, StatusUpdate
from mintik.services.config_store import ConfigStore
from mintik.services.daily_store import DailyAggregateStore
from mintik.services.focus_machine import Event, FocusStateMachine
from mintik.services.idle import PowerEventSource, get_idle_seconds
from mintik.services.ledger import ActivityLedger
from mintik.services.metrics import MetricsCollector
from mintik.services.notifier import NotificationSink
from mintik.services.persistence import PersistenceScheduler

logger = logging.getLogger(__name__)

StatusListener = Callable[[int, str], None]

class AppContext:
    """Everything one MinTik process needs, built once at start-up.

    The tick loop and the UI layers receive this object instead of reaching
    for module-level state.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        notifier: Optional[NotificationSink] = None,
        power_source: Optional[PowerEventSource] = None,
        idle_source: Callable[[], float] = get_idle_seconds,
        clock: Callable[[], datetime] = datetime.now,
        on_terminate: Optional[Callable[[], None]] = None
    ):
        self.settings = settings or Settings()
        self.clock = clock
        self.idle_source = idle_source
        self.power_source = power_source
        self.on_terminate = on_terminate
        self._status_listeners: List[StatusListener] = []

        self.config_store = ConfigStore(self.settings.config_path)
        self.ledger = ActivityLedger(self.settings.activity_path, now=clock())
        self.daily_store = DailyAggregateStore(self.settings.daily_path)
        self.machine = FocusStateMachine(
            self.daily_store,
            self.ledger,
            config_provider=lambda: self.config_store.config,
            notifier=notifier,
            clock=clock
        )
        self.scheduler = PersistenceScheduler(
            self.ledger,
            self.daily_store,
            self.config_store,
            snapshot_provider=self._snapshot_for_save,
            save_interval_seconds=self.settings.SAVE_INTERVAL_SECONDS,
            debounce_seconds=self.settings.CONFIG_DEBOUNCE_SECONDS,
            clock=clock
        )
        self.metrics = MetricsCollector(self.daily_store)
        self.selected_date: date = clock().date()

        self.machine.subscribe(self._on_machine_event)
        self.config_store.subscribe(self.scheduler.schedule_config_save)

    @property
    def config(self) -> AppConfig:
        return self.config_store.config

    def _snapshot_for_save(self):
        self.machine.sync_current_hour()
        return self.machine.snapshot()

    def _on_machine_event(self, event: Event) -> None:
        if isinstance(event, DataMutated):
            self.scheduler.handle_mutation(event)
        elif isinstance(event, StatusUpdate):
            for listener in list(self._status_listeners):
                listener(event.minutes, event.state.value)

    def on_status_changed(self, listener: StatusListener) -> None:
        """Status port: called every tick with (minutes, state)"""
        self._status_listeners.append(listener)

    # Lifecycle

    def load(self) -> "AppContext":
        """Read config, the live snapshot and daily history from disk"""
        now = self.clock()
        self.config_store.load()
        snapshot = self.ledger.load()
        if snapshot is not None:
            self.machine.restore(snapshot, now)
        self.daily_store.load()
        self.machine.initialize_today(now)
        return self

    def start(self) -> "AppContext":
        self.load()
        if self.power_source is not None:
            self._register_power_events(self.power_source)
        logger.info("MinTik context started")
        return self

    def _register_power_events(self, source: PowerEventSource) -> None:
        source.on_screen_sleep(self.handle_screen_sleep)
        source.on_screen_wake(self.handle_wake)
        source.on_system_sleep(self.handle_system_sleep)
        source.on_system_wake(self.handle_wake)
        source.on_power_off(self.handle_power_off)

    def tick(self, idle_seconds: Optional[float] = None) -> List[Event]:
        if idle_seconds is None:
            idle_seconds = self.idle_source()
        return self.machine.tick(idle_seconds, self.clock())

    def shutdown(self) -> None:
        self.save_all_data()
        self.scheduler.close()

    def save_all_data(self) -> None:
        """Synchronous save used on exit, sleep and power-off"""
        self.scheduler.flush_all()

    # Power events

    def handle_screen_sleep(self) -> None:
        self.machine.handle_screen_sleep(self.clock())
        self.save_all_data()

    def handle_system_sleep(self) -> None:
        self.save_all_data()
        self.machine.handle_screen_sleep(self.clock())

    def handle_wake(self) -> None:
        self.machine.handle_wake(self.clock())

    def handle_power_off(self) -> None:
        self.save_all_data()

    # UI read surface

    def published_state(self) -> Dict[str, Any]:
        return {
            "appState": self.machine.state.value,
            "workTimeSeconds": self.machine.work_time,
            "formattedTime": self.machine.formatted_time,
            "minuteActivity": list(self.ledger.minute_activity),
            "fatigueHeat": list(self.ledger.fatigue_heat),
            "dailyActivities": self.daily_store.serialize(),
            "selectedDate": date_key(self.selected_date),
            "config": self.config.to_dict()
        }

    def get_daily_data(self, day: date) -> Optional[DailyActivityData]:
        return self.daily_store.get(date_key(day))

    def select_date(self, day: date) -> None:
        self.selected_date = day

    # UI commands

    def set_config(self, changes: Dict[str, Any]) -> AppConfig:
        """Apply a partial config update; raises ConfigError when invalid"""
        config = self.config_store.set_config(changes)
        logger.info(f"Config updated: {sorted(changes)}")
        return config

    def complete_onboarding(self) -> None:
        self.config_store.set_config({"is_first_launch": False})
        self.scheduler.flush_config()
        logger.info("Onboarding completed")

    def clear_all_data(self) -> None:
        """Wipe memory and disk, then ask the process to exit"""
        now = self.clock()
        self.machine.reset(now)
        self.daily_store.clear()
        self.machine.initialize_today(now)
        self.scheduler.clear_all()
        logger.info("All data cleared. Quitting...")
        if self.on_terminate is not None:
            self.on_terminate()
