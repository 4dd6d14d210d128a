"""Serial background writer for the ledger, daily map and config.

All disk I/O runs on a single worker thread in submission order. Callers hand
over serialized copies, so the worker never touches live state.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Optional

from mintik.models.activity import ActivitySnapshot
from mintik.models.app_config import AppConfig
from mintik.models.events import DataMutated
from mintik.services.config_store import ConfigStore
from mintik.services.daily_store import DailyAggregateStore
from mintik.services.errors import PersistenceError
from mintik.services.ledger import ActivityLedger

logger = logging.getLogger(__name__)

class PersistenceScheduler:
    def __init__(
        self,
        ledger: ActivityLedger,
        daily_store: DailyAggregateStore,
        config_store: ConfigStore,
        snapshot_provider: Callable[[], ActivitySnapshot],
        save_interval_seconds: int = 300,
        debounce_seconds: float = 0.2,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.ledger = ledger
        self.daily_store = daily_store
        self.config_store = config_store
        self.snapshot_provider = snapshot_provider
        self.save_interval = save_interval_seconds
        self.debounce_seconds = debounce_seconds
        self._clock = clock
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mintik-persistence")
        self._lock = threading.Lock()
        self._debounce_timer: Optional[threading.Timer] = None
        self._pending_config: Optional[AppConfig] = None
        self.last_save_time: datetime = clock()
        self.enabled = True

    def _run(self, description: str, fn: Callable[..., Any], *args: Any) -> None:
        try:
            fn(*args)
        except PersistenceError as e:
            logger.error(f"Failed to persist {description}: {e}")
        except Exception as e:
            logger.error(f"Unexpected error persisting {description}: {e}", exc_info=True)

    def _submit(self, description: str, fn: Callable[..., Any], *args: Any) -> None:
        if not self.enabled:
            logger.debug(f"Persistence disabled, dropping {description} write")
            return
        self._executor.submit(self._run, description, fn, *args)

    # Ledger and daily map

    def schedule_data_save(self, now: Optional[datetime] = None) -> None:
        """Queue a write of the activity snapshot and the daily map"""
        if not self.enabled:
            return
        # Snapshot first: the provider re-syncs the current hour into the daily map
        snapshot = self.snapshot_provider()
        daily = self.daily_store.serialize()
        self._submit("activity snapshot", self.ledger.save, snapshot)
        self._submit("daily activities", self.daily_store.save, daily)
        self.last_save_time = now or self._clock()
        logger.debug("Triggered data save")

    def save_if_due(self, now: datetime) -> bool:
        """Periodic cadence check; True when a save was queued"""
        if (now - self.last_save_time).total_seconds() < self.save_interval:
            return False
        self.schedule_data_save(now)
        return True

    def handle_mutation(self, event: DataMutated) -> None:
        if event.session_boundary:
            self.schedule_data_save(event.at)
        else:
            self.save_if_due(event.at)

    # Config

    def schedule_config_save(self, config: AppConfig) -> None:
        """Debounced config write; only the last value in a burst is written"""
        with self._lock:
            self._pending_config = config
            if self._debounce_timer is not None:
                self._debounce_timer.cancel()
            self._debounce_timer = threading.Timer(self.debounce_seconds, self.flush_config)
            self._debounce_timer.daemon = True
            self._debounce_timer.start()

    def flush_config(self) -> None:
        with self._lock:
            if self._debounce_timer is not None:
                self._debounce_timer.cancel()
                self._debounce_timer = None
            config, self._pending_config = self._pending_config, None
        if config is not None:
            self._submit("config", self.config_store.save, config)

    # Barriers

    def wait_idle(self) -> None:
        """Block until every queued write has finished"""
        self._executor.submit(lambda: None).result()

    def flush_all(self) -> None:
        """Queue every pending write and wait for the queue to drain"""
        self.flush_config()
        self.schedule_data_save()
        self.wait_idle()
        logger.info("All data saved")

    def clear_all(self) -> None:
        """Delete every persisted file and stop accepting writes"""
        with self._lock:
            if self._debounce_timer is not None:
                self._debounce_timer.cancel()
                self._debounce_timer = None
            self._pending_config = None
        self._submit("activity snapshot removal", self.ledger.delete_file)
        self._submit("daily activities removal", self.daily_store.delete_file)
        self._submit("config removal", self.config_store.delete_file)
        self.enabled = False
        self.wait_idle()
        logger.info("Persisted data removed")

    def close(self) -> None:
        """Stop the worker once queued writes finish; later writes are dropped"""
        with self._lock:
            if self._debounce_timer is not None:
                self._debounce_timer.cancel()
                self._debounce_timer = None
            self.enabled = False
        self._executor.shutdown(wait=True)
