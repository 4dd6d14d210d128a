import pytest
from pathlib import Path
import tempfile
import shutil
from datetime import datetime, timedelta
from unittest.mock import Mock
from mintik.config.settings import Settings
from mintik.context import AppContext
from mintik.models.app_config import AppConfig
from mintik.services.daily_store import DailyAggregateStore
from mintik.services.focus_machine import FocusStateMachine
from mintik.services.idle import ManualPowerEventSource
from mintik.services.ledger import ActivityLedger

class FakeClock:
    """Wall clock that only moves when told to"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now

    def set(self, value: datetime) -> datetime:
        self.now = value
        return self.now

@pytest.fixture
def temp_dir():
    """Provide a temporary directory for test files"""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path)

@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 1, 10, 0, 0))

@pytest.fixture
def settings(temp_dir):
    """Settings pointing every path at the temp directory"""
    return Settings(
        DATA_DIR=temp_dir / "data",
        LOG_DIR=temp_dir / "logs",
        TICK_INTERVAL_SECONDS=0.01,
        CONFIG_DEBOUNCE_SECONDS=0.05,
        MAX_ERRORS=3
    )

@pytest.fixture
def short_config():
    """One-minute focus limit, 5s active threshold, 3 minute rest reset"""
    return AppConfig(focus_duration_sec=60, active_threshold_sec=5, rest_reset_sec=180)

@pytest.fixture
def config_holder(short_config):
    """Mutable box so tests can swap the config between ticks"""
    return {"config": short_config}

@pytest.fixture
def notifier():
    return Mock()

@pytest.fixture
def daily_store(temp_dir):
    return DailyAggregateStore(temp_dir / "daily_activities.json")

@pytest.fixture
def ledger(temp_dir, clock):
    return ActivityLedger(temp_dir / "activity.json", now=clock())

@pytest.fixture
def machine(daily_store, ledger, config_holder, notifier, clock):
    """A state machine over in-memory stores with the short config"""
    return FocusStateMachine(
        daily_store,
        ledger,
        config_provider=lambda: config_holder["config"],
        notifier=notifier,
        clock=clock
    )

@pytest.fixture
def power_source():
    return ManualPowerEventSource()

@pytest.fixture
def context(settings, clock, notifier, power_source):
    """A started context over the temp data directory"""
    ctx = AppContext(
        settings=settings,
        notifier=notifier,
        power_source=power_source,
        idle_source=lambda: 0.0,
        clock=clock,
        on_terminate=Mock()
    )
    ctx.start()
    yield ctx
    ctx.scheduler.close()
