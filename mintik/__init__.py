"""
MinTik - A focus and break-reminder tracker driven by input idle time
"""

__version__ = "0.1.0"

from .context import AppContext
from .services.focus_machine import FocusStateMachine
from .services.daily_store import DailyAggregateStore
from .services.ledger import ActivityLedger
from .services.persistence import PersistenceScheduler
from .models.activity import ActivitySnapshot, AppState
from .models.app_config import AppConfig
from .models.daily import DailyActivityData

__all__ = [
    'AppContext',
    'FocusStateMachine',
    'DailyAggregateStore',
    'ActivityLedger',
    'PersistenceScheduler',
    'ActivitySnapshot',
    'AppState',
    'AppConfig',
    'DailyActivityData',
]
