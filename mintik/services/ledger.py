import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from mintik.models.activity import (
    MAX_SECONDS_PER_MINUTE,
    MINUTES_PER_HOUR,
    ActivitySnapshot,
    zero_heat,
    zero_minutes,
)
from mintik.models.daily import date_key
from mintik.services.storage import read_json, remove_file, write_json_atomic

logger = logging.getLogger(__name__)

class ActivityLedger:
    """Minute activity and fatigue heat for the hour in progress.

    The arrays always hold exactly 60 slots indexed by minute-of-hour.
    ``last_tick_hour``/``last_tick_date`` name the hour the slots belong to.
    """

    def __init__(self, path: Path, now: Optional[datetime] = None):
        self.path = Path(path)
        now = now or datetime.now()
        self.minute_activity: List[int] = zero_minutes()
        self.fatigue_heat: List[float] = zero_heat()
        self.last_tick_hour: int = now.hour
        self.last_tick_date: str = date_key(now)

    def total_seconds(self) -> int:
        return sum(self.minute_activity)

    def record_second(self, minute: int) -> bool:
        """Count one second of input in ``minute``; False once the slot is full"""
        if not 0 <= minute < MINUTES_PER_HOUR:
            return False
        if self.minute_activity[minute] >= MAX_SECONDS_PER_MINUTE:
            return False
        self.minute_activity[minute] += 1
        return True

    def raise_heat(self, minute: int, severity: float) -> bool:
        """Raise the minute's heat to ``severity``; heat never drops within an hour"""
        if not 0 <= minute < MINUTES_PER_HOUR:
            return False
        level = max(self.fatigue_heat[minute], min(1.0, max(0.0, severity)))
        if level == self.fatigue_heat[minute]:
            return False
        self.fatigue_heat[minute] = level
        return True

    def start_hour(self, now: datetime) -> None:
        self.minute_activity = zero_minutes()
        self.fatigue_heat = zero_heat()
        self.last_tick_hour = now.hour
        self.last_tick_date = date_key(now)

    def restore(self, snapshot: ActivitySnapshot, now: Optional[datetime] = None) -> None:
        now = now or datetime.now()
        self.minute_activity = list(snapshot.minute_activity)
        self.fatigue_heat = list(snapshot.fatigue_heat)
        self.last_tick_hour = snapshot.last_tick_hour
        self.last_tick_date = snapshot.last_tick_date or date_key(now)

    def to_snapshot(self, work_time: int) -> ActivitySnapshot:
        return ActivitySnapshot(
            minute_activity=list(self.minute_activity),
            work_time=work_time,
            last_tick_hour=self.last_tick_hour,
            fatigue_heat=list(self.fatigue_heat),
            last_tick_date=self.last_tick_date
        )

    def load(self) -> Optional[ActivitySnapshot]:
        """Read the persisted snapshot; None when there is nothing usable"""
        data = read_json(self.path)
        if data is None:
            return None
        return ActivitySnapshot.from_dict(data)

    def save(self, snapshot: ActivitySnapshot) -> None:
        write_json_atomic(self.path, snapshot.to_dict())
        logger.debug(f"Activity snapshot written to {self.path}")

    def delete_file(self) -> bool:
        return remove_file(self.path)
