import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from mintik.models.activity import ActivitySession
from mintik.models.daily import DailyActivityData
from mintik.services.storage import read_json, remove_file, write_json_atomic

logger = logging.getLogger(__name__)

class DailyAggregateStore:
    """Map of ``yyyy-MM-dd`` -> DailyActivityData, persisted as one JSON object"""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.days: Dict[str, DailyActivityData] = {}

    def get(self, key: str) -> Optional[DailyActivityData]:
        return self.days.get(key)

    def get_or_create(self, key: str) -> DailyActivityData:
        day = self.days.get(key)
        if day is None:
            day = DailyActivityData.for_date(key)
            self.days[key] = day
            logger.debug(f"Created daily record for {key}")
        return day

    def record_focus_session(self, key: str, start_time: datetime, duration: int) -> ActivitySession:
        return self.get_or_create(key).record_focus_session(start_time, duration)

    def record_rest_session(self, key: str, start_time: datetime, duration: int) -> ActivitySession:
        return self.get_or_create(key).record_rest_session(start_time, duration)

    def update_hour(self, key: str, hour: int, seconds: int) -> None:
        self.get_or_create(key).update_hour(hour, seconds)

    def set_minute_history(self, key: str, hour: int, minutes: List[int]) -> None:
        self.get_or_create(key).set_minute_history(hour, minutes)

    def date_keys(self) -> List[str]:
        return sorted(self.days)

    def clear(self) -> None:
        self.days = {}

    def serialize(self) -> Dict[str, Any]:
        """Detached JSON-ready copy of every day"""
        return {key: day.to_dict() for key, day in self.days.items()}

    def load(self) -> int:
        """Replace the in-memory map with the persisted one; returns days loaded"""
        data = read_json(self.path)
        if data is None:
            return 0
        if not isinstance(data, dict):
            logger.warning(f"{self.path} does not hold an object, ignoring it")
            return 0

        days = {}
        for key, value in data.items():
            if not isinstance(value, dict):
                logger.warning(f"Skipping malformed daily record {key}")
                continue
            try:
                days[key] = DailyActivityData.from_dict(value, key=key)
            except ValidationError as e:
                logger.warning(f"Skipping unreadable daily record {key}: {e.error_count()} errors")
        self.days = days
        logger.info(f"Loaded {len(days)} daily records from {self.path}")
        return len(days)

    def save(self, data: Optional[Dict[str, Any]] = None) -> None:
        write_json_atomic(self.path, self.serialize() if data is None else data)
        logger.debug(f"Daily activities written to {self.path}")

    def delete_file(self) -> bool:
        return remove_file(self.path)
