import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from mintik.models.activity import (
    MINUTES_PER_HOUR,
    ActivitySession,
    SessionType,
    zero_minutes,
)

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24
DATE_FORMAT = "%Y-%m-%d"
# Ratio reported when there is focus time but no recorded rest
NO_REST_RATIO = 99.0

def date_key(value: Union[date, datetime]) -> str:
    """Calendar key used for daily records"""
    return value.strftime(DATE_FORMAT)

def parse_date_key(key: str) -> date:
    return datetime.strptime(key, DATE_FORMAT).date()

class DailyActivityData(BaseModel):
    """Per-calendar-day rollup of hourly, per-minute and session statistics.

    ``total_active_time`` and ``peak_hour`` are derived from
    ``hourly_activity`` and recomputed on every hourly write, so
    ``total_active_time == sum(hourly_activity)`` always holds.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    date_string: str = Field(alias="dateString")
    hourly_activity: List[int] = Field(
        default_factory=lambda: [0] * HOURS_PER_DAY,
        alias="hourlyActivity"
    )
    minute_history: Dict[int, List[int]] = Field(default_factory=dict, alias="minuteHistory")
    peak_hour: Optional[int] = Field(default=None, alias="peakHour")
    total_active_time: int = Field(default=0, alias="totalActiveTime")
    sessions: List[ActivitySession] = Field(default_factory=list)
    focus_session_count: int = Field(default=0, ge=0, alias="focusSessionCount")
    rest_session_count: int = Field(default=0, ge=0, alias="restSessionCount")
    total_rest_time: int = Field(default=0, ge=0, alias="totalRestTime")

    @field_validator("hourly_activity", mode="before")
    @classmethod
    def _normalize_hourly(cls, value: Any) -> List[int]:
        if not isinstance(value, list) or len(value) != HOURS_PER_DAY:
            return [0] * HOURS_PER_DAY
        try:
            return [max(0, int(v)) for v in value]
        except (TypeError, ValueError, OverflowError):
            return [0] * HOURS_PER_DAY

    @field_validator("minute_history", mode="before")
    @classmethod
    def _normalize_history(cls, value: Any) -> Dict[int, List[int]]:
        if not isinstance(value, dict):
            return {}
        history = {}
        for hour, minutes in value.items():
            try:
                hour = int(hour)
            except (TypeError, ValueError, OverflowError):
                continue
            if not 0 <= hour < HOURS_PER_DAY:
                continue
            try:
                if not isinstance(minutes, list) or len(minutes) != MINUTES_PER_HOUR:
                    raise ValueError(minutes)
                history[hour] = [max(0, int(v)) for v in minutes]
            except (TypeError, ValueError, OverflowError):
                history[hour] = zero_minutes()
        return history

    @field_validator("focus_session_count", "rest_session_count", "total_rest_time", mode="before")
    @classmethod
    def _normalize_counter(cls, value: Any) -> int:
        if isinstance(value, bool):
            return 0
        try:
            return max(0, int(value))
        except (TypeError, ValueError, OverflowError):
            return 0

    @field_validator("sessions", mode="before")
    @classmethod
    def _normalize_sessions(cls, value: Any) -> List[ActivitySession]:
        if not isinstance(value, list):
            return []
        sessions = []
        for entry in value:
            try:
                sessions.append(ActivitySession.model_validate(entry))
            except (ValidationError, TypeError, ValueError, OverflowError):
                logger.debug(f"Dropping unreadable session entry: {entry!r}")
        return sessions

    @model_validator(mode="after")
    def _derive_totals(self) -> "DailyActivityData":
        self.recalculate()
        return self

    @classmethod
    def for_date(cls, day: Union[date, datetime, str]) -> "DailyActivityData":
        key = day if isinstance(day, str) else date_key(day)
        return cls(date_string=key)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], key: Optional[str] = None) -> "DailyActivityData":
        """Decode a stored day; the map key wins over a missing dateString"""
        if key is not None and "dateString" not in data and "date_string" not in data:
            data = {**data, "dateString": key}
        return cls.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    def update_hour(self, hour: int, seconds: int) -> None:
        """Overwrite one hour's active seconds"""
        if not 0 <= hour < HOURS_PER_DAY:
            return
        self.hourly_activity[hour] = max(0, int(seconds))
        self.recalculate()

    def set_minute_history(self, hour: int, minutes: List[int]) -> None:
        if not 0 <= hour < HOURS_PER_DAY:
            return
        self.minute_history[hour] = list(minutes)

    # Session tracking

    def record_focus_session(self, start_time: datetime, duration: int) -> ActivitySession:
        session = ActivitySession(start_time=start_time, duration=max(0, duration), type=SessionType.FOCUS)
        self.sessions.append(session)
        self.focus_session_count += 1
        return session

    def record_rest_session(self, start_time: datetime, duration: int) -> ActivitySession:
        session = ActivitySession(start_time=start_time, duration=max(0, duration), type=SessionType.REST)
        self.sessions.append(session)
        self.rest_session_count += 1
        self.total_rest_time += session.duration
        return session

    def recalculate(self) -> None:
        self.total_active_time = sum(self.hourly_activity)
        peak = max(range(HOURS_PER_DAY), key=lambda h: self.hourly_activity[h])
        self.peak_hour = peak if self.hourly_activity[peak] > 0 else None

    def peak_time(self) -> Optional[str]:
        """Peak hour as a clock label, e.g. ``2:00 PM``"""
        if self.peak_hour is None:
            return None
        suffix = "AM" if self.peak_hour < 12 else "PM"
        return f"{self.peak_hour % 12 or 12}:00 {suffix}"

    # Rhythm metrics

    @property
    def cumulative_focus_time(self) -> int:
        return self.total_active_time

    @property
    def cumulative_rest_time(self) -> int:
        return self.total_rest_time

    @property
    def focus_rest_ratio(self) -> float:
        if self.total_rest_time <= 0:
            return NO_REST_RATIO if self.total_active_time > 0 else 0.0
        return self.total_active_time / self.total_rest_time

    def sessions_of(self, kind: SessionType) -> List[ActivitySession]:
        return [s for s in self.sessions if s.type == kind]
