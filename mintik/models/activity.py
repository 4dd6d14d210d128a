from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import logging
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

MINUTES_PER_HOUR = 60
MAX_SECONDS_PER_MINUTE = 60

def zero_minutes() -> List[int]:
    return [0] * MINUTES_PER_HOUR

def zero_heat() -> List[float]:
    return [0.0] * MINUTES_PER_HOUR

class AppState(str, Enum):
    ACTIVE = "active"
    WARNING = "warning"
    PAUSED = "paused"
    IDLE = "idle"

class SessionType(str, Enum):
    FOCUS = "focus"
    REST = "rest"

class ActivitySession(BaseModel):
    """A completed focus or rest interval"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    start_time: datetime = Field(alias="startTime")
    duration: int = Field(ge=0, description="Seconds")
    type: SessionType

class ActivitySnapshot(BaseModel):
    """Live ledger state written to disk for restart recovery"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    minute_activity: List[int] = Field(default_factory=zero_minutes, alias="minuteActivity")
    work_time: int = Field(default=0, alias="workTime")
    last_tick_hour: int = Field(
        default_factory=lambda: datetime.now().hour,
        alias="lastTickHour"
    )
    fatigue_heat: List[float] = Field(default_factory=zero_heat, alias="fatigueHeat")
    last_tick_date: Optional[str] = Field(default=None, alias="lastTickDate")

    @field_validator("minute_activity", mode="before")
    @classmethod
    def _normalize_minutes(cls, value: Any) -> List[int]:
        if not isinstance(value, list) or len(value) != MINUTES_PER_HOUR:
            return zero_minutes()
        try:
            return [min(MAX_SECONDS_PER_MINUTE, max(0, int(v))) for v in value]
        except (TypeError, ValueError, OverflowError):
            return zero_minutes()

    @field_validator("fatigue_heat", mode="before")
    @classmethod
    def _normalize_heat(cls, value: Any) -> List[float]:
        if not isinstance(value, list) or len(value) != MINUTES_PER_HOUR:
            return zero_heat()
        try:
            return [min(1.0, max(0.0, float(v))) for v in value]
        except (TypeError, ValueError, OverflowError):
            return zero_heat()

    @field_validator("work_time", mode="before")
    @classmethod
    def _normalize_work_time(cls, value: Any) -> int:
        try:
            return max(0, int(value))
        except (TypeError, ValueError, OverflowError):
            return 0

    @field_validator("last_tick_hour", mode="before")
    @classmethod
    def _normalize_hour(cls, value: Any) -> int:
        try:
            hour = int(value)
        except (TypeError, ValueError, OverflowError):
            return datetime.now().hour
        return hour if 0 <= hour < 24 else datetime.now().hour

    @field_validator("last_tick_date", mode="before")
    @classmethod
    def _normalize_date(cls, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        try:
            datetime.strptime(value, "%Y-%m-%d")
        except ValueError:
            return None
        return value

    @classmethod
    def from_dict(cls, data: Any) -> "ActivitySnapshot":
        """Decode a stored snapshot; every bad field falls back to its default"""
        if not isinstance(data, dict):
            logger.warning("Activity snapshot is not an object, starting empty")
            return cls()
        return cls.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
