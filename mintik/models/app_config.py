from datetime import datetime
from typing import Any, Dict, List, Set
import logging
import math
from uuid import uuid4
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

# Keys written by the first config format, before durations moved to seconds
LEGACY_KEYS = {
    "duration": ("focusDurationSec", 60),  # minutes
    "activeThreshold": ("activeThresholdSec", 1),
    "restDuration": ("restResetSec", 1),
}

class WorkHourRange(BaseModel):
    """A user-declared working window, kept for the settings UI"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    start: datetime
    end: datetime

class AppConfig(BaseModel):
    """User-tunable parameters.

    Instances are immutable; changes are applied by building a new value
    so readers on the tick loop always see a complete config.
    """
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore"
    )

    focus_duration_sec: int = Field(
        default=3600,
        gt=0,
        alias="focusDurationSec",
        description="Continuous focus allowed before the warning state"
    )
    active_threshold_sec: float = Field(
        default=5,
        gt=0,
        alias="activeThresholdSec",
        description="Idle seconds below which the user counts as active"
    )
    rest_reset_sec: float = Field(
        default=180,
        gt=0,
        alias="restResetSec",
        description="Idle seconds after which a focus period ends"
    )
    theme_color: str = Field(default="FF8A3D", alias="primaryColorHex")
    user_name: str = Field(default="", alias="userName")
    launch_at_login: bool = Field(default=False, alias="launchAtLogin")
    is_first_launch: bool = Field(default=True, alias="isFirstLaunch")
    enable_full_screen_notification: bool = Field(
        default=False,
        alias="enableFullScreenNotification"
    )
    work_hours: List[WorkHourRange] = Field(default_factory=list, alias="workHours")

    @classmethod
    def _keys_for(cls, key: Any) -> Set[str]:
        """Both the field name and the alias for a key reported in an error"""
        for name, field in cls.model_fields.items():
            if key in (name, field.alias):
                return {name, field.alias}
        return {key}

    @classmethod
    def from_dict(cls, data: Any) -> "AppConfig":
        """Decode a stored config, substituting defaults for bad fields"""
        if not isinstance(data, dict):
            logger.warning(f"Config blob is not an object ({type(data).__name__}), using defaults")
            return cls()

        data = migrate_legacy(dict(data))
        for _ in range(len(cls.model_fields) + 1):
            try:
                return cls.model_validate(data)
            except ValidationError as e:
                bad = set()
                for error in e.errors():
                    if error["loc"]:
                        bad |= cls._keys_for(error["loc"][0])
                if not bad:
                    break
                logger.warning(f"Replacing invalid config fields with defaults: {sorted(bad)}")
                data = {k: v for k, v in data.items() if k not in bad}
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    def with_changes(self, changes: Dict[str, Any]) -> "AppConfig":
        """Validated copy with ``changes`` applied; raises ValueError"""
        merged = self.model_dump()
        for key, value in changes.items():
            name = next(
                (n for n, f in type(self).model_fields.items() if key in (n, f.alias)),
                None
            )
            if name is None:
                raise ValueError(f"Unknown config field: {key}")
            merged[name] = value
        return type(self).model_validate(merged)

def migrate_legacy(data: Dict[str, Any]) -> Dict[str, Any]:
    """Map old minute/second keys onto the current field names"""
    for old_key, (new_key, factor) in LEGACY_KEYS.items():
        if old_key not in data:
            continue
        value = data.pop(old_key)
        if new_key in data:
            continue
        try:
            data[new_key] = float(value) * factor
        except (TypeError, ValueError, OverflowError):
            logger.warning(f"Ignoring unreadable legacy config value {old_key}={value!r}")
    focus = data.get("focusDurationSec")
    if isinstance(focus, float) and not math.isfinite(focus):
        # Non-finite durations fall back to the default
        del data["focusDurationSec"]
    elif isinstance(focus, float):
        data["focusDurationSec"] = int(round(data["focusDurationSec"]))
    return data
