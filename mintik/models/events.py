from dataclasses import dataclass
from datetime import datetime

from mintik.models.activity import AppState

@dataclass(frozen=True)
class StateChangeEvent:
    old_state: AppState
    new_state: AppState
    cause: str
    at: datetime

@dataclass(frozen=True)
class DataMutated:
    at: datetime
    session_boundary: bool = False  # a focus or rest session was just closed

@dataclass(frozen=True)
class StatusUpdate:
    """Menu-bar style status: whole minutes of focus and current state"""
    minutes: int
    state: AppState
