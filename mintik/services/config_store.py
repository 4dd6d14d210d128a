import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from mintik.models.app_config import AppConfig
from mintik.services.errors import ConfigError
from mintik.services.storage import read_json, remove_file, write_json_atomic

logger = logging.getLogger(__name__)

ConfigListener = Callable[[AppConfig], None]

class ConfigStore:
    """Holds the current AppConfig and persists it as ``config.json``"""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._config = AppConfig()
        self._listeners: List[ConfigListener] = []

    @property
    def config(self) -> AppConfig:
        return self._config

    def subscribe(self, listener: ConfigListener) -> None:
        self._listeners.append(listener)

    def load(self) -> AppConfig:
        data = read_json(self.path)
        self._config = AppConfig() if data is None else AppConfig.from_dict(data)
        logger.info(
            f"Config loaded: focus={self._config.focus_duration_sec}s "
            f"active<{self._config.active_threshold_sec}s rest>={self._config.rest_reset_sec}s"
        )
        return self._config

    def set_config(self, changes: Dict[str, Any]) -> AppConfig:
        """Apply a partial update; invalid values are rejected with ConfigError"""
        try:
            updated = self._config.with_changes(changes)
        except ValueError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
        self.replace(updated)
        return updated

    def replace(self, config: AppConfig) -> None:
        if config.model_dump() == self._config.model_dump():
            return
        self._config = config
        for listener in self._listeners:
            try:
                listener(config)
            except Exception as e:
                logger.error(f"Config listener failed: {e}", exc_info=True)

    def save(self, config: Optional[AppConfig] = None) -> None:
        write_json_atomic(self.path, (config or self._config).to_dict())
        logger.debug(f"Config written to {self.path}")

    def delete_file(self) -> bool:
        return remove_file(self.path)
