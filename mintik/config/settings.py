from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """Process settings with validation"""

    # Tick loop
    TICK_INTERVAL_SECONDS: float = 1.0
    SAVE_INTERVAL_SECONDS: int = 300  # Periodic ledger/aggregate save
    CONFIG_DEBOUNCE_SECONDS: float = 0.2
    MAX_ERRORS: int = 5
    ERROR_RESET_INTERVAL: int = 300

    # Path Configuration
    DATA_DIR: Path = Path.home() / ".mintik"
    LOG_DIR: Path = Path.home() / ".mintik" / "logs"
    ACTIVITY_FILENAME: str = "activity.json"
    DAILY_FILENAME: str = "daily_activities.json"
    CONFIG_FILENAME: str = "config.json"

    # Web Configuration
    WEB_PORT: int = 8000
    WEB_HOST: str = "127.0.0.1"

    # Development Configuration
    DEBUG: bool = False

    model_config = SettingsConfigDict(
        env_prefix="MINTIK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def activity_path(self) -> Path:
        return self.DATA_DIR / self.ACTIVITY_FILENAME

    @property
    def daily_path(self) -> Path:
        return self.DATA_DIR / self.DAILY_FILENAME

    @property
    def config_path(self) -> Path:
        return self.DATA_DIR / self.CONFIG_FILENAME

    def validate_paths(self) -> None:
        """Ensure all required paths exist"""
        for path in [self.DATA_DIR, self.LOG_DIR]:
            path.mkdir(parents=True, exist_ok=True)
