"""
Configuration management using Pydantic Settings.

Architecture Decision: Why pydantic-settings?
- Backend credentials come from the environment (or a .env file), never from code
- User preferences live in a YAML file the user may edit by hand
- Missing backend values are reported by name instead of failing at first use
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional
import yaml

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
from habitflow.domain.models import UserPreferences

PREFERENCES_FILE = "settings.yaml"

# Checked before <config_dir>/settings.yaml, relative to the working directory
WORKSPACE_PREFERENCES = Path("config") / PREFERENCES_FILE


def _user_base_dir(kind: str) -> Path:
    """Per-user base directory for "config" or "data" files"""
    if os.name == 'nt':
        return Path(os.getenv('APPDATA') or Path.home())
    if kind == "config":
        return Path(os.getenv('XDG_CONFIG_HOME') or Path.home() / '.config')
    return Path(os.getenv('XDG_DATA_HOME') or Path.home() / '.local' / 'share')


class Settings(BaseSettings):
    """
    HabitFlow settings.

    Environment variables (prefix HABITFLOW_) override defaults; preferences
    are read from YAML after the environment has been applied.
    """
    model_config = SettingsConfigDict(
        env_prefix='HABITFLOW_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore'
    )

    app_name: str = "HabitFlow"
    config_dir: Optional[Path] = None
    data_dir: Optional[Path] = None

    # Backend endpoint and key; both are required for a configured backend
    backend_url: Optional[str] = None
    api_key: Optional[SecretStr] = None

    # Identity used by the command-line client
    user_id: Optional[str] = None

    log_level: str = "INFO"

    preferences: UserPreferences = UserPreferences()

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        slug = self.app_name.lower()
        self.config_dir = self.config_dir or _user_base_dir("config") / slug
        self.data_dir = self.data_dir or _user_base_dir("data") / slug
        for directory in (self.config_dir, self.data_dir):
            directory.mkdir(parents=True, exist_ok=True)
        self.preferences = self.load_preferences()

    @property
    def preferences_file(self) -> Path:
        if WORKSPACE_PREFERENCES.exists():
            return WORKSPACE_PREFERENCES
        return self.config_dir / PREFERENCES_FILE

    def load_preferences(self) -> UserPreferences:
        """Preferences from YAML, or the defaults when there is no file"""
        path = self.preferences_file
        if not path.exists():
            return UserPreferences()
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        return UserPreferences.model_validate(data)

    def save_preferences(self):
        """Write the current preferences to <config_dir>/settings.yaml"""
        path = self.config_dir / PREFERENCES_FILE
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.preferences.model_dump(mode="json"), f, default_flow_style=False)

    def missing_backend_settings(self) -> List[str]:
        """Names of the required backend values that are not set"""
        missing = []
        if not self.backend_url:
            missing.append("backend_url")
        if self.api_key is None or not self.api_key.get_secret_value():
            missing.append("api_key")
        return missing

    @property
    def is_configured(self) -> bool:
        return not self.missing_backend_settings()

    def get_backup_dir(self) -> Path:
        """Backup directory from preferences, defaulting to <data_dir>/backups"""
        if self.preferences.backup_directory:
            return Path(self.preferences.backup_directory)
        return self.data_dir / 'backups'


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """The settings of this process, read once"""
    return Settings()


def reload_settings() -> Settings:
    """Drop the cached settings and read them again"""
    get_settings.cache_clear()
    return get_settings()
