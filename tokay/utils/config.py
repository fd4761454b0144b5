"""
Configuration management with schema validation.
Single source of truth for Tokay client configuration.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigError

# Load environment variables
load_dotenv()

DATA_DIR = Path(os.getenv("TOKAY_DATA_DIR", "data"))
SETTINGS_FILE = DATA_DIR / "settings.yaml"

# Used when no settings file exists; still goes through env substitution
DEFAULT_SETTINGS: Dict[str, Any] = {
    "api": {
        "base_url": "${TOKAY_API_URL:http://localhost:5000/api}",
        "realtime_url": "${TOKAY_REALTIME_URL:}",
    },
    "storage": {
        "data_dir": "${TOKAY_DATA_DIR:data}",
    },
    "logging": {
        "level": "${LOG_LEVEL:INFO}",
    },
}


class AppSettings(BaseModel):
    name: str = "Tokay"
    version: str = "1.0.0"
    environment: str = "production"


class ApiSettings(BaseModel):
    base_url: str = "http://localhost:5000/api"
    realtime_url: Optional[str] = None
    timeout_seconds: float = 10.0

    def normalized_base_url(self) -> str:
        return self.base_url.rstrip("/")


class StorageSettings(BaseModel):
    data_dir: str = "data"
    token_file: str = "session.json"
    token_key: str = "tokay_token"

    def token_path(self) -> Path:
        return Path(self.data_dir) / self.token_file


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "json"
    file_path: Optional[str] = None
    max_bytes: int = 10485760
    backup_count: int = 5


class WebSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8000
    login_path: str = "/login"
    home_path: str = "/dashboard"


class PaymentSettings(BaseModel):
    poll_interval_seconds: float = 2.0
    poll_max_seconds: float = 300.0


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    web: WebSettings = Field(default_factory=WebSettings)
    payments: PaymentSettings = Field(default_factory=PaymentSettings)


class ConfigManager:
    """Singleton configuration manager"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self.settings_path = SETTINGS_FILE
        self._settings: Optional[Settings] = None
        self._initialized = True

    def _substitute_env_vars(self, value: Any) -> Any:
        """Recursively substitute ${VAR} and ${VAR:default} expressions"""
        if isinstance(value, str):
            if value.startswith("${") and value.endswith("}"):
                var_expr = value[2:-1]
                if ":" in var_expr:
                    var_name, default = var_expr.split(":", 1)
                    resolved = os.getenv(var_name.strip(), default.strip())
                    return resolved if resolved != "" else None
                env_value = os.getenv(var_expr)
                if env_value is None:
                    raise ConfigError(f"Environment variable {var_expr} not found")
                return env_value
        elif isinstance(value, dict):
            return {k: self._substitute_env_vars(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [self._substitute_env_vars(item) for item in value]
        return value

    @staticmethod
    def _drop_unset(data: Dict[str, Any]) -> Dict[str, Any]:
        """Remove None leaves so model defaults apply"""
        cleaned = {}
        for key, value in data.items():
            if isinstance(value, dict):
                cleaned[key] = ConfigManager._drop_unset(value)
            elif value is not None:
                cleaned[key] = value
        return cleaned

    def load_settings(self, path: Optional[Path] = None) -> Settings:
        """Load settings.yaml, falling back to env-driven defaults when the file is absent"""
        settings_path = Path(path) if path else self.settings_path

        if settings_path.exists():
            try:
                with open(settings_path, "r", encoding="utf-8") as f:
                    raw_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid settings file {settings_path}: {e}")
            if not isinstance(raw_data, dict):
                raise ConfigError(f"Settings file {settings_path} must contain a mapping")
        else:
            raw_data = DEFAULT_SETTINGS

        processed_data = self._drop_unset(self._substitute_env_vars(raw_data))
        try:
            self._settings = Settings(**processed_data)
        except ValidationError as e:
            raise ConfigError(f"Invalid settings: {e}")
        return self._settings

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            return self.load_settings()
        return self._settings


# Global instance
config_manager = ConfigManager()
