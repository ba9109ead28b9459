"""
X-Ray - Configuration Management
Loads config/default.yaml and applies XRAY_* environment overrides.
"""

import os
import yaml
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass, field

from .errors import ConfigError


DEFAULT_CONFIG: Dict[str, Any] = {
    "environment": "development",
    "storage": {
        "log_path": "data/traces.jsonl",
        "read_limit": 50,
    },
    "transport": {
        "endpoint": "http://localhost:5000/api/ingest",
        "timeout": 5.0,
    },
    "server": {
        "host": "127.0.0.1",
        "port": 5000,
        "debug": False,
    },
    "logging": {
        "log_dir": "logs",
    },
}


@dataclass
class StorageConfig:
    """Trace log storage configuration."""
    log_path: str
    read_limit: int = 50


@dataclass
class TransportConfig:
    """Submitter configuration."""
    endpoint: str
    timeout: float = 5.0


@dataclass
class ServerConfig:
    """Ingestion server configuration."""
    host: str
    port: int
    debug: bool = False


@dataclass
class LoggingConfig:
    """Logging configuration."""
    log_dir: str


@dataclass
class AppConfig:
    """Complete application configuration."""
    environment: str
    storage: StorageConfig
    transport: TransportConfig
    server: ServerConfig
    logging: LoggingConfig
    base_path: Path = field(default_factory=lambda: Path.cwd())

    @property
    def log_path(self) -> Path:
        return self._resolve(self.storage.log_path)

    @property
    def log_dir(self) -> Path:
        return self._resolve(self.logging.log_dir)

    def _resolve(self, value: str) -> Path:
        path = Path(value)
        return path if path.is_absolute() else self.base_path / path

    def build_store(self):
        """Build the file-backed trace log store this config points at."""
        from .store import FileTraceLogStore
        return FileTraceLogStore(self.log_path)

    def build_submitter(self):
        """Build an HTTP submitter for the configured ingestion endpoint."""
        from .transport import HttpTraceSubmitter
        return HttpTraceSubmitter(self.transport.endpoint, timeout=self.transport.timeout)


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}")


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {value!r}")


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "y", "on")


class ConfigManager:
    """
    Manages configuration loading.

    Priority for every setting:
    1. Environment variable (XRAY_*)
    2. config/default.yaml under the base path
    3. Built-in defaults
    """

    def __init__(self, base_path: Optional[Path] = None):
        self.base_path = Path(base_path) if base_path else Path.cwd()
        self.config_dir = self.base_path / "config"
        self._config: Optional[AppConfig] = None

    def load_yaml(self, filepath: Path) -> Dict[str, Any]:
        """Load a YAML configuration file; a missing file yields an empty mapping."""
        if not filepath.exists():
            return {}

        with open(filepath, 'r', encoding='utf-8') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid configuration file {filepath}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file {filepath} must contain a mapping")
        return data

    def load(self) -> AppConfig:
        """
        Load complete application configuration.

        Returns:
            Complete AppConfig instance.
        """
        data = _merge(DEFAULT_CONFIG, self.load_yaml(self.config_dir / "default.yaml"))
        storage = data["storage"]
        transport = data["transport"]
        server = data["server"]

        self._config = AppConfig(
            environment=os.environ.get("XRAY_ENVIRONMENT") or data["environment"],
            storage=StorageConfig(
                log_path=os.environ.get("XRAY_LOG_PATH") or storage["log_path"],
                read_limit=_env_int("XRAY_READ_LIMIT", int(storage["read_limit"])),
            ),
            transport=TransportConfig(
                endpoint=os.environ.get("XRAY_INGEST_ENDPOINT") or transport["endpoint"],
                timeout=_env_float("XRAY_SUBMIT_TIMEOUT", float(transport["timeout"])),
            ),
            server=ServerConfig(
                host=os.environ.get("XRAY_HOST") or server["host"],
                port=_env_int("XRAY_PORT", int(server["port"])),
                debug=_env_bool("XRAY_DEBUG", bool(server["debug"])),
            ),
            logging=LoggingConfig(
                log_dir=os.environ.get("XRAY_LOG_DIR") or data["logging"]["log_dir"],
            ),
            base_path=self.base_path,
        )

        if self._config.storage.read_limit < 0:
            raise ConfigError("storage.read_limit must not be negative")

        return self._config

    @property
    def config(self) -> AppConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            return self.load()
        return self._config


# Global config manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(base_path: Optional[Path] = None) -> ConfigManager:
    """Get or create the global config manager."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager(base_path)
    return _config_manager


def get_config() -> AppConfig:
    """Get the current application configuration."""
    return get_config_manager().config
