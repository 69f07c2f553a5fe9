import json
import logging
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "source_path": None,
    "host": "127.0.0.1",
    "port": 5000,
    "log_level": "INFO"
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigManager:
    def __init__(self, config_file: str = "advice_config.json"):
        self.config_file = Path(config_file)
        self.config = self._load_config()

    def _load_config(self) -> Dict:
        """Load configuration from file or create default if not exists."""
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r') as f:
                    loaded = json.load(f)
            except json.JSONDecodeError as e:
                logger.error(f"Invalid JSON in {self.config_file}, using defaults: {e}")
                return dict(DEFAULT_CONFIG)
            return {**DEFAULT_CONFIG, **loaded}
        else:
            default_config = dict(DEFAULT_CONFIG)
            self._save_config(default_config)
            return default_config

    def _save_config(self, config: Dict) -> None:
        """Save configuration to file."""
        with open(self.config_file, 'w') as f:
            json.dump(config, f, indent=2)

    def get_source_path(self) -> Optional[Path]:
        """Get the advice document path, relative paths resolved against the config file.

        None means the bundled document.
        """
        source_path = self.config.get("source_path")
        if not source_path:
            return None
        path = Path(source_path)
        if not path.is_absolute():
            path = self.config_file.resolve().parent / path
        return path

    def set_source_path(self, path: str) -> None:
        """Set the advice document path."""
        if not str(path).strip():
            raise ValueError("Source path must not be empty")
        self.config["source_path"] = str(path)
        self._save_config(self.config)

    def get_host(self) -> str:
        return self.config.get("host", DEFAULT_CONFIG["host"])

    def get_port(self) -> int:
        return int(self.config.get("port", DEFAULT_CONFIG["port"]))

    def set_port(self, port: int) -> None:
        """Set the HTTP port."""
        if not 0 < port < 65536:
            raise ValueError("Port must be between 1 and 65535")
        self.config["port"] = port
        self._save_config(self.config)

    def get_log_level(self) -> str:
        return str(self.config.get("log_level", DEFAULT_CONFIG["log_level"])).upper()

    def set_log_level(self, level: str) -> None:
        """Set the logging level name."""
        level = level.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {level}")
        self.config["log_level"] = level
        self._save_config(self.config)
