"""
Configuration Manager
Handles all service configuration with automatic defaults
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 3179


class ConfigManager:
    """Manages service configuration with automatic setup"""

    def __init__(self, config_path: str = None):
        self.logger = logging.getLogger(__name__)

        # Determine configuration path
        if config_path:
            self.config_path = Path(config_path)
        else:
            app_data = os.environ.get('PROGRAMDATA', os.path.expanduser('~'))
            self.config_path = Path(app_data) / "PrintServer" / "config.json"

        self.config_dir = self.config_path.parent

        self._create_directories()
        self._load_config()

    def _create_directories(self):
        """Create all required directories"""
        directories = [
            self.config_dir,
            self.config_dir / "logs",
            self.config_dir / "temp",
        ]

        for directory in directories:
            try:
                directory.mkdir(parents=True, exist_ok=True)
                self.logger.debug(f"Directory ensured: {directory}")
            except OSError as e:
                self.logger.error(f"Failed to create directory {directory}: {e}")

    def _load_config(self):
        """Load configuration from file or create default"""
        default_config = self._create_default_config()
        try:
            if self.config_path.exists():
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    self.config = json.load(f)
                self.logger.info("Configuration loaded successfully")

                # Ensure all required keys exist, one level into sections
                for key, value in default_config.items():
                    if key not in self.config:
                        self.config[key] = value
                        self.logger.info(f"Added missing config key: {key}")
                    elif isinstance(value, dict) and isinstance(self.config[key], dict):
                        for sub_key, sub_value in value.items():
                            self.config[key].setdefault(sub_key, sub_value)

            else:
                self.config = default_config
                self._save_config()
                self.logger.info("Default configuration created")

        except (OSError, ValueError) as e:
            self.logger.error(f"Configuration load error: {e}")
            self.config = default_config
            self._save_config()

    def _create_default_config(self) -> Dict[str, Any]:
        """Create default configuration"""
        return {
            # Listener
            "server": {
                "ip": DEFAULT_HOST,
                "port": DEFAULT_PORT,
                "autostart": True,
                "https": {
                    "use_https": False,
                    "cert": "",
                    "key": "",
                },
            },
            "enable_cors": True,

            # URL to PDF rendering
            "render": {
                "browser_path": "",
                "timeout_seconds": 60,
            },

            # Print mechanism
            "printing": {
                "timeout_seconds": 120,
                "resources_path": "",
                "sumatra_path": "",
            },

            # Directories
            "temp_directory": str(self.config_dir / "temp"),
            "log_directory": str(self.config_dir / "logs"),

            # Logging
            "log_level": "INFO",
        }

    def _save_config(self):
        """Save configuration to file"""
        try:
            # Create backup if config exists
            if self.config_path.exists():
                backup_path = self.config_path.with_suffix('.json.backup')
                self.config_path.replace(backup_path)

            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(self.config, f, indent=2, ensure_ascii=False)

            self.logger.debug("Configuration saved successfully")

        except OSError as e:
            self.logger.error(f"Failed to save configuration: {e}")

    def get_config(self) -> Dict[str, Any]:
        """Get current configuration (copy)"""
        return copy.deepcopy(self.config)

    def update_config(self, updates: Dict[str, Any]):
        """Update configuration with new values"""
        self.config.update(updates)
        self._save_config()
        self.logger.info(f"Configuration updated: {list(updates.keys())}")

    def get_server_config(self) -> Dict[str, Any]:
        """Get listener configuration (``server.*``)"""
        server = self.config["server"]
        return {
            "ip": server.get("ip") or DEFAULT_HOST,
            "port": server.get("port") or DEFAULT_PORT,
            "autostart": bool(server.get("autostart", True)),
            "https": dict(server.get("https") or {}),
            "enable_cors": self.config.get("enable_cors", True),
        }

    def get_render_config(self) -> Dict[str, Any]:
        """Get URL rendering configuration"""
        return dict(self.config["render"])

    def get_printing_config(self) -> Dict[str, Any]:
        """Get print mechanism configuration"""
        printing = dict(self.config["printing"])
        printing["temp_directory"] = self.config.get("temp_directory") or None
        return printing
