"""
Configuration Management
========================

Handles loading configuration from environment variables and config files.
"""

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "codebakers_config.json"
STORAGE_BACKENDS = ("json", "sqlite", "memory")

# Environment variable -> config field
ENV_VARS = {
    "CODEBAKERS_STORAGE": "storage",
    "CODEBAKERS_STATE_DIR": "state_dir",
    "CODEBAKERS_PROJECT_KEY": "project_key",
    "CODEBAKERS_IMPACT_LIMIT": "impact_display_limit",
    "CODEBAKERS_LOG_LEVEL": "log_level",
}


@dataclass
class CodeBakersConfig:
    """CodeBakers engineering configuration."""
    storage: str = "json"
    state_dir: str = ".codebakers"
    project_key: Optional[str] = None
    impact_display_limit: int = 10
    log_level: str = "WARNING"

    @classmethod
    def load(cls, project_dir: Optional[Path] = None) -> "CodeBakersConfig":
        """
        Load configuration from multiple sources in precedence order:
        1. Environment variables
        2. Local config file (codebakers_config.json)
        3. Default values
        """
        values: dict = {}
        known = {f.name for f in fields(cls)}

        config_path = Path(project_dir or Path.cwd()) / CONFIG_FILENAME
        if config_path.exists():
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    file_config = json.load(f)
                values.update({k: v for k, v in file_config.items() if k in known})
            except (OSError, ValueError) as e:
                logger.warning("Failed to load config file %s: %s", config_path, e)

        for env_name, field_name in ENV_VARS.items():
            env_value = os.environ.get(env_name)
            if env_value:
                values[field_name] = env_value

        config = cls(**values)
        config.impact_display_limit = int(config.impact_display_limit)
        config.storage = str(config.storage).lower()
        if config.storage not in STORAGE_BACKENDS:
            logger.warning("Unknown storage backend %r, using json", config.storage)
            config.storage = "json"
        return config

    @property
    def log_level_value(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.WARNING
