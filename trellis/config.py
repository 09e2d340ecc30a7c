from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel

from .constants import DEFAULT_MODEL


class TrellisConfig(BaseModel):
    """Top-level configuration model."""

    database_url: Optional[str] = None
    model: str = DEFAULT_MODEL
    workflow_dir: Optional[str] = None
    verbose: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"


def load_config(path: Optional[str] = None) -> TrellisConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to TRELLIS_CONFIG env
            variable or 'trellis.yaml' in the current directory.
    """

    config_path = path or os.getenv("TRELLIS_CONFIG", "trellis.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = TrellisConfig(**data)
    else:
        config = TrellisConfig()

    env_db_url = os.getenv("TRELLIS_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    env_model = os.getenv("TRELLIS_MODEL")
    if env_model:
        config.model = env_model
    return config
