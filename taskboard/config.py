# Task board — configuration
# Override storage and server settings via config.yaml, env vars or CLI args.

import logging
import os
import yaml
from pathlib import Path
from dataclasses import dataclass, fields
from typing import Optional

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).parent / "config.yaml"


@dataclass
class Config:
    """Runtime configuration for the task board."""

    # Persistence
    storage: str = "json"          # json | sqlite | memory
    storage_path: str = "~/.local/share/taskboard/board.json"
    slot: str = "kanban-storage"

    # Behavior
    seed_when_empty: bool = True

    # Server
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 3000

    def resolve_paths(self):
        """Apply TASKBOARD_DB and expand ~."""
        env_db = os.environ.get("TASKBOARD_DB")
        if env_db:
            self.storage_path = env_db
        self.storage_path = str(Path(self.storage_path).expanduser())

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        if path:
            cfg_path = Path(path)
        elif os.environ.get("TASKBOARD_CONFIG"):
            cfg_path = Path(os.environ["TASKBOARD_CONFIG"])
        else:
            cfg_path = CONFIG_PATH
        known = {f.name for f in fields(cls)}
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                cfg = cls(**{k: v for k, v in data.items() if k in known})
            except (OSError, yaml.YAMLError, AttributeError, TypeError) as e:
                logger.warning(f"Ignoring unreadable config {cfg_path}: {e}")
                cfg = cls()
        else:
            cfg = cls()
        cfg.resolve_paths()
        return cfg
