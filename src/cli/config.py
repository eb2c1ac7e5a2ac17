"""Configuration loading and management.

Project config lives at ``<project>/.mother/config.yaml``.
"""

import os
from pathlib import Path
from typing import Optional

import yaml

from .config_models import MotherConfig

CONFIG_DIR = ".mother"
CONFIG_FILE = "config.yaml"
CONTEXT_FILE = "project-context.yaml"

# Default config dict
DEFAULT_CONFIG = MotherConfig().to_dict()


def get_project_path() -> Path:
    """Project root from ``MOTHER_PROJECT_PATH`` or the working directory."""
    return Path(os.environ.get("MOTHER_PROJECT_PATH") or Path.cwd()).expanduser().resolve()


def config_path_for(project_path: Optional[Path] = None) -> Path:
    return (project_path or get_project_path()) / CONFIG_DIR / CONFIG_FILE


def context_path_for(project_path: Optional[Path] = None) -> Path:
    return (project_path or get_project_path()) / CONFIG_DIR / CONTEXT_FILE


def load_config(config_path: Optional[Path] = None) -> dict:
    """Load configuration from file or defaults.

    Returns dict. Use load_config_model() for typed access.
    """
    return load_config_model(config_path).to_dict()


def load_config_model(config_path: Optional[Path] = None) -> MotherConfig:
    """Load configuration as Pydantic model with validation."""
    base_config = {}

    path = config_path or config_path_for()
    if path.exists():
        try:
            with open(path) as f:
                base_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file: {e}")

    if not isinstance(base_config, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")

    try:
        return MotherConfig.from_dict(base_config)
    except Exception as e:
        raise ValueError(f"Config validation failed: {e}")


def save_config(config: MotherConfig | dict, config_path: Optional[Path] = None) -> Path:
    """Write config as YAML. Returns the path written."""
    path = config_path or config_path_for()
    data = config.to_dict() if isinstance(config, MotherConfig) else config
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    return path


def init_config(config_path: Optional[Path] = None) -> tuple[MotherConfig, bool]:
    """Load the existing config or write defaults. Returns (config, created)."""
    path = config_path or config_path_for()
    if path.exists():
        return load_config_model(path), False
    config = MotherConfig()
    save_config(config, path)
    return config, True


def get_paths(config: dict, project_path: Optional[Path] = None) -> dict:
    """Resolve install and cache directories against the project root."""
    root = project_path or get_project_path()
    return {
        "project": root,
        "install_path": (root / Path(config.get("install_path", DEFAULT_CONFIG["install_path"])).expanduser()),
        "cache_dir": (root / Path(config.get("cache", {}).get("dir", DEFAULT_CONFIG["cache"]["dir"])).expanduser()),
        "context": context_path_for(root),
    }
