"""Configuration loader from YAML."""

from pathlib import Path
from typing import Any, Dict

import yaml

from .schema import VaultConfig


def load_config(yaml_path: str = None) -> VaultConfig:
    """
    Load configuration from YAML file.

    Args:
        yaml_path: Path to YAML file (defaults to defaults.yaml)

    Returns:
        VaultConfig object
    """
    if yaml_path is None:
        yaml_path = Path(__file__).parent / "defaults.yaml"

    with open(yaml_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    return VaultConfig.from_dict(data)


def config_from_dict(data: Dict[str, Any]) -> VaultConfig:
    """
    Create config from dictionary.

    Args:
        data: Configuration dictionary

    Returns:
        VaultConfig object
    """
    return VaultConfig.from_dict(data)
