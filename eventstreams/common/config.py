"""
Configuration loading.

Reads settings from `config.yaml`; individual modules pick the section they
need and apply their own environment overrides.
"""

import os
from typing import Any, Dict

import yaml


def load_config(config_path: str = "config.yaml") -> Dict[str, Any]:
    """Load configuration from YAML file, returning {} if it does not exist."""
    if not os.path.exists(config_path):
        return {}
    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    return config if isinstance(config, dict) else {}


def get_section(name: str, config_path: str = "config.yaml") -> Dict[str, Any]:
    """Get a single top-level section of the configuration."""
    section = load_config(config_path).get(name)
    return section if isinstance(section, dict) else {}
