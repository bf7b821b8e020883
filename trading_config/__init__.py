"""
Trading Configuration Management Module

YAML config file handling for the grid strategy.

Main Components:
- config_yaml: YAML file loading, saving, and validation utilities
"""

from .config_yaml import (
    LoadedConfig,
    save_config_to_yaml,
    load_config_from_yaml,
    validate_config_file,
    merge_configs,
)

__all__ = [
    'LoadedConfig',
    'save_config_to_yaml',
    'load_config_from_yaml',
    'validate_config_file',
    'merge_configs',
]
