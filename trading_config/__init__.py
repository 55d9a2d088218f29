"""
Trading Configuration Management Module

Main Components:
- settings: environment-driven bot settings (pydantic-settings)
- config_yaml: optional YAML grid config file loading and saving
"""

from .config_yaml import (
    load_config_from_yaml,
    merge_configs,
    save_config_to_yaml,
    validate_config_file,
)
from .settings import BotSettings

__all__ = [
    'BotSettings',
    'save_config_to_yaml',
    'load_config_from_yaml',
    'validate_config_file',
    'merge_configs',
]
