"""
YAML Configuration File Support

Optional grid config file layered over the environment settings:

    strategy: grid
    config:
      lower_price: 0.8
      upper_price: 1.2
      levels: 8
      amount_per_grid: 5

Prices are loaded as Decimal so boundaries stay exact.
"""

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import ValidationError

from strategies.grid.config import GridConfig


STRATEGY_NAME = "grid"


# ============================================================================
# YAML Custom Representers (for Decimal serialization)
# ============================================================================

def decimal_representer(dumper, data):
    """Custom representer for Decimal type."""
    return dumper.represent_scalar('tag:yaml.org,2002:float', str(data))


def decimal_constructor(loader, node):
    """Custom constructor for Decimal type."""
    value = loader.construct_scalar(node)
    return Decimal(value)


yaml.SafeDumper.add_representer(Decimal, decimal_representer)
yaml.SafeLoader.add_constructor('tag:yaml.org,2002:float', decimal_constructor)


# ============================================================================
# YAML Config Operations
# ============================================================================

def save_config_to_yaml(config: GridConfig, file_path: Path) -> None:
    """Write ``config`` as a grid config file."""
    full_config = {
        "strategy": STRATEGY_NAME,
        "created_at": datetime.now().isoformat(),
        "version": "1.0",
        "config": config.model_dump(),
    }
    with open(file_path, 'w') as f:
        yaml.safe_dump(
            full_config,
            f,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
            indent=2,
        )


def load_config_from_yaml(file_path: Path) -> Dict[str, Any]:
    """
    Load a grid config file.

    Returns:
        Dictionary with 'strategy', 'config' and 'metadata' keys

    Raises:
        FileNotFoundError: If file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If config structure is invalid
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")

    with open(file_path, 'r') as f:
        full_config = yaml.safe_load(f)

    if not isinstance(full_config, dict):
        raise ValueError("Invalid config file: must be a YAML dictionary")
    if full_config.get("strategy") != STRATEGY_NAME:
        raise ValueError(
            f"Invalid config file: strategy must be '{STRATEGY_NAME}', got {full_config.get('strategy')!r}"
        )
    if not isinstance(full_config.get("config"), dict):
        raise ValueError("Invalid config file: missing 'config' mapping")

    return {
        "strategy": full_config["strategy"],
        "config": full_config["config"],
        "metadata": {
            "created_at": full_config.get("created_at"),
            "version": full_config.get("version", "1.0"),
        },
    }


def merge_configs(base_config: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay non-None ``overrides`` on ``base_config``."""
    merged = base_config.copy()
    for key, value in overrides.items():
        if value is not None:
            merged[key] = value
    return merged


def validate_config_file(file_path: Path, base_config: Optional[GridConfig] = None) -> Tuple[bool, Optional[str]]:
    """
    Check that a config file yields a valid ``GridConfig``.

    Fields absent from the file are taken from ``base_config`` (or the
    model defaults).

    Returns:
        (is_valid, error_message)
    """
    try:
        loaded = load_config_from_yaml(file_path)
        base = base_config.model_dump() if base_config is not None else {}
        GridConfig.model_validate(merge_configs(base, loaded["config"]))
    except (OSError, yaml.YAMLError, ValueError) as e:
        # pydantic.ValidationError is a ValueError
        if isinstance(e, ValidationError):
            return False, "; ".join(err["msg"] for err in e.errors())
        return False, str(e)
    return True, None
