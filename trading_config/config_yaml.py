"""
YAML Configuration File Support

Handles loading and saving grid configurations to/from YAML files.

Features:
- Load config from YAML
- Save config to YAML
- Validation against the strategy's config model
- Decimal/datetime serialization
- Config merging (file + CLI overrides)

File layout::

    strategy: grid
    exchange: bluefin          # optional, CLI --exchange overrides
    created_at: '2026-01-01T00:00:00'
    version: '1.0'
    config:
      symbol: ETH-PERP
      grid_size: 5
      ...
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from strategies.implementations.grid.config import GridConfig
from strategies.implementations.grid.exceptions import GridConfigurationError

CONFIG_VERSION = "1.0"


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


# Registered on the safe loader/dumper because that is what load/save use
yaml.add_representer(Decimal, decimal_representer, Dumper=yaml.SafeDumper)
yaml.add_constructor('tag:yaml.org,2002:float', decimal_constructor, Loader=yaml.SafeLoader)


@dataclass
class LoadedConfig:
    """A parsed config file."""
    strategy: str
    config: Dict[str, Any]
    exchange: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_grid_config(self, overrides: Optional[Dict[str, Any]] = None) -> GridConfig:
        """
        Validate the ``config`` section into a GridConfig.

        Raises:
            GridConfigurationError: If the strategy is not grid or a field is invalid
        """
        if self.strategy != "grid":
            raise GridConfigurationError(f"Unsupported strategy in config file: {self.strategy}", field="strategy")
        merged = merge_configs(self.config, overrides or {})
        return GridConfig.from_dict(merged)


# ============================================================================
# YAML Config Operations
# ============================================================================

def save_config_to_yaml(
    strategy_name: str,
    config: Union[GridConfig, Dict[str, Any]],
    file_path: Path,
    exchange: Optional[str] = None,
) -> None:
    """
    Save configuration to YAML file.

    Args:
        strategy_name: Name of the strategy
        config: GridConfig or configuration dictionary
        file_path: Path to save to
        exchange: Exchange name stored next to the strategy
    """
    if isinstance(config, GridConfig):
        config = config.model_dump(exclude_none=True)

    full_config: Dict[str, Any] = {"strategy": strategy_name}
    if exchange:
        full_config["exchange"] = exchange
    full_config["created_at"] = datetime.now().isoformat()
    full_config["version"] = CONFIG_VERSION
    full_config["config"] = config

    with open(file_path, 'w') as f:
        yaml.safe_dump(
            full_config,
            f,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
            indent=2,
        )


def load_config_from_yaml(file_path: Path) -> LoadedConfig:
    """
    Load configuration from YAML file.

    Args:
        file_path: Path to config file

    Returns:
        LoadedConfig with strategy, exchange, config section and metadata

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

    if "strategy" not in full_config:
        raise ValueError("Invalid config file: missing 'strategy' field")

    if "config" not in full_config:
        raise ValueError("Invalid config file: missing 'config' field")

    if not isinstance(full_config["config"], dict):
        raise ValueError("Invalid config file: 'config' must be a mapping")

    exchange = full_config.get("exchange")
    return LoadedConfig(
        strategy=str(full_config["strategy"]).lower(),
        config=dict(full_config["config"]),
        exchange=str(exchange).strip() if exchange else None,
        metadata={
            "created_at": full_config.get("created_at"),
            "version": str(full_config.get("version", CONFIG_VERSION)),
        },
    )


def validate_config_file(file_path: Path) -> Tuple[bool, Optional[str]]:
    """
    Validate a config file against its strategy's config model.

    Returns:
        (is_valid, error_message)
    """
    try:
        load_config_from_yaml(file_path).to_grid_config()
    except (FileNotFoundError, ValueError, yaml.YAMLError, GridConfigurationError) as e:
        return False, str(e)
    return True, None


def merge_configs(base_config: Dict, overrides: Dict) -> Dict:
    """
    Merge two configurations (for CLI override support).

    Args:
        base_config: Base configuration (from file)
        overrides: Override values (from CLI args)

    Returns:
        Merged configuration
    """
    merged = base_config.copy()

    for key, value in overrides.items():
        if value is not None:  # Only override if value is provided
            merged[key] = value

    return merged
