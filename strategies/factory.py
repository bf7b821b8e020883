"""
Strategy Factory
Creates strategy instances based on configuration.
"""

from typing import Any, Dict, List, Type

from .base_strategy import BaseStrategy
from .implementations.grid import GridStrategy
from .implementations.grid.config import GridConfig


class StrategyFactory:
    """Factory for creating trading strategy instances."""

    # Registry of available strategies and the config model each one validates
    _strategies: Dict[str, Type[BaseStrategy]] = {
        'grid': GridStrategy,
    }
    _config_models: Dict[str, Any] = {
        'grid': GridConfig,
    }

    @classmethod
    def create_strategy(cls, strategy_name: str, config, exchange_client) -> BaseStrategy:
        """Create a strategy instance.

        Args:
            strategy_name: Name of the strategy to create
            config: Validated config model, or a plain mapping to validate
            exchange_client: Exchange client the strategy trades through

        Returns:
            BaseStrategy: Strategy instance

        Raises:
            ValueError: If strategy name is not supported or no client is given
            GridConfigurationError: If a mapping config fails validation
        """
        strategy_name = strategy_name.lower()

        if strategy_name not in cls._strategies:
            available = ', '.join(cls._strategies.keys())
            raise ValueError(f"Unsupported strategy: {strategy_name}. Available: {available}")

        if exchange_client is None:
            raise ValueError(f"Strategy '{strategy_name}' requires exchange_client parameter")

        prepared_config = config
        config_model = cls._config_models.get(strategy_name)
        if config_model is not None and isinstance(config, dict):
            prepared_config = config_model.from_dict(config)

        return cls._strategies[strategy_name](prepared_config, exchange_client)

    @classmethod
    def register_strategy(cls, name: str, strategy_class: Type[BaseStrategy], config_model: Any = None):
        """Register a new strategy.

        Args:
            name: Strategy name
            strategy_class: Strategy class that inherits from BaseStrategy
            config_model: Optional model exposing ``from_dict`` for mapping configs
        """
        if not issubclass(strategy_class, BaseStrategy):
            raise ValueError(f"Strategy class {strategy_class.__name__} must inherit from BaseStrategy")

        cls._strategies[name.lower()] = strategy_class
        if config_model is not None:
            cls._config_models[name.lower()] = config_model

    @classmethod
    def get_supported_strategies(cls) -> List[str]:
        """Get list of supported strategy names."""
        return list(cls._strategies.keys())
