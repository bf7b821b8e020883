"""
Exchange factory for creating exchange clients dynamically.
"""

import importlib
from typing import Any, Dict, Type

from exchange_clients.base_client import BaseExchangeClient


class ExchangeFactory:
    """
    Factory class for creating exchange clients.

    Venue clients live outside this repository; they are made available by
    registering a dotted class path (``register_exchange_path``) or class
    (``register_exchange``). A dotted path may also be passed directly as
    the exchange name.
    """

    _registered_exchanges: Dict[str, str] = {}

    @classmethod
    def create_exchange(cls, exchange_name: str, config: Dict[str, Any]) -> BaseExchangeClient:
        """Create an exchange client instance.

        Args:
            exchange_name: Registered name (e.g., 'bluefin') or dotted class path
            config: Configuration dictionary for the exchange

        Returns:
            Exchange client instance

        Raises:
            ValueError: If the exchange is not supported
        """
        key = exchange_name.lower()

        if key in cls._registered_exchanges:
            class_path = cls._registered_exchanges[key]
        elif "." in exchange_name:
            class_path = exchange_name
        else:
            available_exchanges = ', '.join(cls._registered_exchanges.keys()) or "none registered"
            raise ValueError(f"Unsupported exchange: {exchange_name}. Available exchanges: {available_exchanges}")

        exchange_class = cls._import_exchange_class(class_path)
        return exchange_class(config)

    @classmethod
    def _import_exchange_class(cls, class_path: str) -> Type[BaseExchangeClient]:
        """Dynamically import an exchange class.

        Raises:
            ImportError: If the class cannot be imported
            ValueError: If the class does not inherit from BaseExchangeClient
        """
        try:
            module_path, class_name = class_path.rsplit('.', 1)
            module = importlib.import_module(module_path)
            exchange_class = getattr(module, class_name)
        except (ImportError, AttributeError, ValueError) as e:
            raise ImportError(f"Failed to import exchange class {class_path}: {e}")

        if not isinstance(exchange_class, type) or not issubclass(exchange_class, BaseExchangeClient):
            raise ValueError(f"Exchange class {class_path} must inherit from BaseExchangeClient")

        return exchange_class

    @classmethod
    def get_supported_exchanges(cls) -> list:
        """Get list of registered exchange names."""
        return list(cls._registered_exchanges.keys())

    @classmethod
    def register_exchange(cls, name: str, exchange_class: type) -> None:
        """Register an exchange client class under ``name``.

        Args:
            name: Exchange name
            exchange_class: Exchange client class that inherits from BaseExchangeClient
        """
        if not issubclass(exchange_class, BaseExchangeClient):
            raise ValueError("Exchange class must inherit from BaseExchangeClient")

        cls._registered_exchanges[name.lower()] = f"{exchange_class.__module__}.{exchange_class.__name__}"

    @classmethod
    def register_exchange_path(cls, name: str, class_path: str) -> None:
        """Register a lazily imported client by dotted path."""
        cls._registered_exchanges[name.lower()] = class_path
