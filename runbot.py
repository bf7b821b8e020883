#!/usr/bin/env python3
"""
Grid Trading Bot - Config-driven launcher.

Usage:
    python runbot.py --config configs/grid_example.yml [--env-file .env] [--exchange bluefin]

Exchange clients are resolved through ExchangeFactory: either a name that
was registered with it, or a dotted class path such as
``my_venues.bluefin.BluefinClient``.
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import dotenv
import yaml

from exchange_clients.base_models import ExchangeConnectionError, MissingCredentialsError
from helpers.unified_logger import configure_sinks
from strategies.implementations.grid.exceptions import GridConfigurationError
from trading_bot import TradingBot, TradingConfig


def parse_arguments(argv: Optional[list] = None):
    """Parse command line arguments (config-only workflow)."""
    parser = argparse.ArgumentParser(
        description="Run the grid strategy using a YAML configuration."
    )

    parser.add_argument(
        "--config",
        "-c",
        type=str,
        required=True,
        help="Path to the YAML configuration file.",
    )

    parser.add_argument(
        "--env-file",
        type=str,
        default=".env",
        help="Path to the environment file with API credentials (default: .env).",
    )

    parser.add_argument(
        "--exchange",
        "-e",
        type=str,
        default=None,
        help="Exchange name or dotted client class path (overrides the config file).",
    )

    parser.add_argument(
        "--log-level",
        "-l",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO). Use DEBUG to see detailed logs.",
    )

    return parser.parse_args(argv)


def setup_logging(log_level: str):
    """Setup global logging configuration for stdlib loggers."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    # Clear any existing handlers to prevent duplicates
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # UnifiedLogger handles its own console output; this covers third-party libraries
    root_logger.setLevel(level)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    formatter = logging.Formatter(
        '%(asctime)s.%(msecs)03d - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Always suppress noisy library debug logs (even in DEBUG mode)
    logging.getLogger('websockets').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)

    # Re-level the shared loguru console sink; file sinks follow GRID_LOG_TO_FILE
    configure_sinks(log_level, log_to_file=False, reconfigure=True)


def build_trading_config(config_path: Path, exchange_override: Optional[str] = None) -> TradingConfig:
    """
    Load and validate a config file into a TradingConfig.

    Raises:
        FileNotFoundError, ValueError, yaml.YAMLError: If the file is unusable
        GridConfigurationError: If the grid parameters are invalid
    """
    from trading_config.config_yaml import load_config_from_yaml

    loaded = load_config_from_yaml(config_path)
    grid_config = loaded.to_grid_config()

    exchange = exchange_override or loaded.exchange
    if not exchange:
        raise ValueError("No exchange configured: set 'exchange' in the config file or pass --exchange")

    return TradingConfig(exchange=exchange, grid=grid_config, strategy=loaded.strategy)


async def main(argv: Optional[list] = None) -> int:
    """Main entry point. Returns the process exit code."""
    args = parse_arguments(argv)

    # Set LOG_LEVEL environment variable for UnifiedLogger
    os.environ['LOG_LEVEL'] = args.log_level
    setup_logging(args.log_level)

    config_path = Path(args.config)
    if not config_path.exists():
        print(f"Error: Config file not found: {config_path}")
        return 1

    env_path = Path(args.env_file)
    if env_path.exists():
        dotenv.load_dotenv(env_path)
    else:
        print(f"Env file not found: {env_path.resolve()} (using process environment)")

    try:
        config = build_trading_config(config_path, args.exchange)
    except GridConfigurationError as e:
        field_hint = f" (field: {e.field})" if e.field else ""
        print(f"Error: Invalid grid configuration{field_hint}: {e}")
        return 1
    except (ValueError, yaml.YAMLError) as e:
        print(f"Error: Invalid config file: {e}")
        return 1

    print(f"\n✓ Loaded configuration from: {config_path}")

    print("\n" + "=" * 70)
    print("  Starting Grid Trading Bot")
    print("=" * 70)
    print(f"  Exchange: {config.exchange}")
    print(f"  Symbol:   {config.grid.symbol}")
    print(f"  Range:    {config.grid.lower_price} - {config.grid.upper_price} ({config.grid.grid_size} levels)")
    print(f"  Testnet:  {config.grid.testnet}")
    print("=" * 70 + "\n")

    try:
        bot = TradingBot(config)
    except (ValueError, MissingCredentialsError) as e:
        print(f"Error: {e}")
        return 1

    try:
        await bot.run()
    except ExchangeConnectionError as e:
        print(f"Error: Could not connect to {config.exchange}: {e}")
        return 1
    except GridConfigurationError as e:
        print(f"Error: Invalid grid configuration: {e}")
        return 1
    except Exception as e:
        print(f"Bot execution failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(0)
