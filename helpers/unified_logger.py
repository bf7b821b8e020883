"""
Unified logging for the grid bot.

Every component (exchange client, strategy, bot runner) logs through a
component-bound loguru logger so console and file output share one format:

- Colored console output with source location (module:function:line)
- Component context (``STRATEGY:GRID:symbol=BTC-PERP``) on every record
- Rotating history file plus one file per session under ``logs/``
- ``.log(message, level)`` helper used across the strategy code
"""

import os
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger as _logger


LOGS_DIR = Path(__file__).parent.parent / "logs"

_SINK_STATE: Dict[str, Any] = {
    "default_removed": False,
    "console_id": None,
    "console_level": None,
    "files_installed": False,
}


def _truncate_module_path(module: str, max_width: int) -> str:
    if len(module) <= max_width:
        return module

    parts = module.split(".")
    idx = len(parts) - 2
    while idx >= 0:
        candidate = ".".join(parts[idx:])
        if len(candidate) + 3 <= max_width:
            return f"...{candidate}"
        idx -= 1

    kept = parts[-1]
    return f"...{kept[-(max_width - 3):]}" if len(kept) + 3 > max_width else f"...{kept}"


def _format_source(record) -> bool:
    """Attach a fixed-width ``module:function:line`` column to the record."""
    module_name = record.get("module") or record.get("name", "")
    function_name = record.get("function", "")
    line_number = record.get("line", 0)

    max_width = 50
    suffix = f":{function_name}:{line_number}" if function_name else f":{line_number}"
    available = max_width - len(suffix)
    module_display = "..." if available <= 3 else _truncate_module_path(module_name, available)

    record["extra"]["short_name"] = f"{module_display}{suffix}".rjust(max_width)
    return True


def _ensure_component(record) -> bool:
    if "component_id" not in record["extra"]:
        record["extra"]["component_id"] = "UNKNOWN"
    return True


def configure_sinks(
    log_level: str = "INFO",
    log_to_console: bool = True,
    log_to_file: bool = True,
    reconfigure: bool = False,
) -> None:
    """
    Install the shared loguru sinks once per process.

    With ``reconfigure=True`` the console sink is replaced at the new level,
    which is how ``runbot.py --log-level`` applies after loggers exist.
    """
    log_level = log_level.upper()

    if not _SINK_STATE["default_removed"]:
        _logger.remove()
        _SINK_STATE["default_removed"] = True

    if reconfigure and _SINK_STATE["console_id"] is not None and _SINK_STATE["console_level"] != log_level:
        _logger.remove(_SINK_STATE["console_id"])
        _SINK_STATE["console_id"] = None

    if log_to_console and _SINK_STATE["console_id"] is None:
        console_format = (
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[short_name]}</cyan> | "
            "<level>{message}</level>"
        )
        _SINK_STATE["console_id"] = _logger.add(
            sys.stdout,
            format=console_format,
            level=log_level,
            colorize=True,
            filter=lambda record: bool(record["extra"].get("component_id")) and _format_source(record),
            backtrace=True,
            diagnose=False,
        )
        _SINK_STATE["console_level"] = log_level

    if log_to_file and not _SINK_STATE["files_installed"]:
        LOGS_DIR.mkdir(exist_ok=True)
        file_format = (
            "{time:YYYY-MM-DD HH:mm:ss} | "
            "{level:<8} | "
            "{extra[component_id]:<35} | "
            "{message}"
        )
        _logger.add(
            str(LOGS_DIR / "grid_history.log"),
            format=file_format,
            level="DEBUG",
            filter=_ensure_component,
            rotation="10 MB",
            retention=5,
            enqueue=True,
            catch=True,
        )
        session_ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        _logger.add(
            str(LOGS_DIR / f"session_{session_ts}.log"),
            format=file_format,
            level="DEBUG",
            filter=_ensure_component,
            enqueue=True,
            catch=True,
        )
        _SINK_STATE["files_installed"] = True


class UnifiedLogger:
    """
    Component-bound logger.

    Args:
        component_type: Kind of component ("exchange", "strategy", "bot", "core")
        component_name: Name of the component ("grid", "bluefin", ...)
        context: Extra key/values rendered into the component id (symbol, account)
        log_to_console: Whether the shared console sink should be installed
        log_level: Minimum console level
    """

    def __init__(
        self,
        component_type: str,
        component_name: str,
        context: Optional[Dict[str, Any]] = None,
        log_to_console: bool = True,
        log_level: str = "INFO",
    ):
        self.component_type = component_type.upper()
        self.component_name = component_name.upper()
        self.context = context or {}
        self.log_level = log_level.upper()

        self.component_id = f"{self.component_type}:{self.component_name}"
        if self.context:
            context_str = ":".join(f"{k}={v}" for k, v in self.context.items())
            self.component_id = f"{self.component_id}:{context_str}"

        configure_sinks(self.log_level, log_to_console=log_to_console, log_to_file=_file_logging_enabled())
        self._logger = _logger.bind(component_id=self.component_id)

    def debug(self, message: str, **kwargs):
        self._logger.opt(depth=1).debug(message, **kwargs)

    def info(self, message: str, **kwargs):
        self._logger.opt(depth=1).info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._logger.opt(depth=1).warning(message, **kwargs)

    def error(self, message: str, **kwargs):
        self._logger.opt(depth=1).error(message, **kwargs)

    def critical(self, message: str, **kwargs):
        self._logger.opt(depth=1).critical(message, **kwargs)

    def log(self, message: str, level: str = "INFO", **kwargs):
        """
        Log ``message`` at a level given by name.

        Unknown level names fall back to INFO. Extra keyword arguments are
        bound to the record rather than formatted into the message.
        """
        level = level.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            level = "INFO"
        target = self._logger.bind(**kwargs) if kwargs else self._logger
        target.opt(depth=1).log(level, message)

    def log_transaction(self, order_id: str, side: str, quantity: Any, price: Any, status: str):
        """Log an order submission with structured fields."""
        self._logger.bind(
            order_id=order_id,
            side=side,
            quantity=str(quantity),
            price=str(price),
            status=status,
            transaction=True,
        ).opt(depth=1).info(
            f"TRANSACTION: {side.upper()} {quantity} @ {price} | Order: {order_id} | Status: {status}"
        )

    def with_context(self, **context) -> "UnifiedLogger":
        """Return a logger for the same component with extra context."""
        return UnifiedLogger(
            component_type=self.component_type.lower(),
            component_name=self.component_name.lower(),
            context={**self.context, **context},
            log_level=self.log_level,
        )

    def flush(self):
        """Give enqueued file writes a moment to drain before exit."""
        try:
            self._logger.opt(depth=1).debug("LOG_FLUSH_MARKER")
            time.sleep(0.05)
            sys.stdout.flush()
            sys.stderr.flush()
        except Exception:
            pass


def _file_logging_enabled() -> bool:
    return os.getenv("GRID_LOG_TO_FILE", "true").lower() in ("true", "1", "yes")


def get_logger(
    component_type: str,
    component_name: str,
    context: Optional[Dict[str, Any]] = None,
    log_to_console: bool = True,
    log_level: Optional[str] = None,
) -> UnifiedLogger:
    """
    Create a component logger.

    Examples:
        logger = get_logger("exchange", "bluefin", {"symbol": "ETH-PERP"})
        logger = get_logger("strategy", "grid")
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")

    return UnifiedLogger(
        component_type=component_type,
        component_name=component_name,
        context=context,
        log_to_console=log_to_console,
        log_level=log_level,
    )


def get_exchange_logger(exchange_name: str, symbol: Optional[str] = None, **context) -> UnifiedLogger:
    """Get logger for exchange clients."""
    ctx = {"symbol": symbol} if symbol else {}
    ctx.update(context)
    return get_logger("exchange", exchange_name, ctx)


def get_strategy_logger(strategy_name: str, **context) -> UnifiedLogger:
    """Get logger for trading strategies."""
    return get_logger("strategy", strategy_name, context)


def get_core_logger(module_name: str, **context) -> UnifiedLogger:
    """Get logger for core utilities."""
    return get_logger("core", module_name, context)


def log_stage(
    logger_obj: Any,
    title: str,
    *,
    icon: Optional[str] = None,
    stage_id: Optional[str] = None,
    border: str = "=",
    width: int = 55,
    level: str = "INFO",
) -> None:
    """
    Log a separator banner around ``title``.

    Works with ``UnifiedLogger`` instances and with anything exposing
    ``info``/``warning``-style methods.
    """

    def _emit(message: str) -> None:
        normalized_level = level.upper()
        if isinstance(logger_obj, UnifiedLogger):
            logger_obj.log(message, level=normalized_level)
        else:
            getattr(logger_obj, normalized_level.lower(), logger_obj.info)(message)

    label_parts = []
    if stage_id:
        label_parts.append(f"{stage_id}.")
    if icon:
        label_parts.append(icon)
    label_parts.append(title)

    border_line = border * width
    _emit(border_line)
    _emit(" ".join(label_parts))
    _emit(border_line)
