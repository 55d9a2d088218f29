"""
Unified logging for the GridVault bot.

Every component (bot loop, grid strategy, providers, storage, control API)
logs through loguru with a shared format:
- Colored console output with source location (module:function:line)
- Component id such as ``BOT:GRID:account=0xabc`` bound to each record
- A shared history file and one file per session under ``logs/``
"""

import os
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger as _logger


_LOGS_DIR = Path(os.getenv("GRIDVAULT_LOG_DIR", Path(__file__).parent.parent / "logs"))
_CONSOLE_WIDTH = 48

_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
    "{level:<8} | "
    "{extra[component_id]:<32} | "
    "{message}"
)


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


def _format_console_record(record) -> bool:
    """Attach a fixed-width ``module:function:line`` label to the record."""
    module_name = record.get("module") or record.get("name", "")
    function_name = record.get("function", "")
    line_number = record.get("line", 0)

    suffix = f":{function_name}:{line_number}" if function_name else f":{line_number}"
    available = _CONSOLE_WIDTH - len(suffix)
    module_display = "..." if available <= 3 else _truncate_module_path(module_name, available)

    record["extra"]["short_name"] = f"{module_display}{suffix}".rjust(_CONSOLE_WIDTH)
    return True


def _ensure_component(record) -> bool:
    if "component_id" not in record["extra"]:
        record["extra"]["component_id"] = "UNKNOWN"
    return True


class UnifiedLogger:
    """
    Component-scoped wrapper around the shared loguru logger.

    Handlers are installed once per process; each instance only binds its
    component id so records can be traced back to the bot, strategy or
    service that produced them.
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

        self._setup_handlers(log_to_console)
        self._logger = _logger.bind(component_id=self.component_id)

    def _setup_handlers(self, log_to_console: bool) -> None:
        """Install console and file handlers the first time a logger is created."""
        if getattr(_logger, "_gridvault_console_setup", False):
            return

        _logger.remove()

        if log_to_console:
            console_format = (
                "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{extra[short_name]}</cyan> | "
                "<level>{message}</level>"
            )
            _logger.add(
                sys.stdout,
                format=console_format,
                level=self.log_level,
                colorize=True,
                filter=lambda record: bool(record["extra"].get("component_id"))
                and _format_console_record(record),
                backtrace=True,
                diagnose=False,
            )

        try:
            _LOGS_DIR.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            _logger.warning(f"Log directory {_LOGS_DIR} unavailable, file logging disabled: {exc}")
        else:
            session_ts = datetime.now().strftime("%Y%m%d_%H%M%S")
            for path in (_LOGS_DIR / "unified_history.log", _LOGS_DIR / f"session_{session_ts}.log"):
                _logger.add(
                    str(path),
                    format=_FILE_FORMAT,
                    level="DEBUG",
                    filter=_ensure_component,
                    rotation="50 MB",
                    retention=10,
                    backtrace=False,
                    diagnose=False,
                    enqueue=True,
                    catch=True,
                )

        _logger._gridvault_console_setup = True

    def _with_fields(self, fields: Dict[str, Any]):
        # Structured fields go to ``extra``; the message is never str.format()-ed.
        return self._logger.bind(**fields) if fields else self._logger

    def debug(self, message: str, **kwargs):
        self._with_fields(kwargs).opt(depth=1).debug(message)

    def info(self, message: str, **kwargs):
        self._with_fields(kwargs).opt(depth=1).info(message)

    def warning(self, message: str, **kwargs):
        self._with_fields(kwargs).opt(depth=1).warning(message)

    def error(self, message: str, **kwargs):
        self._with_fields(kwargs).opt(depth=1).error(message)

    def critical(self, message: str, **kwargs):
        self._with_fields(kwargs).opt(depth=1).critical(message)

    def exception(self, message: str, **kwargs):
        """Log an error together with the active exception's traceback."""
        self._with_fields(kwargs).opt(depth=1, exception=True).error(message)

    def log(self, message: str, level: str = "INFO", **kwargs):
        """
        Log ``message`` at a level given by name.

        Unknown level names fall back to INFO.
        """
        level = level.upper()
        if level == "WARN":
            level = "WARNING"
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            level = "INFO"
        self._with_fields(kwargs).opt(depth=1).log(level, message)

    def with_context(self, **context) -> "UnifiedLogger":
        """Return a logger for the same component with extra context appended."""
        return UnifiedLogger(
            component_type=self.component_type.lower(),
            component_name=self.component_name.lower(),
            context={**self.context, **context},
            log_level=self.log_level,
        )

    @staticmethod
    def flush_all_handlers() -> None:
        """
        Drain enqueued file writes before the process exits.

        File handlers use ``enqueue=True``; ``complete()`` waits for the
        background writer to catch up.
        """
        _logger.complete()
        sys.stdout.flush()
        sys.stderr.flush()
        time.sleep(0.05)


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
        logger = get_logger("bot", "grid", {"account": "0xabc"})
        logger = get_logger("service", "quote_service")
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


def get_bot_logger(bot_name: str, **context) -> UnifiedLogger:
    """Get logger for the tick orchestrator."""
    return get_logger("bot", bot_name, context)


def get_strategy_logger(strategy_name: str, **context) -> UnifiedLogger:
    """Get logger for trading strategies."""
    return get_logger("strategy", strategy_name, context)


def get_service_logger(service_name: str, **context) -> UnifiedLogger:
    """Get logger for external-service adapters (quotes, execution, API)."""
    return get_logger("service", service_name, context)


def get_core_logger(module_name: str, **context) -> UnifiedLogger:
    """Get logger for core utilities (storage, config)."""
    return get_logger("core", module_name, context)


def log_stage(
    logger_obj: Any,
    title: str,
    *,
    icon: Optional[str] = None,
    border: str = "=",
    width: int = 55,
    level: str = "INFO",
) -> None:
    """Log a banner separator around ``title`` to highlight a lifecycle phase."""
    label = f"{icon} {title}" if icon else title
    border_line = border * width
    for message in (border_line, label, border_line):
        logger_obj.log(message, level=level)
