"""
Logging Utilities for the Deck Updater

Run-scoped logging for the CLI plus structured exception logging. A deck run
writes a DEBUG log next to its output so template drift can be diagnosed
after the fact.
"""

import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from config import DeckConfig

RUN_LOGGER_NAME = "deck_run"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _console_level(level: Optional[str]) -> int:
    name = (level or DeckConfig.LOG_LEVEL).upper()
    return getattr(logging, name, logging.INFO)


def setup_run_logging(log_dir: str, label: str, level: Optional[str] = None) -> Tuple[logging.Logger, str]:
    """
    Route every module logger to a per-run log file and the console.

    The root logger is reconfigured, so this belongs in entry points only.

    Args:
        log_dir: Directory for the log file, created when missing
        label: What is being processed, usually the deck file name
        level: Console level name, defaults to DeckConfig.LOG_LEVEL

    Returns:
        Tuple of (run_logger, log_file_path)
    """
    started = datetime.now()
    log_dir_path = Path(log_dir)
    log_dir_path.mkdir(parents=True, exist_ok=True)
    log_file_path = str(log_dir_path / f"run_log_{started.strftime('%Y%m%d_%H%M%S')}.log")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    # A second run in the same process must not log twice
    root_logger.handlers.clear()

    file_handler = logging.FileHandler(log_file_path, mode="w", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(_console_level(level))
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    run_logger = logging.getLogger(RUN_LOGGER_NAME)
    run_logger.setLevel(logging.DEBUG)

    header = [
        ("Run", label),
        ("Log File", Path(log_file_path).name),
        ("Signatures", DeckConfig.SLIDE_SIGNATURES_PATH or "built-in"),
        ("Thresholds", f"high={DeckConfig.CONFIDENCE_HIGH} medium={DeckConfig.CONFIDENCE_MEDIUM}"),
        ("Started", started.isoformat()),
    ]
    run_logger.info("=" * 70)
    run_logger.info("Placement Deck Updater - Run Log")
    for key, value in header:
        run_logger.info(f"{key}: {value}")
    run_logger.info("=" * 70)

    return run_logger, log_file_path


def log_exception(logger: logging.Logger, exc: Exception, context: str = "", **kwargs: Any) -> None:
    """
    Log an exception with its traceback and any context values.

    Args:
        logger: Logger to write to
        exc: The exception being handled
        context: Where it happened, prefixed to the message
        **kwargs: Extra key-value context (slide number, file path, ...)
    """
    message = f"{type(exc).__name__}: {exc}"
    if context:
        message = f"{context} - {message}"
    logger.error(f"❌ {message}")
    if kwargs:
        logger.error(f"   Context: {kwargs}")
    logger.debug(f"Traceback:\n{traceback.format_exc()}")


def get_error_info(exc: Exception, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Structured description of an exception, for JSON failure reports."""
    return {
        "error_type": type(exc).__name__,
        "error_message": str(exc),
        "traceback": traceback.format_exc(),
        "timestamp": datetime.now().isoformat(),
        "context": context or {},
    }
