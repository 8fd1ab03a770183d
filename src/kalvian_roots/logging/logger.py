"""
Centralized logging configuration for kalvian_roots.

Key behaviors
-------------
* Single entry point via ``get_logger`` to keep handlers/formatters consistent.
* Master log file (default: ``logs/kalvian_roots.log``) plus optional
  per-module logs (``logging.module_files`` in ``config/kalvian_roots.yml``).
* Console logging that respects the configured debug flag.
* Optional log rotation.
"""

from __future__ import annotations

import logging
from logging import Logger, StreamHandler
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, List

from kalvian_roots.config import get_config

# -----------------------------------------------------------------------------
# Configuration state
# -----------------------------------------------------------------------------

BASE_LOGGER_NAME = "kalvian_roots"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Cache so handlers are only created once per module
_logger_cache: Dict[str, Logger] = {}
_base_configured: bool = False
_effective_level: int = logging.INFO
_rotate_logs: bool = False
_module_files: bool = False


# -----------------------------------------------------------------------------
# Internal helpers
# -----------------------------------------------------------------------------

def _ensure_log_dir() -> Path:
    """Resolve and create the log directory from configuration."""
    cfg = get_config()
    log_dir = Path(cfg.logging.get("dir") or cfg.resolve_path("logs_dir"))
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def _build_file_handler(path: Path, level: int) -> logging.Handler:
    """Create a file handler with optional rotation."""
    if _rotate_logs:
        handler = RotatingFileHandler(
            path,
            maxBytes=5 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
    else:
        handler = logging.FileHandler(path, encoding="utf-8", delay=True)

    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _configure_base_logger() -> Logger:
    """Configure the shared base logger once."""
    global _base_configured, _effective_level, _rotate_logs, _module_files

    base_logger = logging.getLogger(BASE_LOGGER_NAME)
    if _base_configured:
        return base_logger

    cfg = get_config()
    _rotate_logs = bool(cfg.logging.get("rotate", False))
    _module_files = bool(cfg.logging.get("module_files", False))
    master_log_name = cfg.logging.get("file", "kalvian_roots.log")

    level_name = str(cfg.logging.get("level", "INFO")).upper()
    base_level = getattr(logging, level_name, logging.INFO)
    debug_enabled = bool(getattr(cfg, "debug", False))

    _effective_level = logging.DEBUG if debug_enabled else base_level

    base_logger.setLevel(_effective_level)
    base_logger.propagate = False

    if master_log_name:
        log_dir = _ensure_log_dir()
        base_logger.addHandler(_build_file_handler(log_dir / master_log_name, _effective_level))

    console = StreamHandler()
    console.setLevel(logging.DEBUG if debug_enabled else logging.WARNING)
    console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    base_logger.addHandler(console)

    _base_configured = True
    return base_logger


def _module_handler_exists(logger: Logger) -> bool:
    return any(getattr(h, "is_module_handler", False) for h in logger.handlers)


def _attach_module_handler(logger: Logger, module_name: str) -> None:
    log_dir = _ensure_log_dir()
    filename = f"{module_name.replace('.', '_')}.log"

    handler = _build_file_handler(log_dir / filename, _effective_level)
    handler.is_module_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)


# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------

def get_logger(name: str | None = None) -> Logger:
    """Return a logger configured with project-wide handlers.

    * Names are placed under the ``kalvian_roots`` hierarchy, so
      ``get_logger("resolver")`` yields ``kalvian_roots.resolver``.
    * Module loggers inherit the base console + master log handlers.
    * With ``logging.module_files`` enabled each module also gains
      ``logs/<module>.log``.
    """

    base_logger = _configure_base_logger()
    logger_name = name or BASE_LOGGER_NAME
    if logger_name != BASE_LOGGER_NAME and not logger_name.startswith(BASE_LOGGER_NAME + "."):
        logger_name = f"{BASE_LOGGER_NAME}.{logger_name}"

    if logger_name in _logger_cache:
        return _logger_cache[logger_name]

    logger = logging.getLogger(logger_name)
    logger.setLevel(_effective_level)

    if logger_name != base_logger.name:
        if _module_files and not _module_handler_exists(logger):
            _attach_module_handler(logger, logger_name)
        logger.propagate = True

    _logger_cache[logger_name] = logger
    return logger


def set_debug(enabled: bool = True) -> None:
    """Switch every cached logger (and the console handler) to DEBUG or back."""
    global _effective_level
    base_logger = _configure_base_logger()
    cfg_level = getattr(logging, str(get_config().logging.get("level", "INFO")).upper(), logging.INFO)
    _effective_level = logging.DEBUG if enabled else cfg_level

    base_logger.setLevel(_effective_level)
    for handler in base_logger.handlers:
        if isinstance(handler, StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setLevel(logging.DEBUG if enabled else logging.WARNING)
        else:
            handler.setLevel(_effective_level)
    for logger in _logger_cache.values():
        logger.setLevel(_effective_level)


def list_active_loggers() -> List[str]:
    """Helper for debugging configuration issues in tests."""
    return list(_logger_cache.keys())
