"""
Logging setup for ProviderMesh.

Library modules only ever call :func:`get_logger`. Handlers are attached by
the embedding application through :func:`setup_logging`, usually once at its
composition root; until then the ``providermesh`` logger hierarchy is silent.

Supported formats are ``simple``, ``detailed`` and ``json``. Registry,
invocation and transport loggers can be tuned independently of the root level
through :data:`MODULE_LOG_LEVELS`.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from .config import settings

SIMPLE_FORMAT = "%(levelname)-8s %(name)s: %(message)s"

DETAILED_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s %(filename)s:%(lineno)d] %(message)s"

JSON_FORMAT = (
    '{"ts": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
    '"where": "%(filename)s:%(lineno)d", "message": "%(message)s"}'
)

LOG_FORMATS: Dict[str, str] = {
    "simple": SIMPLE_FORMAT,
    "detailed": DETAILED_FORMAT,
    "json": JSON_FORMAT,
}

LOG_FILE_NAME = "providermesh.log"

MODULE_LOG_LEVELS: Dict[str, str] = {
    "providermesh.registry": "INFO",
    "providermesh.invocation": "INFO",
    "providermesh.transport": "INFO",
    # Noisy dependencies
    "httpx": "WARNING",
    "httpcore": "WARNING",
    "asyncio": "WARNING",
}

logging.getLogger("providermesh").addHandler(logging.NullHandler())


def _build_handlers(level: str, formatter: logging.Formatter, to_file: bool) -> List[logging.Handler]:
    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)
    handlers: List[logging.Handler] = [console]

    if to_file:
        log_dir = Path(settings.log_file_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME)
        # The file keeps everything; the console honours the configured level.
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)
    return handlers


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    enable_file: Optional[bool] = None,
) -> None:
    """
    Attach console (and optionally file) handlers to the root logger.

    Calling it again replaces the handlers it installed the first time.

    Args:
        log_level: Console level; defaults to ``settings.log_level``
        log_format: ``simple``, ``detailed`` or ``json``; unknown names fall back to ``detailed``
        enable_file: Also write to ``<settings.log_file_dir>/providermesh.log``
    """
    level = (log_level or settings.log_level).upper()
    format_name = log_format or settings.log_format
    to_file = settings.enable_file_logging if enable_file is None else enable_file
    formatter = logging.Formatter(LOG_FORMATS.get(format_name, DETAILED_FORMAT), datefmt="%Y-%m-%d %H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    for handler in _build_handlers(level, formatter, to_file):
        root_logger.addHandler(handler)

    for logger_name, logger_level in MODULE_LOG_LEVELS.items():
        logging.getLogger(logger_name).setLevel(logger_level)

    get_logger(__name__).debug(f"Logging ready: level={level}, format={format_name}, file={to_file}")


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name`` (normally the caller's ``__name__``)."""
    return logging.getLogger(name)
