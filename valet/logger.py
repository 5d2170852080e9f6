"""
Logging

Every module logs through a child of the "valet" logger
(logging.getLogger("valet.router"), "valet.llm", ...). configure_logging()
attaches handlers to that parent once, from the logging.* config section,
so library modules never touch handlers themselves.

VALET_LOG_FILE_ONLY=1 keeps stdout free for the interactive console and
sends everything to logs/console.log instead.
"""

import logging
import os
import sys
from pathlib import Path

ROOT_LOGGER = "valet"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_LOG_FILE = Path(__file__).parent.parent / "logs" / "console.log"


def _log_settings(config):
    if config is None:
        return "INFO", None, True
    return (
        config.get("logging.level", "INFO"),
        config.get("logging.file"),
        config.get("logging.console", True),
    )


def configure_logging(config=None) -> logging.Logger:
    """
    Attach console/file handlers to the "valet" logger

    Safe to call repeatedly; only the first call (or the first after
    reset_logging) configures anything.

    Returns:
        The parent "valet" logger
    """
    root = logging.getLogger(ROOT_LOGGER)
    if root.handlers:
        return root

    level_name, log_file, console = _log_settings(config)
    if os.environ.get("VALET_LOG_FILE_ONLY"):
        console = False
        log_file = str(CONSOLE_LOG_FILE)

    level = getattr(logging, str(level_name).upper(), logging.INFO)
    root.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers = []
    if console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    # Our handlers only; keep records out of the root logger
    root.propagate = False
    return root


def get_logger(area: str, config=None) -> logging.Logger:
    """Logger for one area ("router", "valet.llm", ...), configuring on first use."""
    configure_logging(config)
    if area == ROOT_LOGGER or area.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(area)
    return logging.getLogger(f"{ROOT_LOGGER}.{area}")


def reset_logging() -> None:
    """Detach and close the handlers so the next call reconfigures."""
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.propagate = True
    root.setLevel(logging.NOTSET)
