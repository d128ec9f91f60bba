"""Console logging for Taskboard.

Log lines carry a bracketed component tag (``[TASKS]``, ``[REALTIME]``...).
In a terminal they go through Rich with the tags highlighted; under a
process manager or in a container they are plain pipe-separated lines.
"""

from __future__ import annotations

import logging
import os
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

RICH_LOGS_ENV = "TASKBOARD_RICH_LOGS"

TASKBOARD_THEME = Theme({
    "logging.level.debug": "dim",
    "logging.level.info": "green",
    "logging.level.warning": "yellow",
    "logging.level.error": "red bold",
    "logging.level.critical": "red bold reverse",
    "logging.keyword": "cyan bold",
})

COMPONENT_TAGS = [
    "[API]",
    "[AUTH]",
    "[TASKS]",
    "[REALTIME]",
    "[STORAGE]",
    "[STREAM]",
    "[DASHBOARD]",
    "[VALIDATION ERROR]",
    "[UNHANDLED ERROR]",
]

# Per-request chatter from the Supabase transport and the ASGI server
QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "uvicorn.access", "websockets", "realtime")

PLAIN_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _env_flag(name: str) -> bool | None:
    value = os.environ.get(name, "").strip().lower()
    if value in ("1", "true", "yes"):
        return True
    if value in ("0", "false", "no"):
        return False
    return None


def should_use_rich() -> bool:
    """``TASKBOARD_RICH_LOGS`` when set, otherwise whether stdout is a terminal."""
    forced = _env_flag(RICH_LOGS_ENV)
    return is_tty() if forced is None else forced


def _rich_handler() -> logging.Handler:
    handler = RichHandler(
        console=Console(theme=TASKBOARD_THEME, force_terminal=True),
        show_path=False,
        rich_tracebacks=True,
        # Messages interpolate user input such as task titles
        markup=False,
        keywords=COMPONENT_TAGS,
        log_time_format="[%H:%M:%S]",
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def _plain_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))
    return handler


def configure_logging(level: int = logging.INFO, force_rich: bool | None = None) -> None:
    """Install a single root handler, replacing any earlier one.

    Args:
        level: root level
        force_rich: pick the handler explicitly instead of :func:`should_use_rich`
    """
    use_rich = should_use_rich() if force_rich is None else force_rich

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_rich_handler() if use_rich else _plain_handler())
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
