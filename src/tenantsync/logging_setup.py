"""
Logging sink configuration for tenantsync.

Library modules only ever call ``logging.getLogger(__name__)``; this module is
the single place that attaches handlers, and it is called from the CLI.
"""

import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import LoggingConfig


def configure_logging(
    config: LoggingConfig,
    debug: bool = False,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Attach a rich console handler (and a rotating file handler if configured)."""
    root = logging.getLogger("tenantsync")
    level = logging.DEBUG if debug else getattr(logging, config.level)
    root.setLevel(level)

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=debug,
        rich_tracebacks=debug,
    )
    console_handler.setLevel(level)
    root.addHandler(console_handler)

    if config.file:
        file_handler = RotatingFileHandler(
            config.file,
            maxBytes=config.max_size,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(config.format))
        file_handler.setLevel(level)
        root.addHandler(file_handler)

    root.propagate = False
    return root
