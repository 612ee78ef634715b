"""
Logging setup.

Console output plus a size-rotated log file, configured from the
``logging`` section of the bot configuration.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Union[str, int] = "INFO",
                  log_file: Optional[Union[str, Path]] = None,
                  max_size_mb: int = 100,
                  backup_count: int = 10,
                  fmt: str = DEFAULT_FORMAT) -> logging.Logger:
    """
    Configure the root logger.

    Calling it twice replaces the handlers installed by the first call
    instead of duplicating output.
    """
    root = logging.getLogger()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)

    for handler in list(root.handlers):
        if getattr(handler, "_funding_arb_handler", False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(fmt)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    console._funding_arb_handler = True
    root.addHandler(console)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler._funding_arb_handler = True
        root.addHandler(file_handler)

    # ccxt and aiohttp are chatty at DEBUG
    logging.getLogger("ccxt").setLevel(max(level, logging.INFO))
    logging.getLogger("aiohttp").setLevel(max(level, logging.WARNING))

    return root
