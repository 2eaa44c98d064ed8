"""
Logging setup for the asm VM tools.

Console output goes through rich's RichHandler on stderr, so it never mixes
with program output on stdout. An optional log file captures everything at
DEBUG with the pipe-separated format used by the rest of the toolchain.
"""

from __future__ import annotations
from pathlib import Path
from typing import Optional
import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "asm_vm"

FILE_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    console_level: int = logging.WARNING,
    log_file: Optional[Path] = None,
    name: str = ROOT_LOGGER,
) -> logging.Logger:
    """Configure and return the package logger.

    Calling it again replaces the previous handlers, so the CLI can be
    invoked repeatedly in one process (tests do this).
    """
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG)

    # ── Console handler ──
    ch = RichHandler(
        console=Console(stderr=True),
        level=console_level,
        show_time=True,
        show_path=False,
        markup=False,  # source lines contain [brackets]
        rich_tracebacks=True,
    )
    ch.setLevel(console_level)
    logger.addHandler(ch)

    # ── File handler: captures everything (DEBUG+) ──
    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_path), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(fh)
        logger.info("Log file: %s", log_path)

    logger.debug("Console level: %s", logging.getLevelName(console_level))
    return logger
