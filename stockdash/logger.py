# stockdash/logger.py
import logging
import sys
from pathlib import Path
from typing import Optional, Union

from rich.logging import RichHandler

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logger(name: str = "stockdash", level: Union[int, str] = logging.INFO,
                 log_file: Optional[Path] = None, rich: bool = False) -> logging.Logger:
    """
    Configure the package logger once and return it.

    Args:
        name: Logger name; child loggers (`stockdash.store`, ...) propagate to it.
        level: Logging level.
        log_file: Optional extra file handler.
        rich: Render console output through rich (used by the CLI).
    """
    log = logging.getLogger(name)
    if log.handlers:
        return log

    log.setLevel(level)
    fmt = logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    if rich:
        h: logging.Handler = RichHandler(rich_tracebacks=True, show_path=False)
    else:
        h = logging.StreamHandler(sys.stderr)
        h.setFormatter(fmt)
    log.addHandler(h)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(fmt)
        log.addHandler(fh)

    return log
