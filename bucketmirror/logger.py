# bucketmirror Logging
# Rich console logging plus an optional plain log file

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are noisy at INFO/DEBUG
QUIET_LOGGERS = ("boto3", "botocore", "s3transfer", "urllib3", "watchdog")


def setup_logging(
    *,
    verbose: bool = False,
    log_file: Optional[str] = None,
    colored: bool = True,
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Configure the bucketmirror logger.

    Args:
        verbose: Log DEBUG and let third-party libraries log at INFO.
        log_file: Optional path to a plain-text log file.
        colored: Enable colored console output.
        console: Rich console to log to (defaults to stderr).

    Returns:
        The configured "bucketmirror" logger.
    """
    level = logging.DEBUG if verbose else logging.INFO

    logger = logging.getLogger("bucketmirror")
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console is None:
        console = Console(stderr=True, no_color=not colored)
    rich_handler = RichHandler(console=console, show_path=verbose, rich_tracebacks=True, markup=False)
    rich_handler.setLevel(level)
    logger.addHandler(rich_handler)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO if verbose else logging.WARNING)

    return logger
