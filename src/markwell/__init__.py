"""Markwell - persistent text highlights with a resumable legacy migration.

Highlights are anchored to page text through structural node paths and
survive reloads; pages carrying old ``<span>`` highlight markup are
migrated to the new model over several page loads.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

__version__ = "0.1.0"


def setup_logging(
    log_dir: Path | str | None = None, console_level: str | None = None
) -> Path:
    """Configure logging to both console and rotating file.

    Intended to be called once by the host application. Arguments left as
    None come from the ``logging`` section of the settings.

    Returns:
        Path of the log file.
    """
    if log_dir is None or console_level is None:
        from markwell.config import get_settings

        config = get_settings().logging
        log_dir = config.log_dir if log_dir is None else log_dir
        console_level = console_level or config.console_level

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "markwell.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # File handler - detailed logging with rotation (10MB, keep 5 backups)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    file_handler.setFormatter(file_formatter)

    # Console handler - less verbose
    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level.upper())
    console_formatter = logging.Formatter("%(levelname)s: %(message)s")
    console_handler.setFormatter(console_formatter)

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    logging.info("Logging configured. Log file: %s", log_file.absolute())
    return log_file
