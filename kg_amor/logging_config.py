"""
Logging setup for the ``kg_amor`` logger tree.

Three rotating files are written under ``log_dir``:

- ``app.log``: everything from DEBUG up
- ``error.log``: ERROR and above
- ``ledger.log``: postings, conflicts and reconciliations from ``kg_amor.ledger``
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 5

ROOT = "kg_amor"


def _rotating(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_level: str = "INFO", log_dir: str = "logs") -> logging.Logger:
    """
    Configure the ``kg_amor`` logger once per process.

    Args:
        log_level: Level name for the console and the logger itself
        log_dir: Directory for the rotating log files, created if missing

    Returns:
        The ``kg_amor`` logger
    """
    logger = logging.getLogger(ROOT)
    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    logger.addHandler(console)
    logger.addHandler(_rotating(log_path / "app.log", logging.DEBUG, formatter))
    logger.addHandler(_rotating(log_path / "error.log", logging.ERROR, formatter))

    ledger = logging.getLogger(f"{ROOT}.ledger")
    ledger.addHandler(_rotating(log_path / "ledger.log", logging.INFO, formatter))

    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a component, e.g. ``get_logger("ledger.sql")``."""
    return logging.getLogger(f"{ROOT}.{name}")
