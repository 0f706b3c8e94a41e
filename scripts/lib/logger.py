"""
Centralized logging for the Financeiro engine.
Console output plus an optional daily log file, one format everywhere.

Usage:
    from scripts.lib.logger import setup_logger
    logger = setup_logger(__name__)
    logger.info("Report generated")
"""
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

# Project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOG_DIR = PROJECT_ROOT / "logs"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    name: str,
    level: str = None,
    log_to_file: bool = None,
    log_dir: Path = None,
) -> logging.Logger:
    """
    Configure and return a logger instance.

    Args:
        name: Logger name (typically __name__ from calling module).
        level: Logging level. Defaults to LOG_LEVEL env var, then INFO.
        log_to_file: Also write to logs/YYYYMMDD_financeiro.log.
            Defaults to LOG_TO_FILE env var ("false" unless set).
        log_dir: Directory for log files (default: project_root/logs).

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    level = level or os.getenv("LOG_LEVEL", "INFO")
    if log_to_file is None:
        log_to_file = os.getenv("LOG_TO_FILE", "false").lower() == "true"

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_to_file:
        target_dir = Path(log_dir) if log_dir else LOG_DIR
        target_dir.mkdir(parents=True, exist_ok=True)

        log_file = target_dir / f"{datetime.now().strftime('%Y%m%d')}_financeiro.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
