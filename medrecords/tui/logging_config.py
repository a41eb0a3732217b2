"""
Application Logging Configuration.

Sets up file logging for the interactive session. Nothing is logged to the
terminal, which belongs to the renderer.
"""

from __future__ import annotations
import logging
import os
from pathlib import Path
from datetime import datetime
from logging.handlers import RotatingFileHandler


def get_log_file_path(log_dir: Path | str = "logs") -> Path:
    """
    Get the path to the current log file.

    Parameters
    ----------
    log_dir : Path or str
        Directory containing log files (default: "logs")

    Returns
    -------
    Path
        Path to today's log file
    """
    log_dir = Path(log_dir)
    return log_dir / f"medrecords_{datetime.now().strftime('%Y%m%d')}.log"


def setup_logging(log_dir: Path | str = "logs", verbose: bool = False) -> Path:
    """
    Set up logging for the application.

    Parameters
    ----------
    log_dir : Path or str
        Directory for log files (default: "logs")
    verbose : bool
        Log DEBUG records as well (default: INFO and above)

    Returns
    -------
    Path
        Path to the current log file

    Notes
    -----
    - Rotating log files (max 10 MB, keeps 5 backups)
    - Log format: timestamp | level | module | message
    - Calling again with the same directory does not add a second handler
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = get_log_file_path(log_dir)

    app_logger = logging.getLogger('medrecords')
    app_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    for handler in app_logger.handlers:
        if isinstance(handler, RotatingFileHandler) and handler.baseFilename == os.path.abspath(log_file):
            return log_file

    formatter = logging.Formatter(
        fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    app_logger.addHandler(file_handler)

    app_logger.info("=" * 80)
    app_logger.info("Session Started")
    app_logger.info("=" * 80)

    return log_file


def read_recent_logs(log_dir: Path | str = "logs", max_lines: int = 500) -> list[str]:
    """
    Read recent log entries from the current log file.

    Parameters
    ----------
    log_dir : Path or str
        Directory containing log files (default: "logs")
    max_lines : int
        Maximum number of lines to return (default: 500)

    Returns
    -------
    list[str]
        List of log lines without trailing newlines (most recent last)
    """
    log_file = get_log_file_path(log_dir)

    if not log_file.exists():
        return ["No log file found for today."]

    try:
        with open(log_file, 'r', encoding='utf-8') as f:
            lines = f.read().splitlines()
    except OSError as e:
        return [f"Error reading log file: {e}"]

    return lines[-max_lines:] if len(lines) > max_lines else lines
