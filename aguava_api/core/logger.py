"""
Logging configuration for aguava-api.

This module sets up the logging system with multiple outputs:
    - Console: Colored, compact messages on stderr
    - log_full.log: Complete log of all events (DEBUG and above)
    - log_errors.log: Only ERROR and CRITICAL level messages
    - batch_failures.log: Track batches whose popularity lookup failed

File outputs are only created when a log directory is configured;
otherwise the service logs to the console only.

Usage:
    from aguava_api.core.logger import setup_logging, get_logger, log_batch_failure

    setup_logging("INFO", log_dir)  # Call once at startup
    logger = get_logger(__name__)   # Get logger for each module

    logger.info("Fetching popularity")
    log_batch_failure(logger, ["4gpOjiawQcmFqRSwtp7Ppt"], error)
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO


LOG_FULL_FILENAME = "log_full"
LOG_ERRORS_FILENAME = "log_errors"
BATCH_FAILURES_FILENAME = "batch_failures"

# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(threadName)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Log format for console output (compact)
CONSOLE_LOG_FORMAT = "%(levelname)s: %(message)s"


# ANSI color codes
class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that adds colors to console output.

    Colors:
        - DEBUG: Blue
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bold Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.BLUE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        colored_levelname = f"{color}{record.levelname}{Colors.RESET}"
        message = f"{colored_levelname}: {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


class BatchFailureHandler(logging.Handler):
    """
    Handler that captures failed popularity batches for the failure report.

    This handler listens for log records that carry batch failure information
    and writes them to batch_failures.log in a simple, human-readable format:

        2024-05-01 12:00:00 | rate limit | status 429
        54Ew6UcuXLChTnSAwXAIXY,4gpOjiawQcmFqRSwtp7Ppt
        Rate limit exceeded after 3 attempts

    The handler looks for specific extra fields in log records:
        - 'batch_failed_track_ids': The track IDs of the failed batch
        - 'batch_failed_kind': 'rate limit', 'transport' or 'upstream'
        - 'batch_failed_status': HTTP status code (optional)

    Only records containing these fields are written to the report.
    Use log_batch_failure() to emit such records.

    Attributes:
        report_path: Path to the batch_failures.log file.
        report_file: Open file handle (opened by open()).
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """
        Open the report file for writing.

        Called by setup_logging() after handler is created.
        File is opened in write mode (overwrites existing content).
        """
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        """
        Write failed batch info to the report if present in the log record.

        Thread Safety:
            logging.Handler.handle() acquires the handler lock around emit(),
            so concurrent batch workers cannot interleave entries.
        """
        if not hasattr(record, "batch_failed_track_ids"):
            return

        if self.report_file is None:
            return

        try:
            track_ids = getattr(record, "batch_failed_track_ids", ())
            kind = getattr(record, "batch_failed_kind", "upstream")
            status = getattr(record, "batch_failed_status", None)
            timestamp = datetime.fromtimestamp(record.created).strftime(FILE_DATE_FORMAT)

            header = f"{timestamp} | {kind}"
            if status is not None:
                header += f" | status {status}"

            self.report_file.write(f"{header}\n")
            self.report_file.write(f"{','.join(track_ids)}\n")
            self.report_file.write(f"{record.getMessage()}\n\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """
        Close the report file handle.

        Safe to call multiple times.
        """
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """
    Filter that only allows ERROR and CRITICAL level records.

    Used by the error log file handler to exclude DEBUG, INFO, and WARNING.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(level: str = "INFO", log_dir: Path | None = None) -> None:
    """
    Configure the logging system for the application.

    This function should be called ONCE at application startup, after
    the configuration is loaded but before the server starts.

    Args:
        level: Console log level name (e.g., "INFO", "DEBUG").
        log_dir: Directory where log files will be created, or None to
                 log to the console only.

    Behavior:
        1. Configure root logger level to DEBUG
        2. Create console handler with colors at the requested level
        3. If log_dir is given:
           - Create log_dir if it doesn't exist
           - log_full_{timestamp}.log at DEBUG
           - log_errors_{timestamp}.log filtered to ERROR+
           - batch_failures_{timestamp}.log via BatchFailureHandler

    Thread Safety:
        This function is NOT thread-safe. Call it once from the main
        thread before serving requests.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Remove any existing handlers
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(ColoredConsoleFormatter(CONSOLE_LOG_FORMAT))
    root_logger.addHandler(console_handler)

    if log_dir is None:
        return

    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    full_handler = logging.FileHandler(
        log_dir / f"{LOG_FULL_FILENAME}_{timestamp}.log", mode="w", encoding="utf-8"
    )
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    root_logger.addHandler(full_handler)

    error_handler = logging.FileHandler(
        log_dir / f"{LOG_ERRORS_FILENAME}_{timestamp}.log", mode="w", encoding="utf-8"
    )
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    batch_handler = BatchFailureHandler(log_dir / f"{BATCH_FAILURES_FILENAME}_{timestamp}.log")
    batch_handler.open()
    root_logger.addHandler(batch_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Returns:
        logging.Logger: A logger instance configured by setup_logging().
    """
    return logging.getLogger(name)


def log_batch_failure(
    logger: logging.Logger,
    track_ids: list[str] | tuple[str, ...],
    error: Exception
) -> None:
    """
    Log a failed popularity batch with the extras BatchFailureHandler expects.

    Rate limit exhaustion is logged at WARNING, every other failure at ERROR,
    so rate limiting stays out of the error-only log.

    Args:
        logger: Logger of the calling module.
        track_ids: IDs of the batch that failed.
        error: The exception raised for the batch.
    """
    is_rate_limit = getattr(error, "is_rate_limit", False)
    status = getattr(error, "status_code", None)

    if is_rate_limit:
        kind = "rate limit"
    elif status is None:
        kind = "transport"
    else:
        kind = "upstream"

    logger.log(
        logging.WARNING if is_rate_limit else logging.ERROR,
        f"Error fetching details for batch of {len(track_ids)} tracks: {error}",
        extra={
            "batch_failed_track_ids": tuple(track_ids),
            "batch_failed_kind": kind,
            "batch_failed_status": status,
        }
    )


def shutdown_logging() -> None:
    """
    Flush and close all handlers (call on program exit).
    """
    logging.shutdown()
