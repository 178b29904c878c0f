"""
Logging setup for yoto-sync.

One call to setup_logging() wires the root logger to four destinations:

    console                          INFO (DEBUG with --verbose), colored
    log_full_{timestamp}.log         everything from DEBUG up
    log_errors_{timestamp}.log       ERROR and CRITICAL only
    sync_failures_{timestamp}.log    the item that made a run abort

Files go to the logs/ directory of the storage directory
(default ~/.config/yoto/logs). Modules just ask for a named logger:

    logger = get_logger(__name__)
    logger.info("Starting sync")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from tqdm import tqdm


SYNC_FAILURES_FILENAME = "sync_failures"

# Extra field carried by records that describe an aborted item
FAILURE_FIELD = "sync_failure"

FILE_FORMAT = logging.Formatter(
    "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    "%Y-%m-%d %H:%M:%S",
)

ANSI_RESET = "\033[0m"
LEVEL_STYLES = {
    logging.DEBUG: "\033[34m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;31m",
}


class ConsoleFormatter(logging.Formatter):
    """Prefix each message with its level name in the level's color."""

    def format(self, record: logging.LogRecord) -> str:
        style = LEVEL_STYLES.get(record.levelno, "")
        return f"{style}{record.levelname}{ANSI_RESET}: {record.getMessage()}"


class TqdmHandler(logging.StreamHandler):
    """
    Console handler that prints through tqdm.write().

    Messages land above an active progress bar instead of being torn apart
    by its redraws.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream)
        except Exception:
            self.handleError(record)


class FailureReportFormatter(logging.Formatter):
    """
    Render a failure record as a short block:

        [download] Sweet Home Alabama
        https://www.youtube.com/watch?v=xxxxx
        Video unavailable
    """

    def format(self, record: logging.LogRecord) -> str:
        failure = getattr(record, FAILURE_FIELD)
        lines = [f"[{failure['stage']}] {failure['title']}"]
        if failure["locator"]:
            lines.append(failure["locator"])
        lines.append(failure["reason"])
        return "\n".join(lines) + "\n"


def is_failure_report(record: logging.LogRecord) -> bool:
    return hasattr(record, FAILURE_FIELD)


def is_error(record: logging.LogRecord) -> bool:
    return record.levelno >= logging.ERROR


def _file_handler(path: Path, formatter: logging.Formatter, *filters) -> logging.FileHandler:
    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    for record_filter in filters:
        handler.addFilter(record_filter)
    return handler


def setup_logging(logs_dir: Path, verbose: bool = False) -> None:
    """
    Configure the root logger. Call once, after the configuration is loaded.

    Handlers installed by an earlier call are replaced.

    Args:
        logs_dir: Directory for the log files, created if missing.
        verbose: Show DEBUG messages on the console as well.
    """
    logs_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    console = TqdmHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(ConsoleFormatter())

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()
    for handler in (
        console,
        _file_handler(logs_dir / f"log_full_{stamp}.log", FILE_FORMAT),
        _file_handler(logs_dir / f"log_errors_{stamp}.log", FILE_FORMAT, is_error),
        _file_handler(
            logs_dir / f"{SYNC_FAILURES_FILENAME}_{stamp}.log",
            FailureReportFormatter(),
            is_failure_report,
        ),
    ):
        root.addHandler(handler)

    for chatty in ("urllib3", "requests"):
        logging.getLogger(chatty).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Named logger; propagates to the handlers setup_logging() installs."""
    return logging.getLogger(name)


def log_sync_failure(
    logger: logging.Logger,
    stage: str,
    title: str,
    reason: str,
    locator: str = ""
) -> None:
    """
    Log, at ERROR, the item that made a sync run abort.

    Besides the regular log files the record also ends up in the
    sync_failures report.

    Args:
        logger: Logger to emit on.
        stage: "download" or "upload".
        title: Item title.
        reason: Error message.
        locator: Source URL of the item, if known.
    """
    logger.error(
        f"{stage.capitalize()} failed: {title} - {reason}",
        extra={FAILURE_FIELD: {
            "stage": stage,
            "title": title,
            "locator": locator,
            "reason": reason,
        }},
    )


def shutdown_logging() -> None:
    """Flush, close and detach every root handler. Used at CLI exit."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
