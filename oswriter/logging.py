from __future__ import annotations

import os
import sys
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from loguru import Logger

from loguru import logger

DEFAULT_LOG_DIR = Path(
    os.environ.get(
        "OSWRITER_LOG_DIR",
        Path.home() / ".local" / "state" / "oswriter" / "logs",
    )
)


def _should_log_progress(record) -> bool:
    """Filter dd progress chatter - only show in TRACE mode."""
    tags = record["extra"].get("tags", [])
    if "progress" in tags:
        return record["level"].no <= logger.level("TRACE").no
    return True


def _should_log_prompt(record) -> bool:
    """Filter operator prompt echoes - these duplicate what is on screen."""
    tags = record["extra"].get("tags", [])
    if record["level"].no >= logger.level("WARNING").no:
        return True
    if "prompt" in tags:
        return record["level"].no <= logger.level("TRACE").no
    return True


def _combined_filter(record) -> bool:
    """Combined filter for all log suppression rules."""
    return _should_log_progress(record) and _should_log_prompt(record)


def setup_logging(
    *,
    debug: bool = False,
    trace: bool = False,
    log_dir: Path | None = None,
) -> Logger:
    """
    Setup multi-tier logging with separate sinks for different log levels.

    The console sink is only added when debugging is requested; otherwise
    the operator sees the Console messages and log records go to files.

    Log Files:
    - operations.log: INFO+ events (7 day retention)
    - debug.log: DEBUG+ events when --debug or --trace is enabled (3 day retention)
    - structured.jsonl: Structured JSON logs for analysis (7 day retention)

    Args:
        debug: Enable DEBUG level logging
        trace: Enable TRACE level logging (very verbose)
        log_dir: Custom log directory (defaults to ~/.local/state/oswriter/logs)
    """
    logger.remove()
    logger.configure(extra={"job_id": "-", "tags": [], "source": "APP"})

    # SINK 1: Console (stderr) - only when debugging
    if debug or trace:
        logger.add(
            sys.stderr,
            level="TRACE" if trace else "DEBUG",
            backtrace=False,
            diagnose=False,
            filter=_combined_filter,
            colorize=True,
            format=(
                "<green>{time:HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{extra[source]: <10}</cyan> | "
                "{message}"
            ),
        )

    log_dir = log_dir or DEFAULT_LOG_DIR
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as error:
        logger.warning(f"Log directory unavailable ({log_dir}): {error}")
        return logger

    # SINK 2: Operations Log - Important events only (INFO+)
    logger.add(
        log_dir / "operations.log",
        level="INFO",
        rotation="5 MB",
        retention="7 days",
        compression="zip",
        backtrace=False,
        diagnose=False,
        format=(
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{extra[source]: <10} | "
            "{extra[job_id]: <20} | "
            "{message}"
        ),
    )

    # SINK 3: Debug Log - Detailed diagnostics
    if debug or trace:
        logger.add(
            log_dir / "debug.log",
            level="TRACE" if trace else "DEBUG",
            rotation="10 MB",
            retention="3 days",
            compression="zip",
            backtrace=True,
            diagnose=True,
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{extra[source]: <10} | "
                "{extra[job_id]: <20} | "
                "{extra[tags]} | "
                "{message}"
            ),
        )

    # SINK 4: Structured JSON Log - For analysis tools (INFO+)
    logger.add(
        log_dir / "structured.jsonl",
        level="INFO",
        rotation="10 MB",
        retention="7 days",
        compression="zip",
        serialize=True,
        format="{message}",
    )

    return logger


def get_logger(
    *,
    job_id: str | None = None,
    tags: Iterable[str] | None = None,
    source: str | None = None,
) -> Logger:
    """
    Get a logger with bound context.

    Args:
        job_id: Job identifier for tracking operations
        tags: Tags for filtering (e.g., ["write", "storage"])
        source: Source component (e.g., "write", "usb", "image")

    Returns:
        Logger with bound context
    """
    extras: dict[str, object] = {}
    if job_id is not None:
        extras["job_id"] = job_id
    if tags is not None:
        extras["tags"] = list(tags)
    if source is not None:
        extras["source"] = source
    return logger.bind(**extras)


def new_job_id(operation: str) -> str:
    return f"{operation}-{uuid.uuid4().hex[:8]}"


@contextmanager
def operation_context(operation: str, job_id: str | None = None, **details):
    """
    Context manager for tracking long-running operations with automatic timing.

    Logs operation start, completion and failure with duration tracking.

    Example:
        with operation_context("write", device="/dev/sdb") as log:
            log.debug("Starting dd")
    """
    job_id = job_id or new_job_id(operation)

    with logger.contextualize(job_id=job_id, operation=operation, **details):
        start_time = time.time()
        log = logger.bind(source=operation, job_id=job_id, tags=[operation])

        log.info(f"{operation.capitalize()} started", **details)

        try:
            yield log
            duration = time.time() - start_time
            log.success(
                f"{operation.capitalize()} completed",
                duration_seconds=round(duration, 2),
            )
        except Exception as e:
            duration = time.time() - start_time
            log.error(
                f"{operation.capitalize()} failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_seconds=round(duration, 2),
            )
            raise


class LoggerFactory:
    """
    Factory for creating domain-specific loggers with automatic context.

    Each factory method returns a logger pre-configured with appropriate
    source, tags, and context for the domain.
    """

    @staticmethod
    def for_write(job_id: str | None = None, **details) -> Logger:
        """Logger for write jobs."""
        if job_id is None:
            job_id = new_job_id("write")
        return logger.bind(
            job_id=job_id, source="write", tags=["write", "storage"], **details
        )

    @staticmethod
    def for_progress(job_id: str | None = None) -> Logger:
        """Logger for high-frequency dd progress lines."""
        return logger.bind(
            job_id=job_id or "-", source="write", tags=["write", "progress"]
        )

    @staticmethod
    def for_usb() -> Logger:
        """Logger for USB device detection and safety filtering."""
        return logger.bind(source="usb", tags=["usb", "hardware"])

    @staticmethod
    def for_image() -> Logger:
        """Logger for source image verification."""
        return logger.bind(source="image", tags=["image"])

    @staticmethod
    def for_menu() -> Logger:
        """Logger for menus and operator prompts."""
        return logger.bind(source="menu", tags=["ui", "prompt"])

    @staticmethod
    def for_system() -> Logger:
        """Logger for system operations (startup, privileges, tools)."""
        return logger.bind(source="system", tags=["system"])


class EventLogger:
    """
    Structured event logger using standardized schemas.
    """

    @staticmethod
    def log_write_started(
        log: Logger, image: str | None, target: str, backend: str, **extra
    ) -> None:
        """Log write job start."""
        log.info(
            "Write job started",
            event_type="write_started",
            source_image=image,
            target_device=target,
            backend=backend,
            **extra,
        )

    @staticmethod
    def log_write_finished(
        log: Logger, target: str, backend: str, success: bool, **extra
    ) -> None:
        """Log write job outcome."""
        log.log(
            "SUCCESS" if success else "ERROR",
            "Write job finished",
            event_type="write_finished",
            target_device=target,
            backend=backend,
            success=success,
            **extra,
        )

    @staticmethod
    def log_device_excluded(log: Logger, device: str, reason: str, **extra) -> None:
        """Log a device rejected by the safety filter."""
        log.debug(
            f"Device {device} excluded: {reason}",
            event_type="device_excluded",
            device_name=device,
            reason=reason,
            **extra,
        )
