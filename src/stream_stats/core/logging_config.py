"""Structured JSON logging configuration using structlog.

Call ``configure_logging()`` once at startup in :mod:`stream_stats.cli`.
All modules can then use either the stdlib logging API or structlog directly:

Stdlib usage::

    import logging
    logger = logging.getLogger(__name__)
    logger.info("message %s", value, extra={"key": "value"})

Structlog usage (richer context binding)::

    import structlog
    logger = structlog.get_logger(__name__)
    logger.info("message", key="value", channel="somechannel")

Records are written to a monthly log file ``stream_stats-YYYYMM.log`` in
the configured log directory.  The file name follows the current UTC month
and the handler switches to a new file when the month changes.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

import structlog
from structlog.types import EventDict, WrappedLogger

LOG_FILE_PREFIX = "stream_stats-"
"""Prefix of the monthly log file names."""


# ---------------------------------------------------------------------------
# Monthly log file handler
# ---------------------------------------------------------------------------


def monthly_log_path(log_dir: str | Path, now: datetime | None = None) -> Path:
    """Return the log file path for the UTC month of *now*.

    Args:
        log_dir: Directory holding the log files.
        now: Reference time.  Defaults to the current UTC time.

    Returns:
        Path such as ``<log_dir>/stream_stats-202610.log``.
    """
    now = now or datetime.now(timezone.utc)
    return Path(log_dir) / f"{LOG_FILE_PREFIX}{now.strftime('%Y%m')}.log"


class MonthlyFileHandler(logging.FileHandler):
    """Append-mode file handler that rolls over to a new file each UTC month.

    Unlike :class:`logging.handlers.TimedRotatingFileHandler`, old files are
    never renamed: every month simply gets its own file name.
    """

    def __init__(self, log_dir: str | Path, encoding: str = "utf-8") -> None:
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._current_path = monthly_log_path(self.log_dir)
        super().__init__(self._current_path, mode="a", encoding=encoding)

    def emit(self, record: logging.LogRecord) -> None:
        path = monthly_log_path(self.log_dir)
        if path != self._current_path:
            self.acquire()
            try:
                if self.stream:
                    self.stream.close()
                    self.stream = None  # type: ignore[assignment]
                self.baseFilename = str(path.absolute())
                self._current_path = path
            finally:
                self.release()
        super().emit(record)


# ---------------------------------------------------------------------------
# Custom processors
# ---------------------------------------------------------------------------


_SECRET_SUBSTRINGS: frozenset[str] = frozenset({
    "token",
    "authorization",
    "password",
    "secret",
    "dsn",
})
"""Lower-cased substrings that identify log event-dict keys whose values
must be redacted before the record reaches any renderer."""


def _redact_secrets(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """Replace values of secret-bearing keys with a redaction marker.

    Scans both top-level keys and any nested ``dict`` values one level deep.
    Keys are matched case-insensitively against :data:`_SECRET_SUBSTRINGS`.
    """
    redacted = "[REDACTED]"
    for key in list(event_dict.keys()):
        if any(secret in key.lower() for secret in _SECRET_SUBSTRINGS):
            event_dict[key] = redacted
            continue
        val = event_dict[key]
        if isinstance(val, dict):
            for nested_key in list(val.keys()):
                if any(secret in nested_key.lower() for secret in _SECRET_SUBSTRINGS):
                    val[nested_key] = redacted
    return event_dict


# ---------------------------------------------------------------------------
# Public configuration entry-point
# ---------------------------------------------------------------------------


def configure_logging(
    log_level: str = "INFO",
    log_dir: str | Path | None = None,
) -> None:
    """Configure structlog with JSON output.

    At ``DEBUG`` level structlog's ``ConsoleRenderer`` is used instead of
    JSON for human-readable output.

    Standard fields added to every log record:

    - ``timestamp``: ISO 8601 string (UTC).
    - ``level``: Log level name (``"info"``, ``"warning"``, etc.).
    - ``logger``: Module name that emitted the record.
    - ``event``: The log message string.

    Calling this function more than once replaces the previous handlers.

    Args:
        log_level: Logging verbosity string.  Case-insensitive.
        log_dir: Directory for the monthly log files.  When ``None`` records
            go to stdout instead.
    """
    level_upper = log_level.upper()
    numeric_level = getattr(logging, level_upper, logging.INFO)
    is_development = level_upper == "DEBUG"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _redact_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if is_development:
        final_renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer(
            colors=log_dir is None,
        )
    else:
        final_renderer = structlog.processors.JSONRenderer()

    formatter = structlog.stdlib.ProcessorFormatter(
        # Stdlib records carry their fields in ``extra=``; lift them into the
        # event dict before redaction runs.
        foreign_pre_chain=[structlog.stdlib.ExtraAdder(), *shared_processors],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            final_renderer,
        ],
    )

    handler: logging.Handler
    if log_dir is None:
        handler = logging.StreamHandler(sys.stdout)
    else:
        handler = MonthlyFileHandler(log_dir)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    for old_handler in list(root_logger.handlers):
        root_logger.removeHandler(old_handler)
        old_handler.close()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    if not is_development:
        for noisy_logger in ("httpx", "httpcore", "aiosqlite"):
            logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
