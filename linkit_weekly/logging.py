"""Structured logging for LINKIT Weekly.

Ingestion, archive and pipeline code logs through structlog; the text
processing modules use plain ``logging.getLogger`` and end up in the same
handlers.
"""

import logging
import sys
import time
from pathlib import Path
from typing import Any

import orjson
import structlog
from structlog import processors, stdlib

from .config import get_settings

# Third-party loggers that are muted unless the CLI runs verbose
NOISY_LOGGERS = ("httpx", "httpcore", "aiohttp", "openai", "google_genai")


def _orjson_dumps(event_dict: dict[str, Any], **kwargs: Any) -> str:
    return orjson.dumps(event_dict, **kwargs).decode()


def setup_logging(
    log_level: str | None = None,
    json_logging: bool | None = None,
    log_file: Path | None = None,
    quiet: bool = False,
) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_logging: Render events as JSON lines instead of console text
        log_file: Optional file that receives the same records
        quiet: Only let errors through, for the interactive CLI
    """
    settings = get_settings()

    log_level = (log_level or settings.log_level).upper()
    json_logging = json_logging if json_logging is not None else settings.json_logging
    level = logging.ERROR if quiet else getattr(logging, log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger().setLevel(level)
    logging.getLogger("linkit_weekly").setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.ERROR if quiet else logging.WARNING)

    shared = [
        stdlib.filter_by_level,
        stdlib.add_logger_name,
        stdlib.add_log_level,
        stdlib.PositionalArgumentsFormatter(),
        processors.TimeStamper(fmt="iso"),
        processors.StackInfoRenderer(),
        processors.format_exc_info,
    ]

    if json_logging:
        renderer = processors.JSONRenderer(serializer=_orjson_dumps)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[*shared, renderer],
        wrapper_class=stdlib.BoundLogger,
        logger_factory=stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
        logging.getLogger().addHandler(file_handler)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def newsletter_context(week: int, year: int, language: str) -> dict[str, Any]:
    """Fields that identify one weekly newsletter in log events."""
    return {"week": week, "year": year, "language": language}


def log_feed_stage(
    stage: str,
    input_count: int,
    output_count: int,
    **kwargs: Any
) -> dict[str, Any]:
    """Log entry for a step that narrows a list of articles.

    ``dropped`` is derived so fetch, dedup and filter steps read alike.
    """
    return {
        "event": "feed_stage",
        "stage": stage,
        "input_count": input_count,
        "output_count": output_count,
        "dropped": max(input_count - output_count, 0),
        **kwargs
    }


def log_error(
    error: Exception,
    context: str | None = None,
    **kwargs: Any
) -> dict[str, Any]:
    """Log entry for a failure, keyed by the exception class."""
    log_data = {
        "event": "error",
        "error_type": error.__class__.__name__,
        "error_message": str(error),
        **kwargs
    }
    if context:
        log_data["context"] = context
    return log_data


class StageTimer:
    """Times a pipeline stage and logs its start, end and failure.

    Extra keyword arguments are bound to every event, e.g. the
    ``newsletter_context`` of the week being built.
    """

    def __init__(self, stage: str, logger: structlog.stdlib.BoundLogger, **context: Any):
        self.stage = stage
        self.logger = logger.bind(stage=stage, **context)
        self.started: float | None = None
        self.duration: float | None = None

    def __enter__(self) -> "StageTimer":
        self.started = time.perf_counter()
        self.logger.debug("stage_started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.started is None:
            return
        self.duration = round(time.perf_counter() - self.started, 3)
        if exc_type is None:
            self.logger.info("stage_completed", duration=self.duration)
        else:
            self.logger.error(
                "stage_failed",
                duration=self.duration,
                error_type=exc_type.__name__,
                error_message=str(exc_val) if exc_val else None,
            )


setup_logging()
