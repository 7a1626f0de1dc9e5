"""structlog setup shared by the CLI jobs and the read API.

The daily jobs usually run from cron, so ``LOG_FORMAT=json`` renders one
object per line with structured tracebacks. ``run_context`` tags every
event of a discovery, ingestion or calculation run with the run's fields.
"""

import logging
import os
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

#: Third-party loggers that are too chatty at INFO for a batch job.
_QUIET_LOGGERS = ("aiosqlite", "uvicorn.access", "httpx")


def _renderer(fmt: str) -> list[structlog.types.Processor]:
    if fmt == "json":
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer()]


def setup_logging(log_level: str = "INFO", log_format: str | None = None) -> None:
    """Send structlog and stdlib records through one stderr handler.

    ``log_format`` falls back to LOG_FORMAT ("json" or "console").
    """
    fmt = (log_format or os.environ.get("LOG_FORMAT", "console")).lower()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderer(fmt),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def run_context(job: str, **fields: object) -> Iterator[str]:
    """Bind ``job``, a short ``run_id`` and ``fields`` to every event in the block.

    Yields the run id. Bindings are contextvars, so concurrent per-asset
    tasks started inside the block inherit them.
    """
    run_id = uuid.uuid4().hex[:8]
    with structlog.contextvars.bound_contextvars(job=job, run_id=run_id, **fields):
        yield run_id


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)
