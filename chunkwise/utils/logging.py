"""structlog configuration for the chunkwise CLI and library.

Every module logs through structlog with a shared processor chain. Only the
final renderer differs: a console renderer for interactive runs, JSON when
``json_output`` is set or the app environment is ``"production"``.

Log lines go to stderr. stdout belongs to the CLI (progress lines, status
tables, answers) and must stay parseable.

The openai SDK and its HTTP stack log every request through stdlib
``logging``; those records are routed through the same renderer and held at
WARNING unless the run is at DEBUG.
"""

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

_CHATTY_LIBRARIES = ("openai", "httpx", "httpcore", "aiosqlite")


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    app_env: str | None = None,
) -> structlog.BoundLogger:
    """Configure structlog and the stdlib bridge.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR.
        json_output: Force the JSON renderer.
        app_env: Deployment environment; falls back to ``APP_ENV``.
                 ``"production"`` selects JSON.

    Returns:
        The root structlog logger.
    """
    level = log_level.upper()
    env = app_env or os.environ.get("APP_ENV", "development")
    use_json = json_output or env == "production"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if use_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *shared_processors,
                renderer,
            ],
        )
    )
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    library_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in _CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger bound to *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)


@contextmanager
def log_context(**bindings: Any) -> Iterator[None]:
    """Attach *bindings* to every log line emitted inside the block.

    Used by the CLI to tag provider, limiter and store events with the
    command and source id they belong to.
    """
    with structlog.contextvars.bound_contextvars(**bindings):
        yield
