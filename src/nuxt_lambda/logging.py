"""Build logs for the nuxt-lambda pipeline.

Pipeline modules log through plain ``logging.getLogger(__name__)`` loggers.
This module renders their records with structlog: one JSON object per line
when APP_ENV is prod (CI), aligned console lines otherwise. Fields bound with
``build_context`` ride along on every record emitted inside the block.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TextIO

import structlog

from nuxt_lambda.config import Settings, get_settings

_RECORD_FIELDS: tuple[structlog.types.Processor, ...] = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
)


def _render_chain(json_output: bool, stream: TextIO) -> list[structlog.types.Processor]:
    chain: list[structlog.types.Processor] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta
    ]
    if json_output:
        # Tracebacks from failed builds become a string field.
        chain += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ]
    else:
        isatty = getattr(stream, "isatty", None)
        chain.append(structlog.dev.ConsoleRenderer(colors=bool(isatty and isatty())))
    return chain


def configure_logging(
    settings: Settings | None = None,
    *,
    json_output: bool | None = None,
    stream: TextIO | None = None,
) -> None:
    """Install a single structlog-rendering handler on the root logger.

    Level and output format follow *settings* (LOG_LEVEL, APP_ENV) unless
    *json_output* forces the format. Output goes to *stream*, stderr by default.
    An unknown LOG_LEVEL falls back to INFO.
    """
    settings = settings or get_settings()
    if json_output is None:
        json_output = settings.app_env == "prod"
    target = stream if stream is not None else sys.stderr

    handler = logging.StreamHandler(target)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=list(_RECORD_FIELDS),
            processors=_render_chain(json_output, target),
        )
    )

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.getLevelNamesMapping().get(settings.log_level.upper(), logging.INFO))


@contextmanager
def build_context(**kwargs: object) -> Iterator[None]:
    """Tag every log line emitted inside the block, then drop the tags."""
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
