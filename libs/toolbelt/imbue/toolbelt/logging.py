import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any
from typing import Final

from loguru import logger

from imbue.toolbelt.env import EnvLookup
from imbue.toolbelt.env import lookup_env_with_default
from imbue.toolbelt.env import os_lookup_env
from imbue.toolbelt.primitives import LogLevel

LOG_LEVEL_ENV_VAR: Final[str] = "TOOLBELT_LOG_LEVEL"

_LOG_FORMAT: Final[str] = (
    "<level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def setup_logging(level: LogLevel | str = LogLevel.INFO) -> None:
    """Replace all loguru sinks with a single stderr sink at the given level."""
    logger.remove()
    logger.add(sys.stderr, level=str(level).upper(), format=_LOG_FORMAT)


def setup_logging_from_env(lookup: EnvLookup = os_lookup_env) -> LogLevel:
    """Configure logging from TOOLBELT_LOG_LEVEL, defaulting to INFO.

    Unknown level names fall back to INFO with a warning.
    """
    raw_level = lookup_env_with_default(LOG_LEVEL_ENV_VAR, LogLevel.INFO.value, lookup=lookup)
    try:
        level = LogLevel(raw_level.strip().upper())
    except ValueError:
        setup_logging(LogLevel.INFO)
        logger.warning("Ignoring unknown {} value: {!r}", LOG_LEVEL_ENV_VAR, raw_level)
        return LogLevel.INFO
    setup_logging(level)
    return level


@contextmanager
def log_span(message: str, *args: Any, **context: Any) -> Iterator[None]:
    """Log a debug message on entry and a trace message with the elapsed time on exit.

    Keyword arguments are bound with logger.contextualize for every message
    emitted inside the span.
    """
    with logger.contextualize(**context):
        logger.debug(message, *args)
        start_time = time.monotonic()
        try:
            yield
        except BaseException:
            elapsed = time.monotonic() - start_time
            logger.trace(message + " [failed after {:.5f} sec]", *args, elapsed)
            raise
        else:
            elapsed = time.monotonic() - start_time
            logger.trace(message + " [done in {:.5f} sec]", *args, elapsed)
