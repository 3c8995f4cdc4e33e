"""Root conftest: keeps loguru configuration from leaking between tests."""

import sys
from collections.abc import Iterator

import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def _restore_loguru_sinks() -> Iterator[None]:
    """Reset loguru to its default stderr sink after each test.

    Some tests call setup_logging, which replaces every sink.
    """
    yield
    logger.remove()
    logger.add(sys.stderr)
