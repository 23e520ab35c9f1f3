"""
Pytest configuration and fixtures for queue-drain.

Provides cross-platform event loop configuration and test utilities.
"""

import asyncio
import sys

import pytest
from loguru import logger

# Set policy *before* pytest-asyncio creates any loops
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


@pytest.fixture
def log_records():
    """Capture loguru records (message, level, extra) emitted during a test."""
    records = []

    def _sink(message):
        r = message.record
        records.append({"level": r["level"].name, "message": r["message"], "extra": r["extra"]})

    handler_id = logger.add(_sink, level="DEBUG")
    yield records
    logger.remove(handler_id)
