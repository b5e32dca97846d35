"""Root conftest for the bingo server test suite.

Loads BINGO_* defaults from .env.tests before any settings object is built,
and points structlog at stdlib logging so caplog sees room and session events.
"""

import logging
from pathlib import Path

import pytest
import structlog
from dotenv import load_dotenv

from shared.logging import structlog_processors

load_dotenv(Path(__file__).resolve().parent.parent / ".env.tests")

structlog.configure(
    processors=structlog_processors(),
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=False,
)

# SQLAlchemy echoes every statement at INFO when a test enables echo.
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Keep connection_id and other bound keys from leaking between tests."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
