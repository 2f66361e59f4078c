"""Root conftest: test environment, structlog wiring and a clean log context per test."""

from pathlib import Path

import pytest
import structlog
from dotenv import load_dotenv

from shared.logging import _configure_structlog

load_dotenv(Path(__file__).resolve().parent.parent / ".env.tests")

# same processor chain as production, so caplog sees session context
_configure_structlog()


@pytest.fixture(autouse=True)
def _clear_log_context():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
