import pytest
import structlog

from config import TestingSettings
from services import get_ledger_service


@pytest.fixture
def settings():
    return TestingSettings()


@pytest.fixture
def service(settings):
    """Fresh ledger with empty repositories for each test."""
    return get_ledger_service(settings)


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo any logging configuration made by CLI tests."""
    yield
    structlog.reset_defaults()
