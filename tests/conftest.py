'''
Pytest configuration for the FastAPI application.

This file sets up fixtures for:
1. Forcing the application into TEST_MODE (with a short debounce) before any code is imported.
2. Providing a FastAPI TestClient for endpoint testing.
3. Providing instances of all service classes, each with its own empty store.
'''

import os

# Must be set before the settings object is created on first import
os.environ["TEST_MODE"] = "True"
os.environ["RECALCULATION_DELAY_SECONDS"] = "0.05"

import pytest
from fastapi.testclient import TestClient

# --- Application Imports ---
from tutor_ledger.main import app
from tutor_ledger.common.config import settings
from tutor_ledger.core.lesson_generator import LessonGenerator
from tutor_ledger.services.ledger_service import LedgerService
from tutor_ledger.services.student_service import StudentService, StudentStore
from tutor_ledger.models.schedule import Subject
from tests.factories import SubjectFactory


@pytest.fixture(scope="session")
def anyio_backend():
    """
    Override the default 'anyio_backend' fixture.
    1. Forces the backend to 'asyncio' (the debounce scheduler is asyncio based).
    2. Promotes the scope to 'session'.
    """
    return "asyncio"


@pytest.fixture(scope="function")
def client() -> TestClient:
    """
    The core fixture for endpoint tests.

    The 'with' block runs the app's lifespan and keeps one event loop alive
    for every request of the test, so debounced tasks survive between calls.
    The shutdown lifespan clears the in-memory student store.
    """
    assert settings.TEST_MODE is True, \
        "TEST_MODE was not set to True! Check your .env file or environment."

    with TestClient(app) as test_client:
        yield test_client


# --- SERVICE FIXTURES ---

@pytest.fixture(scope="function")
def lesson_generator() -> LessonGenerator:
    return LessonGenerator()

@pytest.fixture(scope="function")
def ledger_service() -> LedgerService:
    return LedgerService()

@pytest.fixture(scope="function")
def student_store() -> StudentStore:
    store = StudentStore()
    yield store
    store.clear()

@pytest.fixture(scope="function")
def student_service(student_store: StudentStore, ledger_service: LedgerService) -> StudentService:
    return StudentService(store=student_store, ledger_service=ledger_service)


# --- DATA FIXTURES ---

@pytest.fixture(scope="function")
def math_subject() -> Subject:
    """Math, 1000 per lesson, Mondays 10:00-11:00 from 2024-01-01 to 2024-01-14."""
    return SubjectFactory()
