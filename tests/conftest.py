"""Pytest configuration and shared fixtures.

This module provides fixtures and configuration used across all tests.
"""

import os
from typing import Callable, Generator, Optional

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

# Set required environment variables for tests BEFORE importing app modules
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from app.models.database import Base
from app.schemas.form import Form, FormResponse
from app.services.collaborators import Respondent, SinkResult, StaticIdentityProvider
from app.services.form_loader import FormNotFoundError


class MemorySink:
    """Response sink keeping submitted responses in a list."""

    def __init__(self, fail_with: Optional[str] = None):
        self.responses: list[FormResponse] = []
        self.fail_with = fail_with
        self.calls = 0

    async def submit_response(self, response: FormResponse) -> SinkResult:
        self.calls += 1
        if self.fail_with:
            return SinkResult.failed(self.fail_with)
        self.responses.append(response)
        return SinkResult.ok()

    def has_response(self, form_id: str, respondent_email: str) -> bool:
        return any(
            r.form_id == form_id and r.respondent_email == respondent_email
            for r in self.responses
        )


class DictFormRepository:
    """Form repository over an in-memory dict."""

    def __init__(self, *forms: Form):
        self.forms = {form.id: form for form in forms}

    def load_form(self, form_id: str) -> Form:
        if form_id not in self.forms:
            raise FormNotFoundError(f"Form '{form_id}' not found")
        return self.forms[form_id]


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine with SQLite in-memory database.

    Yields:
        Engine: SQLAlchemy engine for testing

    Note:
        Uses SQLite in-memory database for fast, isolated tests.
        Database is created fresh for each test function.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,  # Set to True for SQL debugging
    )

    # Enable foreign key support for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # Create all tables
    Base.metadata.create_all(engine)

    yield engine

    # Drop all tables after test
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session.

    Args:
        db_engine: Test database engine fixture

    Yields:
        Session: SQLAlchemy session for testing

    Note:
        Session is rolled back after each test to ensure isolation.
    """
    TestSessionLocal = sessionmaker(
        bind=db_engine,
        autocommit=False,
        autoflush=False,
    )

    session = TestSessionLocal()

    yield session

    # Rollback any uncommitted changes
    session.rollback()
    session.close()


@pytest.fixture
def make_form() -> Callable[..., Form]:
    """Factory building a Form from question dicts and setting overrides.

    Example:
        form = make_form([{"id": "q1", "type": "text"}], quizMode=True)
    """
    def _make(questions: list, form_id: str = "test_form", **settings) -> Form:
        return Form.model_validate({
            "id": form_id,
            "title": "Test Form",
            "questions": questions,
            "settings": settings,
        })
    return _make


@pytest.fixture
def linear_form(make_form) -> Form:
    """Three-page form: q1 | section s1, q2 | section s2, q3."""
    return make_form([
        {"id": "q1", "type": "text", "title": "Name", "required": True},
        {"id": "s1", "type": "section", "title": "Part 2"},
        {"id": "q2", "type": "paragraph", "title": "About you", "required": True},
        {"id": "s2", "type": "section", "title": "Part 3"},
        {"id": "q3", "type": "checkbox", "title": "Pick some", "options": ["a", "b", "c"]},
    ])


@pytest.fixture
def conditional_form(make_form) -> Form:
    """Single page where pet_name is hidden when likes_pets is No."""
    return make_form([
        {
            "id": "likes_pets",
            "type": "multipleChoice",
            "title": "Do you like pets?",
            "required": True,
            "options": ["Yes", "No"],
        },
        {
            "id": "pet_name",
            "type": "text",
            "title": "Pet name",
            "required": True,
            "conditionalLogic": [
                {"questionId": "likes_pets", "operator": "equals", "value": "No", "action": "hide"},
            ],
        },
    ])


@pytest.fixture
def quiz_form(make_form) -> Form:
    """Quiz with a 2-point multiple choice and a 4-point checkbox."""
    return make_form(
        [
            {"id": "capital", "type": "multipleChoice", "options": ["Paris", "Rome", "Oslo"], "points": 2},
            {"id": "primes", "type": "checkbox", "options": ["2", "3", "4", "6"], "points": 4},
            {"id": "comment", "type": "text"},
        ],
        quizMode=True,
        confirmationMessage="You scored {{ score }} out of {{ max_score }}",
    )


@pytest.fixture
def skip_form(make_form) -> Form:
    """Three pages; answering No on page 0 skips straight to page 2."""
    return make_form([
        {
            "id": "continue",
            "type": "multipleChoice",
            "required": True,
            "options": ["Yes", "No"],
            "conditionalLogic": [
                {
                    "questionId": "continue",
                    "operator": "equals",
                    "value": "No",
                    "action": "skip_to",
                    "targetQuestionId": "end",
                },
            ],
        },
        {"id": "s1", "type": "section", "title": "Details"},
        {"id": "details", "type": "text", "required": True},
        {"id": "s2", "type": "section", "title": "End"},
        {"id": "end", "type": "text"},
    ])


@pytest.fixture
def memory_sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def failing_sink() -> MemorySink:
    return MemorySink(fail_with="database unavailable")


@pytest.fixture
def respondent() -> Respondent:
    return Respondent(email="ada@example.com")


@pytest.fixture
def signed_in(respondent) -> StaticIdentityProvider:
    return StaticIdentityProvider(respondent)


@pytest.fixture
def form_repository() -> Callable[..., DictFormRepository]:
    return DictFormRepository
