"""
Pytest configuration and shared fixtures for testing.
"""
import os
from pathlib import Path

# Point the app at a throwaway SQLite file and keep external services off
# before anything from career_profiling is imported.
_TEST_DB = Path(__file__).parent / "test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DB}"
os.environ["GEMINI_API_KEY"] = ""
os.environ["REDIS_URL"] = "redis://localhost:6399/15"

from datetime import datetime, timedelta  # noqa: E402
from typing import Dict, List  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from career_profiling.core.security import create_access_token  # noqa: E402
from career_profiling.database import Base, engine, get_db  # noqa: E402
from career_profiling.main import app  # noqa: E402
from career_profiling.models import (  # noqa: E402
    Question,
    QuestionStatus,
    QuestionType,
    Section,
    Student,
    User,
    UserRole,
)
from career_profiling.models.types import Option  # noqa: E402
from career_profiling.services.bootstrap import bootstrap  # noqa: E402
from career_profiling.utils.cache import cache_service  # noqa: E402

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

LIKERT_OPTIONS = [
    Option(key="A", text="Strongly Disagree"),
    Option(key="B", text="Disagree"),
    Option(key="C", text="Neutral"),
    Option(key="D", text="Agree"),
    Option(key="E", text="Strongly Agree"),
]


class FakeClock:
    """Callable stand-in for utc_now that only moves when told to"""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 9, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int):
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def disable_cache(monkeypatch):
    """Tests never talk to Redis"""
    monkeypatch.setattr(cache_service, "redis_client", None)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database dependency override.

    Startup events are not run, so tables and seed data come from the
    fixtures.
    """

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create_user(db, email: str, role: UserRole, full_name: str = "Test User") -> User:
    user = User(email=email, full_name=full_name, role=role, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _headers_for(user: User) -> Dict[str, str]:
    token = create_access_token({"sub": user.id, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def student_user(db_session):
    """
    A STUDENT user with a completed student profile.
    """
    user = _create_user(db_session, "student@example.com", UserRole.STUDENT, "Asha Student")
    db_session.add(Student(user_id=user.id, school_name="Test School", grade="10"))
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def student_headers(student_user):
    return _headers_for(student_user)


@pytest.fixture
def other_student_user(db_session):
    user = _create_user(db_session, "other@example.com", UserRole.STUDENT, "Other Student")
    db_session.add(Student(user_id=user.id, school_name="Other School", grade="11"))
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def other_student_headers(other_student_user):
    return _headers_for(other_student_user)


@pytest.fixture
def admin_user(db_session):
    return _create_user(db_session, "reviewer@example.com", UserRole.ADMIN, "Reviewer")


@pytest.fixture
def admin_headers(admin_user):
    return _headers_for(admin_user)


@pytest.fixture
def counsellor_user(db_session):
    return _create_user(db_session, "counsellor@example.com", UserRole.COUNSELLOR, "Counsellor")


@pytest.fixture
def counsellor_headers(counsellor_user):
    return _headers_for(counsellor_user)


@pytest.fixture
def sections(db_session) -> List[Section]:
    """The five canonical sections, seeded the way startup does it"""
    bootstrap(db_session)
    return db_session.query(Section).order_by(Section.order_index).all()


@pytest.fixture
def make_questions(db_session):
    """
    Factory for question-bank rows.

    Usage:
        make_questions(section, count=7, status=QuestionStatus.PENDING)
    """

    def _make(
        section=None,
        count: int = 7,
        status: QuestionStatus = QuestionStatus.APPROVED,
        is_active: bool = True,
        question_type: QuestionType = QuestionType.LIKERT_SCALE,
        category=None,
    ) -> List[Question]:
        questions = []
        for i in range(count):
            question = Question(
                question_text=f"Statement {i + 1} for {section.name if section else 'general'}",
                question_type=question_type,
                options=LIKERT_OPTIONS,
                section_id=section.id if section else None,
                category=category,
                status=status,
                is_active=is_active,
                order_index=i,
            )
            db_session.add(question)
            questions.append(question)
        db_session.commit()
        for question in questions:
            db_session.refresh(question)
        return questions

    return _make


@pytest.fixture
def question_pool(sections, make_questions) -> Dict[int, List[Question]]:
    """Exactly seven approved questions in every section, keyed by order_index"""
    return {section.order_index: make_questions(section) for section in sections}


@pytest.fixture
def started_attempt(client, student_headers, question_pool) -> int:
    response = client.post("/test/start", headers=student_headers)
    assert response.status_code == 200
    return response.json()["test_attempt_id"]


def fetch_questions(client, headers, attempt_id: int, section_id: int) -> List[dict]:
    response = client.get(
        f"/test/sections/{section_id}/questions",
        params={"attempt_id": attempt_id},
        headers=headers,
    )
    assert response.status_code == 200, response.json()
    return response.json()


def submit_section(client, headers, attempt_id: int, section_id: int, letter: str = "C"):
    questions = fetch_questions(client, headers, attempt_id, section_id)
    return client.post(
        f"/test/sections/{section_id}/submit",
        json={
            "attempt_id": attempt_id,
            "section_id": section_id,
            "answers": [
                {"question_id": q["question_id"], "selected_option": letter} for q in questions
            ],
        },
        headers=headers,
    )


@pytest.fixture
def completed_attempt(client, student_headers, started_attempt, sections) -> int:
    """An attempt with every section submitted as 'C'"""
    for section in sections:
        response = submit_section(client, student_headers, started_attempt, section.id)
        assert response.status_code == 200, response.json()
    return started_attempt
