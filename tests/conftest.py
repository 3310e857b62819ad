"""
공통 픽스처: 인메모리 SQLite DB, 가짜 LLM 클라이언트, API TestClient, 사용자/토큰.
- 실제 PostgreSQL·OpenAI 없이 실행된다.
"""

import json
import os
from types import SimpleNamespace

# app 모듈 import 전에 설정 (Settings는 import 시점에 로드)
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-unit-tests"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.api.deps import get_db_session, get_generation_service
from app.api.main import create_app
from app.db.repositories.user import user_repo
from app.services.auth import create_access_token, hash_password
from app.services.quiz_generation import QuizGenerationService


def make_reply(n: int = 2, fenced: bool = False) -> str:
    """OpenAI가 돌려줄 법한 퀴즈 JSON 문자열."""
    payload = {
        "questions": [
            {
                "text": f"What is item number {i}?",
                "options": ["alpha", "beta", "gamma", "delta"],
                "correctIndex": i % 4,
                "explanation": f"Item {i} is explained in the text.",
            }
            for i in range(n)
        ]
    }
    text = json.dumps(payload)
    return f"```json\n{text}\n```" if fenced else text


class FakeCompletions:
    def __init__(self) -> None:
        self.replies: list[str] = []
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        content = self.replies.pop(0) if self.replies else make_reply()
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeLLMClient:
    """openai.OpenAI 대용: chat.completions.create만 흉내."""

    def __init__(self) -> None:
        self.completions = FakeCompletions()
        self.chat = SimpleNamespace(completions=self.completions)

    def queue(self, *replies: str) -> None:
        self.completions.replies.extend(replies)

    @property
    def calls(self) -> list[dict]:
        return self.completions.calls


@pytest.fixture
def reply():
    return make_reply


@pytest.fixture
def sample_quiz_payload():
    return {
        "title": "JavaScript Basics",
        "description": "Test your JS knowledge",
        "questions": [
            {
                "text": "What is 2+2?",
                "options": ["3", "4", "5"],
                "correctIndex": 1,
                "explanation": "Basic math!",
            }
        ],
        "visibility": "public",
        "tags": ["javascript", "basics"],
    }


@pytest.fixture
def long_content():
    return "Photosynthesis converts light energy into chemical energy stored in glucose. " * 5


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def fake_llm():
    return FakeLLMClient()


@pytest.fixture
def generation_service(fake_llm):
    return QuizGenerationService(client=fake_llm, model="test-model")


@pytest.fixture
def client(engine, generation_service):
    app = create_app()

    def _session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db_session] = _session
    app.dependency_overrides[get_generation_service] = lambda: generation_service
    return TestClient(app)


@pytest.fixture
def make_user(engine):
    def _make(email="alice@example.com", name="Alice", password="password123", role="user"):
        with Session(engine) as session:
            return user_repo.create(
                session,
                email=email,
                name=name,
                password_hash=hash_password(password),
                role=role,
            )

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


@pytest.fixture
def alice(make_user):
    return make_user()


@pytest.fixture
def bob(make_user):
    return make_user(email="bob@example.com", name="Bob")


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", name="Admin", role="admin")
