"""Shared pytest fixtures for all test suites."""

from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from backend.app.auth import create_token, hash_password
from backend.app.config import get_settings
from backend.app.db.engine import create_session_factory, get_storage
from backend.app.db.inmemory import InMemoryStorage
from backend.app.db.models import Base
from backend.app.db.sql_repositories import SqlStorage
from backend.app.llm.client import DeterministicStubClient, get_llm_client
from backend.app.main import app
from backend.app.models.common import Plan, Role
from backend.app.models.users import User
from backend.app.plans import plan_window

TEST_PASSWORD = "Password123"


@pytest.fixture
def storage() -> InMemoryStorage:
    """Fresh in-memory storage."""
    return InMemoryStorage()


@pytest.fixture
def sql_storage() -> Generator[SqlStorage, None, None]:
    """SQL storage on a private in-memory SQLite database."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield SqlStorage(create_session_factory(engine))
    engine.dispose()


@pytest.fixture
def llm_client() -> DeterministicStubClient:
    """Deterministic stub LLM client."""
    return DeterministicStubClient()


@pytest.fixture
def client(storage: InMemoryStorage, llm_client: DeterministicStubClient) -> Generator[TestClient, None, None]:
    """Test client wired to the fixture storage and stub LLM client."""
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_llm_client] = lambda: llm_client
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(storage: InMemoryStorage) -> Callable[..., User]:
    """Factory storing a user directly (skips the register endpoint)."""

    def _make(
        email: str = "user@example.com",
        *,
        plan: Plan = Plan.FREE,
        role: Role = Role.user,
        **fields: object,
    ) -> User:
        started_at, expires_at = plan_window(plan)
        user = User(
            email=email,
            password_hash=hash_password(TEST_PASSWORD),
            plan=plan,
            role=role,
            plan_started_at=started_at,
            plan_expires_at=expires_at,
            **fields,
        )
        return storage.create_user(user)

    return _make


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Build a bearer header for a user."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_token(user)}"}

    return _headers


@pytest.fixture
def free_headers(make_user: Callable[..., User], auth_headers: Callable[[User], dict[str, str]]) -> dict[str, str]:
    """Bearer header of a FREE user."""
    return auth_headers(make_user("free@example.com"))


@pytest.fixture
def free_limit() -> int:
    """Configured FREE daily limit."""
    return get_settings().free_daily_limit
