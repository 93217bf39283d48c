import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
import os
from datetime import timedelta
from typing import Callable, Generator, Any

# Переменные окружения должны быть выставлены ДО импорта settings и приложения
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "testsecretkey"
os.environ["DEBUG"] = "false"

# Регистрирует все модели в Base.metadata
import cohorthub.models

from cohorthub.models.base import Base
from cohorthub.core.settings import settings as app_settings
from cohorthub.core import security
from cohorthub.database import build_engine
from cohorthub.dependencies import get_db
from cohorthub.crud.user import create_user
from cohorthub.main import app


@pytest.fixture(scope="function")
def engine():
    """
    Отдельная in-memory база на каждый тест: единицы работы делают настоящий
    commit/rollback, поэтому внешняя транзакция-обёртка здесь не подходит.
    """
    test_engine = build_engine("sqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture(scope="function")
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="function")
def client(session_factory) -> Generator[TestClient, None, None]:
    """
    TestClient, где каждый запрос получает свою сессию тестовой базы.
    """
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    del app.dependency_overrides[get_db]


@pytest.fixture(scope="function")
def make_user(db: Session) -> Callable[..., Any]:
    """
    Фабрика участников: make_user("alice"), make_user("mentor1", role="mentor").
    """
    def _make(username: str, role: str = "participant", **extra):
        data = {
            "username": username,
            "email": f"{username}@example.com",
            "full_name": username.capitalize(),
            "role": role,
        }
        data.update(extra)
        return create_user(db, data)
    return _make


def token_headers(user: Any) -> dict[str, str]:
    token, _ = security.create_access_token(
        data={"sub": user.id},
        expires_delta=timedelta(minutes=app_settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def auth_headers() -> Callable[[Any], dict[str, str]]:
    return token_headers


@pytest.fixture(scope="function")
def mentor(make_user) -> Any:
    return make_user("mentor", role="mentor")


@pytest.fixture(scope="function")
def mentor_token_headers(mentor) -> dict[str, str]:
    return token_headers(mentor)
