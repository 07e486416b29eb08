from __future__ import annotations

from typing import Callable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from lms.core.security import create_access_token
from lms.core.settings import Settings
from lms.db.session import get_db
from lms.main import create_app
from lms.models import Base
from lms.models.course import Course
from lms.models.enums import Role
from lms.models.user import User
from tests.factories import make_course, make_user


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        database_url="sqlite+pysqlite://",
        jwt_secret="test-secret",
        environment="test",
        log_level="WARNING",
    )


@pytest.fixture()
def db():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def client(db: Session, settings: Settings):
    app = create_app(settings)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    client_instance = TestClient(app)
    try:
        yield client_instance
    finally:
        client_instance.close()
        app.dependency_overrides.clear()


@pytest.fixture()
def auth(settings: Settings) -> Callable[[User], dict[str, str]]:
    def _auth_headers(user: User) -> dict[str, str]:
        token = create_access_token({"sub": str(user.id), "role": user.role.value}, settings)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture()
def instructor(db: Session) -> User:
    return make_user(db, "instructor@example.com", Role.INSTRUCTOR, "Ada Instructor")


@pytest.fixture()
def other_instructor(db: Session) -> User:
    return make_user(db, "other-instructor@example.com", Role.INSTRUCTOR, "Grace Other")


@pytest.fixture()
def learner(db: Session) -> User:
    return make_user(db, "learner@example.com", Role.LEARNER, "Lin Learner")


@pytest.fixture()
def other_learner(db: Session) -> User:
    return make_user(db, "learner2@example.com", Role.LEARNER, "Sam Student")


@pytest.fixture()
def operator_user(db: Session) -> User:
    return make_user(db, "ops@example.com", Role.OPERATOR, "Olga Operator")


@pytest.fixture()
def course(db: Session, instructor: User) -> Course:
    return make_course(db, instructor)
