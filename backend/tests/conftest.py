import os

# Point the app at an in-memory database before anything from app is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MAIL_ENABLED"] = "false"
os.environ["DISABLE_AUTH"] = "false"
os.environ["SCHEDULER_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from app.core.constants import Authorities
from app.core.database import Base, SessionLocal, engine
from app.core.security import get_password_hash
from app.main import app, init_database
from app.models.user import User
from app.services.mail_service import MailService, get_mail_service
from app.services.user_repository import user_repository


class RecordingMailService(MailService):
    """Collects creation emails instead of sending them"""

    def __init__(self):
        super().__init__(enabled=False)
        self.sent = []

    def send_creation_email(self, user):
        self.sent.append(user.username)
        return True


@pytest.fixture
def fresh_database():
    Base.metadata.drop_all(bind=engine)
    init_database()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(fresh_database):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def mail():
    return RecordingMailService()


@pytest.fixture
def client(fresh_database, mail):
    app.dependency_overrides[get_mail_service] = lambda: mail
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def login(client, username, password):
    response = client.post("/api/auth/login", data={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def admin_headers(client):
    return login(client, "admin", "admin")


def make_user(username, password="secret", authorities=(Authorities.USER,), activated=True, email=None):
    """Insert a user directly, bypassing the API"""
    session = SessionLocal()
    try:
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            hashed_password=get_password_hash(password),
            activated=activated,
        )
        session.add(user)
        session.flush()
        user_repository.set_authorities(session, user, authorities)
        session.commit()
        session.refresh(user)
        return user.id
    finally:
        session.close()
