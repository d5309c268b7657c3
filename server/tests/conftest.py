import asyncio
import os
import re
import tempfile

# Settings are read at import time, so point them somewhere harmless first
_TMP_DIR = tempfile.mkdtemp(prefix="nutramitra-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'startup.db')}"
os.environ["SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["CONTACT_EMAIL"] = "team@example.org"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from main import app
from nutramitra.auth.passwords import hash_password
from nutramitra.core.email import get_mailer
from nutramitra.core.exceptions import MailDeliveryError, MediaUploadError
from nutramitra.core.media import get_media_host
from nutramitra.db.models import User, get_db, init_db

ADMIN_PASSWORD = "AdminPass123"
USER_PASSWORD = "UserPass123"


class FakeMailer:
    def __init__(self):
        self.outbox = []
        self.fail = False

    async def send(self, to_email, subject, html, text=None):
        if self.fail:
            raise MailDeliveryError()
        self.outbox.append({"to": to_email, "subject": subject, "html": html, "text": text})

    def sent_to(self, email):
        return [m for m in self.outbox if m["to"] == email]

    def last_code(self, email):
        message = self.sent_to(email)[-1]
        return re.search(r"\b(\d{6})\b", message["text"]).group(1)


class FakeMediaHost:
    def __init__(self):
        self.uploads = []
        self.fail = False

    async def upload(self, key, data, content_type):
        if self.fail:
            raise MediaUploadError()
        self.uploads.append({"key": key, "size": len(data), "content_type": content_type})
        return {"url": f"https://cdn.nutramitra.test/{key}", "public_id": key}


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def media_host():
    return FakeMediaHost()


@pytest.fixture
def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    asyncio.run(init_db(engine))
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def client(session_factory, mailer, media_host):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_media_host] = lambda: media_host
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def create_user(session_factory, email, password, role="user", name="Test User", is_verified=True):
    async def _create():
        hashed, salt = hash_password(password)
        async with session_factory() as db:
            user = User(
                name=name,
                email=email,
                hashed_password=hashed,
                salt=salt,
                role=role,
                is_verified=is_verified,
            )
            db.add(user)
            await db.commit()
            return user.id

    return asyncio.run(_create())


def login(client, email, password):
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def admin_headers(client, session_factory):
    create_user(session_factory, "admin@example.org", ADMIN_PASSWORD, role="admin", name="Admin")
    return login(client, "admin@example.org", ADMIN_PASSWORD)


@pytest.fixture
def user_headers(client, session_factory):
    create_user(session_factory, "member@example.org", USER_PASSWORD)
    return login(client, "member@example.org", USER_PASSWORD)
