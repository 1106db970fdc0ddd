import os
import tempfile
from pathlib import Path

_TMP = Path(tempfile.mkdtemp(prefix="learnhub-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP / 'test.db'}"
os.environ["UPLOAD_DIR"] = str(_TMP / "uploads")
os.environ["SECRET_KEY"] = "learnhub-test-secret"
os.environ["SEED_DEMO_DATA"] = "false"

import httpx
import pytest

from learnhub.core.auth import create_access_token
from learnhub.core.database import AsyncSessionLocal, create_tables, drop_tables
from learnhub.core.policy import Role
from learnhub.core.storage import Storage
from learnhub.main import app


@pytest.fixture(autouse=True)
async def reset_db():
    """Fresh tables for every test"""
    await drop_tables()
    await create_tables()
    yield
    await drop_tables()


@pytest.fixture
async def session():
    async with AsyncSessionLocal() as s:
        yield s


@pytest.fixture
def storage(session):
    return Storage(session)


@pytest.fixture
async def client():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest.fixture
def make_user(storage):
    counter = {"n": 0}

    async def _make(role: Role = Role.STUDENT, name: str = None):
        counter["n"] += 1
        username = f"{role.value}{counter['n']}"
        return await storage.create_user(
            username=username,
            password_hash="not-a-real-hash",
            role=role.value,
            name=name or username.title()
        )

    return _make


def auth_headers(user) -> dict:
    token = create_access_token(data={"sub": user.id, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers():
    return auth_headers
