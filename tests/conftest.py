import os

# Settings are read at import time
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017/lms_test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("JWT_SECRET", "test-secret-key-with-at-least-32-characters")
os.environ.setdefault("ADMIN_EMAILS", "admin@example.com")

import fakeredis
import mongomock
import pytest
from httpx import ASGITransport, AsyncClient

from deps import get_db, get_redis
from main import INDEXED_REPOS, app
from services.memory_cache import memory_cache

PASSWORD = "password123"


@pytest.fixture
def db():
    database = mongomock.MongoClient().lms_test
    for repo in INDEXED_REPOS:
        repo.ensure_indexes(database)
    return database


@pytest.fixture
def redis():
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
async def client(db, redis):
    memory_cache.clear()
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_redis] = lambda: redis
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    memory_cache.clear()


async def login(client, email, password=PASSWORD):
    resp = await client.post("/auth/login", data={"username": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()


@pytest.fixture
def make_user(client):
    """Register, log in and complete the profile; returns auth headers."""
    async def _make(email, role="student", name=None):
        resp = await client.post("/auth/register", json={"email": email, "password": PASSWORD})
        assert resp.status_code == 201, resp.text
        tokens = await login(client, email)
        headers = {"Authorization": f"Bearer {tokens['access_token']}"}
        resp = await client.post(
            "/users/me/profile",
            json={"name": name or email.split("@")[0].title(), "role": role},
            headers=headers,
        )
        assert resp.status_code == 201, resp.text
        return headers
    return _make


@pytest.fixture
async def teacher(make_user):
    return await make_user("teacher@example.com", "teacher", "Ada Teacher")


@pytest.fixture
async def student(make_user):
    return await make_user("student@example.com", "student", "Sam Student")


@pytest.fixture
async def admin(make_user):
    return await make_user("admin@example.com", "admin", "Alex Admin")


@pytest.fixture
def build_course(client):
    """Create a course with the given lessons per module, optionally published."""
    async def _build(headers, title="Python Basics", lessons_per_module=(2, 1), publish=True, **fields):
        resp = await client.post("/courses", json={"title": title, "price": 50, **fields}, headers=headers)
        assert resp.status_code == 201, resp.text
        course = resp.json()
        for m, count in enumerate(lessons_per_module):
            resp = await client.post(f"/courses/{course['id']}/modules", json={"title": f"Module {m + 1}"}, headers=headers)
            assert resp.status_code == 201, resp.text
            module_id = resp.json()["modules"][-1]["id"]
            for n in range(count):
                resp = await client.post(
                    f"/courses/{course['id']}/modules/{module_id}/lessons",
                    json={"title": f"Lesson {m + 1}.{n + 1}", "duration": 10},
                    headers=headers,
                )
                assert resp.status_code == 201, resp.text
        if publish:
            resp = await client.put(f"/courses/{course['id']}", json={"status": "published"}, headers=headers)
            assert resp.status_code == 200, resp.text
        resp = await client.get(f"/courses/{course['id']}", headers=headers)
        return resp.json()
    return _build


def all_lesson_ids(course):
    return [l["id"] for m in course["modules"] for l in m["lessons"]]
