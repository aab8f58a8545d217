from services.cache_keys import course_key
from services.memory_cache import memory_cache


async def test_course_reads_are_cached_and_counted(client, admin, teacher, build_course):
    course = await build_course(teacher)
    await client.delete("/cache/stats", headers=admin)

    await client.get(f"/courses/{course['id']}")
    await client.get(f"/courses/{course['id']}")

    stats = (await client.get("/cache/stats", headers=admin)).json()
    assert stats["hits"]["courses"] >= 2
    assert await memory_cache.get(course_key(course["id"])) is not None


async def test_update_invalidates_cached_course(client, teacher, build_course):
    course = await build_course(teacher)
    await client.get(f"/courses/{course['id']}")
    await client.put(f"/courses/{course['id']}", json={"title": "Fresh title"}, headers=teacher)
    assert (await client.get(f"/courses/{course['id']}")).json()["title"] == "Fresh title"


async def test_admin_invalidates_course_cache(client, admin, teacher, build_course, redis):
    course = await build_course(teacher)
    await client.get(f"/courses/{course['id']}")
    assert await redis.get(course_key(course["id"])) is not None

    resp = await client.delete(f"/cache/courses/{course['id']}", headers=admin)
    assert resp.status_code == 200
    assert await redis.get(course_key(course["id"])) is None
    assert await memory_cache.get(course_key(course["id"])) is None

    assert (await client.delete("/cache/courses/not-an-id", headers=admin)).status_code == 400


async def test_cache_routes_are_admin_only(client, teacher):
    assert (await client.get("/cache/stats", headers=teacher)).status_code == 403


async def test_health(client):
    body = (await client.get("/api/v1/health")).json()
    assert body["services"]["redis"]["status"] == "connected"
    assert body["status"] in ("healthy", "degraded")
