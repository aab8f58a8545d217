from auth.dependencies import get_optional_user
from conftest import PASSWORD, login


async def test_register_login_and_me(client):
    resp = await client.post("/auth/register", json={"email": "New@Example.com", "password": PASSWORD})
    assert resp.status_code == 201
    assert resp.json()["email"] == "new@example.com"

    tokens = await login(client, "new@example.com")
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}
    me = (await client.get("/auth/me", headers=headers)).json()
    assert me["profile_complete"] is False
    assert me["role"] is None


async def test_duplicate_registration_conflicts(client):
    await client.post("/auth/register", json={"email": "dup@example.com", "password": PASSWORD})
    resp = await client.post("/auth/register", json={"email": "dup@example.com", "password": PASSWORD})
    assert resp.status_code == 409


async def test_bad_password_rejected(client):
    await client.post("/auth/register", json={"email": "x@example.com", "password": PASSWORD})
    resp = await client.post("/auth/login", data={"username": "x@example.com", "password": "wrong-password"})
    assert resp.status_code == 401


async def test_profile_required_before_using_the_api(client):
    await client.post("/auth/register", json={"email": "p@example.com", "password": PASSWORD})
    tokens = await login(client, "p@example.com")
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}
    resp = await client.get("/users/me", headers=headers)
    assert resp.status_code == 403


async def test_profile_can_only_be_completed_once(client, make_user):
    headers = await make_user("once@example.com", "student")
    resp = await client.post("/users/me/profile", json={"name": "Again", "role": "teacher"}, headers=headers)
    assert resp.status_code == 409
    assert (await client.get("/users/me", headers=headers)).json()["role"] == "student"


async def test_admin_role_needs_allowed_email(client):
    await client.post("/auth/register", json={"email": "sneaky@example.com", "password": PASSWORD})
    tokens = await login(client, "sneaky@example.com")
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}
    resp = await client.post("/users/me/profile", json={"name": "Sneaky", "role": "admin"}, headers=headers)
    assert resp.status_code == 403


async def test_role_cannot_be_changed_by_profile_update(client, student):
    resp = await client.put("/users/me", json={"name": "Renamed", "role": "admin"}, headers=student)
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Renamed"
    assert body["role"] == "student"


async def test_refresh_and_logout(client, make_user):
    await make_user("r@example.com")
    tokens = await login(client, "r@example.com")

    resp = await client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 200
    new_access = resp.json()["access_token"]
    headers = {"Authorization": f"Bearer {new_access}"}
    assert (await client.get("/users/me", headers=headers)).status_code == 200

    assert (await client.delete("/auth/logout", headers=headers)).status_code == 200
    assert (await client.get("/users/me", headers=headers)).status_code == 401
    resp = await client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 401


async def test_access_token_is_not_a_refresh_token(client, make_user):
    await make_user("t@example.com")
    tokens = await login(client, "t@example.com")
    resp = await client.post("/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert resp.status_code == 400


async def test_admin_lists_and_updates_users(client, admin, make_user):
    for i in range(3):
        await make_user(f"s{i}@example.com", "student")
    await make_user("t1@example.com", "teacher")

    page = (await client.get("/users", params={"role": "student", "page_size": 2}, headers=admin)).json()
    assert page["total"] == 3
    assert len(page["items"]) == 2
    assert page["has_more"] is True
    rest = (await client.get("/users", params={"role": "student", "page_size": 2, "cursor": page["next_cursor"]},
                             headers=admin)).json()
    assert rest["has_more"] is False
    assert rest["next_cursor"] is None
    ids = {u["id"] for u in page["items"] + rest["items"]}
    assert len(ids) == 3

    target = page["items"][0]["id"]
    resp = await client.put(f"/users/{target}", json={"status": "inactive"}, headers=admin)
    assert resp.status_code == 200
    assert resp.json()["status"] == "inactive"

    found = (await client.post("/users/lookup", json={"emails": ["T1@example.com"]}, headers=admin)).json()
    assert [u["role"] for u in found] == ["teacher"]


async def test_search_users(client, admin, make_user):
    await make_user("maria@example.com", "student", "Maria Silva")
    await make_user("john@example.com", "student", "John Doe")
    page = (await client.get("/users", params={"search": "silva"}, headers=admin)).json()
    assert [u["email"] for u in page["items"]] == ["maria@example.com"]


async def test_non_admin_cannot_list_users(client, student):
    assert (await client.get("/users", headers=student)).status_code == 403


async def test_invalid_cursor_is_a_bad_request(client, admin):
    resp = await client.get("/users", params={"cursor": "not-a-cursor"}, headers=admin)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid cursor"


async def test_inactive_student_is_anonymous_on_public_routes(client, db, redis, admin, student):
    token = student["Authorization"].split()[1]
    me = (await client.get("/users/me", headers=student)).json()
    assert (await get_optional_user(token=token, r=redis, db=db))["id"] == me["id"]

    await client.put(f"/users/{me['id']}", json={"status": "inactive"}, headers=admin)
    assert (await client.get("/users/me", headers=student)).status_code == 403
    assert await get_optional_user(token=token, r=redis, db=db) is None
    # public catalog still answers, as for an anonymous caller
    assert (await client.get("/courses", headers=student)).status_code == 200
