import pytest

from errors import ConflictError, NotFoundError
from repos import courses as course_repo
from services import curriculum


async def test_reorder_modules_renumbers(client, teacher, build_course):
    course = await build_course(teacher, lessons_per_module=(1, 1, 1))
    ids = [m["id"] for m in course["modules"]]
    new_order = [ids[2], ids[0], ids[1]]

    resp = await client.put(f"/courses/{course['id']}/modules/order", json={"ids": new_order}, headers=teacher)
    assert resp.status_code == 200
    modules = resp.json()["modules"]
    assert [m["id"] for m in modules] == new_order
    assert [m["order"] for m in modules] == [0, 1, 2]


async def test_reorder_rejects_non_permutation(client, teacher, build_course):
    course = await build_course(teacher, lessons_per_module=(1, 1))
    ids = [m["id"] for m in course["modules"]]
    for bad in ([ids[0]], [ids[0], ids[0]], ids + ["extra"]):
        resp = await client.put(f"/courses/{course['id']}/modules/order", json={"ids": bad}, headers=teacher)
        assert resp.status_code == 400


async def test_delete_module_renumbers_rest(client, teacher, build_course):
    course = await build_course(teacher, lessons_per_module=(1, 2, 1))
    first = course["modules"][0]["id"]
    resp = await client.delete(f"/courses/{course['id']}/modules/{first}", headers=teacher)
    body = resp.json()
    assert [m["order"] for m in body["modules"]] == [0, 1]
    assert body["lessons_count"] == 3


async def test_lesson_edit_reorder_and_delete(client, teacher, build_course):
    course = await build_course(teacher, lessons_per_module=(3,))
    module = course["modules"][0]
    base = f"/courses/{course['id']}/modules/{module['id']}/lessons"
    lesson_ids = [l["id"] for l in module["lessons"]]

    resp = await client.put(f"{base}/{lesson_ids[1]}", json={"title": "Renamed", "type": "video",
                                                             "video_url": "https://video.example.com/1"},
                            headers=teacher)
    lesson = resp.json()["modules"][0]["lessons"][1]
    assert (lesson["title"], lesson["type"]) == ("Renamed", "video")

    resp = await client.put(f"{base}/order", json={"ids": list(reversed(lesson_ids))}, headers=teacher)
    assert [l["id"] for l in resp.json()["modules"][0]["lessons"]] == list(reversed(lesson_ids))

    resp = await client.delete(f"{base}/{lesson_ids[0]}", headers=teacher)
    lessons = resp.json()["modules"][0]["lessons"]
    assert [l["order"] for l in lessons] == [0, 1]
    assert lesson_ids[0] not in [l["id"] for l in lessons]


async def test_drive_material_gets_preview(client, teacher, build_course):
    course = await build_course(teacher, lessons_per_module=(1,))
    module = course["modules"][0]
    lesson = module["lessons"][0]
    url = "https://docs.google.com/spreadsheets/d/abc123/edit#gid=0"
    resp = await client.post(
        f"/courses/{course['id']}/modules/{module['id']}/lessons/{lesson['id']}/materials",
        json={"title": "Sheet", "url": url}, headers=teacher,
    )
    assert resp.status_code == 201
    material = resp.json()["modules"][0]["lessons"][0]["materials"][0]
    assert material["type"] == "spreadsheet"
    assert material["drive_file_id"] == "abc123"
    assert material["preview_url"] == "https://docs.google.com/spreadsheets/d/abc123/preview"

    resp = await client.delete(
        f"/courses/{course['id']}/modules/{module['id']}/lessons/{lesson['id']}/materials/{material['id']}",
        headers=teacher,
    )
    assert resp.json()["modules"][0]["lessons"][0]["materials"] == []


async def test_other_teachers_cannot_edit_curriculum(client, teacher, make_user, build_course):
    course = await build_course(teacher, lessons_per_module=(1,))
    other = await make_user("intruder@example.com", "teacher")
    resp = await client.post(f"/courses/{course['id']}/modules", json={"title": "Mine now"}, headers=other)
    assert resp.status_code == 403


async def test_unknown_module_is_not_found(client, teacher, build_course):
    course = await build_course(teacher, lessons_per_module=(1,))
    resp = await client.put(f"/courses/{course['id']}/modules/nope", json={"title": "x"}, headers=teacher)
    assert resp.status_code == 404


async def test_every_write_bumps_revision(client, teacher, build_course):
    course = await build_course(teacher, lessons_per_module=(1,))
    before = course["revision"]
    resp = await client.post(f"/courses/{course['id']}/modules", json={"title": "Another"}, headers=teacher)
    assert resp.json()["revision"] == before + 1


def test_stale_module_write_conflicts(db):
    course = course_repo.insert_course(db, {"title": "Race", "instructor_id": "t1", "status": "draft"})
    modules, _ = curriculum.add_module([], title="First")
    # two editors read revision 0; the first write wins
    course_repo.write_modules(db, course["id"], modules, course["revision"])
    later, _ = curriculum.add_module([], title="Second")
    with pytest.raises(ConflictError):
        course_repo.write_modules(db, course["id"], later, course["revision"])

    stored = course_repo.get_course_by_id(db, course["id"])
    assert [m["title"] for m in stored["modules"]] == ["First"]
    assert stored["revision"] == 1


def test_write_to_missing_course_is_not_found(db):
    with pytest.raises(NotFoundError):
        course_repo.write_modules(db, "64b000000000000000000000", [], 0)


def test_curriculum_helpers_do_not_mutate_input():
    modules, module = curriculum.add_module([], title="M")
    modules, lesson = curriculum.add_lesson(modules, module["id"], {"title": "L"})
    snapshot = [dict(m) for m in modules]
    curriculum.remove_lesson(modules, module["id"], lesson["id"])
    assert modules[0]["lessons"][0]["id"] == lesson["id"]
    assert [m["id"] for m in modules] == [m["id"] for m in snapshot]
    assert curriculum.lesson_ids(modules) == [lesson["id"]]
