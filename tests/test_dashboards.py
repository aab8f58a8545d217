from conftest import all_lesson_ids


async def _enroll(client, headers, course_id):
    return (await client.post("/enrollments", json={"course_id": course_id}, headers=headers)).json()


async def test_student_dashboard(client, teacher, student, build_course):
    python = await build_course(teacher, title="Python", lessons_per_module=(2,))
    rust = await build_course(teacher, title="Rust", lessons_per_module=(1,))
    py_enrollment = await _enroll(client, student, python["id"])
    rust_enrollment = await _enroll(client, student, rust["id"])

    first_lesson, second_lesson = all_lesson_ids(python)
    await client.post(f"/enrollments/{py_enrollment['id']}/lessons/{first_lesson}/complete", headers=student)
    await client.post(f"/enrollments/{rust_enrollment['id']}/lessons/{all_lesson_ids(rust)[0]}/complete",
                      headers=student)
    await client.post("/certificates", json={"course_id": rust["id"]}, headers=student)

    board = (await client.get("/dashboard/student", headers=student)).json()
    assert board["active_courses"] == 1
    assert board["completed_courses"] == 1
    assert board["certificates"] == 1
    assert board["overall_progress"] == 75

    by_title = {c["title"]: c for c in board["courses"]}
    assert by_title["Python"]["progress_percent"] == 50
    assert (by_title["Python"]["completed_count"], by_title["Python"]["total_lessons"]) == (1, 2)

    assert [n["course_id"] for n in board["next_lessons"]] == [python["id"]]
    assert board["next_lessons"][0]["lesson_id"] == second_lesson


async def test_student_dashboard_skips_cancelled(client, teacher, student, build_course):
    course = await build_course(teacher)
    enrollment = await _enroll(client, student, course["id"])
    await client.post(f"/enrollments/{enrollment['id']}/cancel", headers=student)
    board = (await client.get("/dashboard/student", headers=student)).json()
    assert board["courses"] == []
    assert board["overall_progress"] == 0


async def test_teacher_dashboard(client, teacher, student, make_user, build_course):
    paid = await build_course(teacher, title="Paid", price=30)
    await build_course(teacher, title="Draft", publish=False)
    await _enroll(client, student, paid["id"])
    other = await make_user("second.student@example.com")
    cancelled = await _enroll(client, other, paid["id"])
    await client.post(f"/enrollments/{cancelled['id']}/cancel", headers=other)

    board = (await client.get("/dashboard/teacher", headers=teacher)).json()
    assert board["total_courses"] == 2
    assert board["courses_by_status"]["published"] == 1
    assert board["courses_by_status"]["draft"] == 1
    assert board["total_students"] == 1
    assert board["total_revenue"] == 30.0
    paid_row = next(c for c in board["courses"] if c["title"] == "Paid")
    assert paid_row["active_students"] == 1


async def test_admin_dashboard(client, admin, teacher, student, build_course):
    await build_course(teacher)
    board = (await client.get("/dashboard/admin", headers=admin)).json()
    assert board["total_users"] == 3
    assert board["users_by_role"] == {"admin": 1, "teacher": 1, "student": 1}
    assert board["total_courses"] == 1
    assert board["courses_by_status"]["published"] == 1
    assert len(board["recent_users"]) == 3


async def test_dashboards_are_role_gated(client, student, teacher):
    assert (await client.get("/dashboard/admin", headers=teacher)).status_code == 403
    assert (await client.get("/dashboard/teacher", headers=student)).status_code == 403
    assert (await client.get("/dashboard/student", headers=teacher)).status_code == 403
