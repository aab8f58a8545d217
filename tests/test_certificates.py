import re
from datetime import datetime

from conftest import all_lesson_ids
from repos import certificates as certificate_repo
from services import certificate_service


async def _complete_course(client, student, course):
    enrollment = (await client.post("/enrollments", json={"course_id": course["id"]}, headers=student)).json()
    for lesson_id in all_lesson_ids(course):
        await client.post(f"/enrollments/{enrollment['id']}/lessons/{lesson_id}/complete", headers=student)
    return enrollment


async def test_certificate_is_issued_once(client, teacher, student, build_course):
    course = await build_course(teacher, title="Rust for Pythonistas")
    await _complete_course(client, student, course)

    first = await client.post("/certificates", json={"course_id": course["id"]}, headers=student)
    assert first.status_code == 201
    cert = first.json()
    assert re.fullmatch(r"CERT-[0-9A-F]{8}", cert["certificate_number"])
    assert cert["student_name"] == "Sam Student"
    assert cert["instructor_name"] == "Ada Teacher"
    assert cert["course_name"] == "Rust for Pythonistas"
    assert cert["workload"] == 40

    second = await client.post("/certificates", json={"course_id": course["id"]}, headers=student)
    assert second.status_code == 200
    assert second.json()["id"] == cert["id"]


async def test_course_workload_is_used(client, teacher, student, build_course):
    course = await build_course(teacher, workload=8)
    await _complete_course(client, student, course)
    cert = (await client.post("/certificates", json={"course_id": course["id"]}, headers=student)).json()
    assert cert["workload"] == 8


async def test_refused_below_full_progress(client, teacher, student, build_course):
    course = await build_course(teacher)
    enrollment = (await client.post("/enrollments", json={"course_id": course["id"]}, headers=student)).json()
    lesson_id = all_lesson_ids(course)[0]
    await client.post(f"/enrollments/{enrollment['id']}/lessons/{lesson_id}/complete", headers=student)

    resp = await client.post("/certificates", json={"course_id": course["id"]}, headers=student)
    assert resp.status_code == 400
    assert "33%" in resp.json()["message"]


async def test_refused_without_enrollment(client, teacher, student, build_course):
    course = await build_course(teacher)
    resp = await client.post("/certificates", json={"course_id": course["id"]}, headers=student)
    assert resp.status_code == 400


async def test_refused_when_course_has_no_certificate(client, teacher, student, build_course):
    course = await build_course(teacher, certificate_available=False)
    await _complete_course(client, student, course)
    resp = await client.post("/certificates", json={"course_id": course["id"]}, headers=student)
    assert resp.status_code == 400


async def test_downloads_and_verification(client, teacher, student, make_user, build_course):
    course = await build_course(teacher)
    await _complete_course(client, student, course)
    cert = (await client.post("/certificates", json={"course_id": course["id"]}, headers=student)).json()

    html = await client.get(f"/certificates/{cert['id']}/html", headers=student)
    assert html.status_code == 200
    assert "text/html" in html.headers["content-type"]
    assert cert["certificate_number"] in html.text
    assert "Sam Student" in html.text

    pdf = await client.get(f"/certificates/{cert['id']}/pdf", headers=student)
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.content.startswith(b"%PDF")
    assert f'{cert["certificate_number"]}.pdf' in pdf.headers["content-disposition"]

    verified = (await client.get(f"/certificates/verify/{cert['certificate_number'].lower()}")).json()
    assert verified["valid"] is True
    assert verified["student_name"] == "Sam Student"
    assert (await client.get("/certificates/verify/CERT-00000000")).status_code == 404

    mine = (await client.get("/certificates/me", headers=student)).json()
    assert [c["id"] for c in mine] == [cert["id"]]
    by_course = (await client.get(f"/certificates/courses/{course['id']}", headers=student)).json()
    assert by_course["id"] == cert["id"]

    stranger = await make_user("stranger@example.com")
    assert (await client.get(f"/certificates/{cert['id']}", headers=stranger)).status_code == 403


def test_insert_race_loser_gets_the_winner(db):
    base = {
        "user_id": "u1",
        "course_id": "c1",
        "course_name": "Course",
        "student_name": "Student",
        "instructor_name": "Instructor",
        "completion_date": datetime(2024, 5, 1),
        "workload": 40,
    }
    winner, created = certificate_repo.insert_certificate(db, {**base, "certificate_number": "CERT-AAAAAAAA"})
    assert created
    loser, created = certificate_repo.insert_certificate(db, {**base, "certificate_number": "CERT-BBBBBBBB"})
    assert not created
    assert loser["id"] == winner["id"]
    assert db.certificates.count_documents({}) == 1


def test_html_escapes_names():
    cert = {
        "certificate_number": "CERT-12345678",
        "student_name": "<script>alert(1)</script>",
        "course_name": "Course",
        "instructor_name": "Instructor",
        "workload": 10,
        "completion_date": "2024-05-01T10:00:00",
    }
    html = certificate_service.render_html(cert)
    assert "<script>" not in html
    assert "2024-05-01" in html


def test_certificate_numbers_look_right():
    numbers = {certificate_service.new_certificate_number() for _ in range(50)}
    assert len(numbers) == 50
    assert all(re.fullmatch(r"CERT-[0-9A-F]{8}", n) for n in numbers)
