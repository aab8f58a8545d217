# services/certificate_service.py
import io
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Tuple

from fastapi.concurrency import run_in_threadpool
from jinja2 import Environment, FileSystemLoader, select_autoescape
from pymongo.database import Database
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfgen import canvas

from config import settings
from errors import NotFoundError
from repos import certificates as repo
from repos import courses as course_repo
from repos import enrollments as enrollment_repo
from services import curriculum
from services.progress import compute_percent

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)

BRAND_BLUE = colors.HexColor("#1d4ed8")
PAGE_MARGIN = 20  # points


def new_certificate_number() -> str:
    return f"CERT-{uuid.uuid4().hex[:8].upper()}"


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


# ---------------------------
# Issuance
# ---------------------------

async def issue_certificate(db: Database, *, user: Dict[str, Any], course_id: str) -> Tuple[Dict[str, Any], bool]:
    """
    Return the user's certificate for the course, creating it the first time
    the course is fully completed. Returns (certificate, created).
    """
    existing = await run_in_threadpool(repo.find_for_user_course, db, user["id"], course_id)
    if existing:
        return existing, False

    course = await run_in_threadpool(course_repo.require_course, db, course_id)
    if not course.get("certificate_available", True):
        raise ValueError("This course does not issue certificates")

    enrollment = await run_in_threadpool(enrollment_repo.find_for_user_course, db, user["id"], course_id)
    if not enrollment or enrollment["status"] == "cancelled":
        raise ValueError("Not enrolled in this course")

    percent = compute_percent(enrollment["progress"].get("completed_lessons", []),
                              curriculum.lesson_ids(course.get("modules", [])))
    if percent < 100:
        raise ValueError(f"Course not completed yet ({percent}%)")

    doc = {
        "user_id": user["id"],
        "course_id": course_id,
        "course_name": course["title"],
        "student_name": user.get("name") or "Student",
        "instructor_name": course.get("instructor_name") or "Instructor",
        "completion_date": enrollment.get("completed_at") or datetime.utcnow(),
        "certificate_number": new_certificate_number(),
        "workload": int(course.get("workload") or settings.CERTIFICATE_DEFAULT_WORKLOAD),
        "created_at": datetime.utcnow(),
    }
    cert, created = await run_in_threadpool(repo.insert_certificate, db, doc)
    if created:
        logger.info(f"Certificate {cert['certificate_number']} issued to {user['id']} for course {course_id}")
    return cert, created


async def get_certificate(db: Database, certificate_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    cert = await run_in_threadpool(repo.get_certificate, db, certificate_id)
    if not cert:
        raise NotFoundError("Certificate not found")
    if cert["user_id"] != user["id"] and user["role"] != "admin":
        raise PermissionError("This certificate belongs to another user")
    return cert


async def get_for_course(db: Database, *, user: Dict[str, Any], course_id: str) -> Dict[str, Any]:
    cert = await run_in_threadpool(repo.find_for_user_course, db, user["id"], course_id)
    if not cert:
        raise NotFoundError("Certificate not found")
    return cert


async def list_mine(db: Database, *, user: Dict[str, Any]) -> List[Dict[str, Any]]:
    return await run_in_threadpool(repo.list_for_user, db, user["id"])


async def verify(db: Database, number: str) -> Dict[str, Any]:
    cert = await run_in_threadpool(repo.get_by_number, db, number)
    if not cert:
        raise NotFoundError("Certificate not found")
    return {
        "valid": True,
        "certificate_number": cert["certificate_number"],
        "student_name": cert["student_name"],
        "course_name": cert["course_name"],
        "completion_date": cert["completion_date"],
    }


# ---------------------------
# Rendering
# ---------------------------

def render_html(certificate: Dict[str, Any]) -> str:
    completion = _as_datetime(certificate["completion_date"])
    return _env.get_template("certificate.html").render(
        certificate=certificate,
        completion_date=completion.strftime("%Y-%m-%d"),
    )


def render_pdf(certificate: Dict[str, Any]) -> bytes:
    """A4 landscape certificate, same layout as the HTML version."""
    buffer = io.BytesIO()
    width, height = landscape(A4)
    pdf = canvas.Canvas(buffer, pagesize=(width, height))
    pdf.setTitle(f"Certificate {certificate['certificate_number']}")

    # frame
    pdf.setStrokeColor(BRAND_BLUE)
    pdf.setLineWidth(14)
    pdf.rect(PAGE_MARGIN + 7, PAGE_MARGIN + 7, width - 2 * PAGE_MARGIN - 14, height - 2 * PAGE_MARGIN - 14)

    center = width / 2
    pdf.setFillColor(BRAND_BLUE)
    pdf.setFont("Helvetica-Bold", 36)
    pdf.drawCentredString(center, height - 120, "Certificate of Completion")

    pdf.setFillColor(colors.black)
    pdf.setFont("Helvetica", 18)
    pdf.drawCentredString(center, height - 180, "This certifies that")

    pdf.setFillColor(BRAND_BLUE)
    pdf.setFont("Helvetica-Bold", 28)
    pdf.drawCentredString(center, height - 225, certificate["student_name"])

    pdf.setFillColor(colors.black)
    pdf.setFont("Helvetica", 18)
    pdf.drawCentredString(center, height - 265, "has successfully completed the course")
    pdf.setFont("Helvetica-Bold", 24)
    pdf.drawCentredString(center, height - 305, certificate["course_name"])
    pdf.setFont("Helvetica", 16)
    pdf.drawCentredString(
        center, height - 340,
        f"with a workload of {certificate['workload']} hours, taught by {certificate['instructor_name']}",
    )

    # signature line
    pdf.setLineWidth(1)
    pdf.setStrokeColor(colors.black)
    pdf.line(center - 120, 150, center + 120, 150)
    pdf.setFont("Helvetica", 14)
    pdf.drawCentredString(center, 132, certificate["instructor_name"])
    pdf.drawCentredString(center, 114, "Instructor")

    completion = _as_datetime(certificate["completion_date"])
    pdf.setFillColor(colors.HexColor("#666666"))
    pdf.setFont("Helvetica", 11)
    right = width - PAGE_MARGIN - 30
    pdf.drawRightString(right, PAGE_MARGIN + 45, f"Completion date: {completion.strftime('%Y-%m-%d')}")
    pdf.drawRightString(right, PAGE_MARGIN + 30, f"Certificate No.: {certificate['certificate_number']}")

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
