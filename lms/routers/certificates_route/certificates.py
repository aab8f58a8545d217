from fastapi import APIRouter, Depends, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse
from pymongo.database import Database
from typing import List
from deps import get_db
from auth.dependencies import get_current_user
from services import certificate_service
from schemas.certificate_schema import CertificateOut, CertificateRequest, CertificateVerification

router = APIRouter(prefix="/certificates", tags=["certificates"])


def _attachment(certificate: dict, ext: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{certificate["certificate_number"]}.{ext}"'}


@router.post("", response_model=CertificateOut, status_code=status.HTTP_201_CREATED)
async def issue_certificate(payload: CertificateRequest, response: Response,
                            db: Database = Depends(get_db), user=Depends(get_current_user)):
    """
    Issue the certificate for a fully completed course. Asking again returns
    the same certificate with a 200.
    """
    cert, created = await certificate_service.issue_certificate(db, user=user, course_id=payload.course_id)
    if not created:
        response.status_code = status.HTTP_200_OK
    return cert

@router.get("/me", response_model=List[CertificateOut])
async def my_certificates(db: Database = Depends(get_db), user=Depends(get_current_user)):
    return await certificate_service.list_mine(db, user=user)

# public: anyone holding the number can check it
@router.get("/verify/{certificate_number}", response_model=CertificateVerification)
async def verify_certificate(certificate_number: str, db: Database = Depends(get_db)):
    return await certificate_service.verify(db, certificate_number)

@router.get("/courses/{course_id}", response_model=CertificateOut)
async def certificate_for_course(course_id: str, db: Database = Depends(get_db), user=Depends(get_current_user)):
    return await certificate_service.get_for_course(db, user=user, course_id=course_id)

@router.get("/{certificate_id}", response_model=CertificateOut)
async def get_certificate(certificate_id: str, db: Database = Depends(get_db), user=Depends(get_current_user)):
    return await certificate_service.get_certificate(db, certificate_id, user)

@router.get("/{certificate_id}/html", response_class=HTMLResponse)
async def certificate_html(certificate_id: str, db: Database = Depends(get_db), user=Depends(get_current_user)):
    cert = await certificate_service.get_certificate(db, certificate_id, user)
    return HTMLResponse(certificate_service.render_html(cert), headers=_attachment(cert, "html"))

@router.get("/{certificate_id}/pdf")
async def certificate_pdf(certificate_id: str, db: Database = Depends(get_db), user=Depends(get_current_user)):
    cert = await certificate_service.get_certificate(db, certificate_id, user)
    # reportlab is CPU bound
    pdf = await run_in_threadpool(certificate_service.render_pdf, cert)
    return Response(content=pdf, media_type="application/pdf", headers=_attachment(cert, "pdf"))
