from pydantic import BaseModel, constr
from datetime import datetime

class CertificateRequest(BaseModel):
    course_id: constr(strip_whitespace=True, min_length=1)

class CertificateOut(BaseModel):
    id: str
    user_id: str
    course_id: str
    course_name: str
    student_name: str
    instructor_name: str
    completion_date: datetime
    certificate_number: str
    workload: int

class CertificateVerification(BaseModel):
    valid: bool
    certificate_number: str
    student_name: str
    course_name: str
    completion_date: datetime
