from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CertificateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    certificate_id: str
    student_id: str
    course_id: str
    student_name: str
    course_title: str
    instructor_name: str
    completion_date: datetime
    date_issued: datetime
    total_lessons: int
    completed_lessons: int
    completion_percentage: int
    platform_name: str


class CertificateVerificationOut(BaseModel):
    valid: bool
    certificate: CertificateOut | None = None
    verified_at: datetime


class CertificateIssueIn(BaseModel):
    student_id: str
    course_id: str
    student_name: str
    course_title: str
    instructor_name: str
    completion_date: datetime
    total_lessons: int = Field(..., gt=0)
    completed_lessons: int = Field(..., ge=0)


class RegenerateHashIn(BaseModel):
    actor_id: str
    reason: str = Field(..., min_length=3)
