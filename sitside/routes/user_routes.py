from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from sitside.auth.dependencies import require_student, require_student_or_parent
from sitside.database import get_db
from sitside.models.user import User
from sitside.schemas import PaginationResponse, StudentResponse, paginate
from sitside.services import users as user_service

router = APIRouter(tags=['users'])


class AvailabilityRequest(BaseModel):
    availability: dict[str, dict[str, bool]]


class CertificationRequest(BaseModel):
    certification: str


class StudentListResponse(BaseModel):
    students: list[StudentResponse]
    pagination: PaginationResponse


class StudentSearchResponse(BaseModel):
    students: list[StudentResponse]


class StudentDetailResponse(BaseModel):
    student: StudentResponse


class AvailabilityResponse(BaseModel):
    availability: dict[str, dict[str, bool]]
    message: str


class CertificationsResponse(BaseModel):
    certifications: list[str]
    message: str


@router.get('/students', response_model=StudentListResponse)
def list_students(
    location: str | None = Query(default=None),
    max_rate: float | None = Query(default=None, ge=0),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    current_user: User = Depends(require_student_or_parent),
    db: Session = Depends(get_db),
):
    students, total = user_service.list_students(
        db, location=location, max_rate=max_rate, page=page, limit=limit
    )
    return StudentListResponse(
        students=[StudentResponse.model_validate(student) for student in students],
        pagination=paginate(page, limit, total),
    )


@router.get('/search', response_model=StudentSearchResponse)
def search_students(
    q: str | None = Query(default=None),
    location: str | None = Query(default=None),
    max_rate: float | None = Query(default=None, ge=0),
    current_user: User = Depends(require_student_or_parent),
    db: Session = Depends(get_db),
):
    students = user_service.search_students(db, q=q, location=location, max_rate=max_rate)
    return StudentSearchResponse(students=[StudentResponse.model_validate(student) for student in students])


@router.get('/students/{student_id}', response_model=StudentDetailResponse)
def get_student(
    student_id: int,
    current_user: User = Depends(require_student_or_parent),
    db: Session = Depends(get_db),
):
    student = user_service.get_student(db, student_id)
    return StudentDetailResponse(student=StudentResponse.model_validate(student))


@router.put('/availability', response_model=AvailabilityResponse)
def update_availability(
    data: AvailabilityRequest,
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    availability = user_service.update_availability(db, current_user, data.availability)
    return AvailabilityResponse(availability=availability, message='Availability updated successfully')


@router.post('/certifications', response_model=CertificationsResponse)
def add_certification(
    data: CertificationRequest,
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    certifications = user_service.add_certification(db, current_user, data.certification)
    return CertificationsResponse(certifications=certifications, message='Certification added successfully')


@router.delete('/certifications/{certification}', response_model=CertificationsResponse)
def remove_certification(
    certification: str,
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    certifications = user_service.remove_certification(db, current_user, certification)
    return CertificationsResponse(certifications=certifications, message='Certification removed successfully')
