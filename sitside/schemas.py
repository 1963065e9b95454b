"""Response models shared by the route modules."""

from datetime import date, datetime, time

from pydantic import BaseModel


class UserResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone: str
    role: str
    grade: int | None = None
    school: str | None = None
    bio: str | None = None
    hourly_rate: float | None = None
    experience: str | None = None
    certifications: list[str] | None = None
    location: str | None = None
    availability: dict[str, dict[str, bool]] | None = None
    emergency_contact: str | None = None
    profile_image: str | None = None
    rating: float
    review_count: int
    is_verified: bool
    is_active: bool
    background_check_status: str
    created_at: datetime

    class Config:
        from_attributes = True


class StudentResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    grade: int | None = None
    school: str | None = None
    bio: str | None = None
    hourly_rate: float | None = None
    experience: str | None = None
    certifications: list[str] | None = None
    location: str | None = None
    availability: dict[str, dict[str, bool]] | None = None
    profile_image: str | None = None
    rating: float
    review_count: int
    is_verified: bool

    class Config:
        from_attributes = True


class ParticipantResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    rating: float
    profile_image: str | None = None

    class Config:
        from_attributes = True


class ReviewResponse(BaseModel):
    rating: int
    comment: str
    created_at: datetime | None = None


class BookingResponse(BaseModel):
    id: int
    student: ParticipantResponse
    parent: ParticipantResponse
    date: date
    start_time: time
    end_time: time
    number_of_children: int
    children_ages: list[int]
    special_instructions: str | None = None
    emergency_contact: str
    hourly_rate: float
    total_amount: float
    status: str
    payment_status: str
    student_review: ReviewResponse | None = None
    parent_review: ReviewResponse | None = None
    dispute_reason: str | None = None
    dispute_resolution: str | None = None
    admin_notes: str | None = None
    resolved_by: int | None = None
    resolved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


def paginate(page: int, limit: int, total: int) -> PaginationResponse:
    return PaginationResponse(page=page, limit=limit, total=total, pages=(total + limit - 1) // limit)
