from datetime import date, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, StrictInt, field_validator
from sqlalchemy.orm import Session

from sitside.auth.dependencies import get_current_user, require_student_or_parent
from sitside.database import get_db
from sitside.models.user import User
from sitside.schemas import BookingResponse, PaginationResponse, paginate
from sitside.services import bookings as booking_service
from sitside.services import reviews as review_service

router = APIRouter(tags=['bookings'])


class CreateBookingRequest(BaseModel):
    student_id: int
    date: date
    start_time: time
    end_time: time
    number_of_children: int = Field(ge=booking_service.MIN_CHILDREN, le=booking_service.MAX_CHILDREN)
    children_ages: list[int] = Field(default_factory=list)
    special_instructions: str | None = Field(
        default=None, max_length=booking_service.MAX_SPECIAL_INSTRUCTIONS_LENGTH
    )
    emergency_contact: str

    @field_validator('emergency_contact')
    @classmethod
    def validate_emergency_contact(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Emergency contact is required.')
        return normalized


class UpdateStatusRequest(BaseModel):
    status: str
    reason: str | None = None


class DisputeRequest(BaseModel):
    reason: str


class ReviewRequest(BaseModel):
    rating: StrictInt
    comment: str | None = None


class BookingEnvelope(BaseModel):
    booking: BookingResponse
    message: str | None = None


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]
    pagination: PaginationResponse


@router.post('', response_model=BookingEnvelope, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: CreateBookingRequest,
    current_user: User = Depends(require_student_or_parent),
    db: Session = Depends(get_db),
):
    booking = booking_service.create_booking(
        db,
        current_user,
        student_id=data.student_id,
        booking_date=data.date,
        start_time=data.start_time,
        end_time=data.end_time,
        number_of_children=data.number_of_children,
        children_ages=data.children_ages,
        special_instructions=data.special_instructions,
        emergency_contact=data.emergency_contact,
    )
    return BookingEnvelope(
        booking=BookingResponse.model_validate(booking),
        message='Booking request created successfully',
    )


@router.get('/my-bookings', response_model=BookingListResponse)
def list_my_bookings(
    status: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    current_user: User = Depends(require_student_or_parent),
    db: Session = Depends(get_db),
):
    bookings, total = booking_service.list_bookings_for(
        db, current_user, status=status, page=page, limit=limit
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(booking) for booking in bookings],
        pagination=paginate(page, limit, total),
    )


@router.get('/{booking_id}', response_model=BookingEnvelope)
def get_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    booking = booking_service.get_booking_for(db, booking_id, current_user)
    return BookingEnvelope(booking=BookingResponse.model_validate(booking))


@router.put('/{booking_id}/status', response_model=BookingEnvelope)
def update_booking_status(
    booking_id: int,
    data: UpdateStatusRequest,
    current_user: User = Depends(require_student_or_parent),
    db: Session = Depends(get_db),
):
    booking = booking_service.transition_status(db, booking_id, current_user, data.status, data.reason)
    return BookingEnvelope(
        booking=BookingResponse.model_validate(booking),
        message=f'Booking {booking.status} successfully',
    )


@router.put('/{booking_id}/complete', response_model=BookingEnvelope)
def complete_booking(
    booking_id: int,
    current_user: User = Depends(require_student_or_parent),
    db: Session = Depends(get_db),
):
    booking = booking_service.complete_booking(db, booking_id, current_user)
    return BookingEnvelope(booking=BookingResponse.model_validate(booking), message='Booking marked as completed')


@router.post('/{booking_id}/dispute', response_model=BookingEnvelope)
def open_dispute(
    booking_id: int,
    data: DisputeRequest,
    current_user: User = Depends(require_student_or_parent),
    db: Session = Depends(get_db),
):
    booking = booking_service.open_dispute(db, booking_id, current_user, data.reason)
    return BookingEnvelope(booking=BookingResponse.model_validate(booking), message='Dispute opened')


@router.post('/{booking_id}/review', response_model=BookingEnvelope)
def submit_review(
    booking_id: int,
    data: ReviewRequest,
    current_user: User = Depends(require_student_or_parent),
    db: Session = Depends(get_db),
):
    booking = review_service.submit_review(db, booking_id, current_user, data.rating, data.comment)
    return BookingEnvelope(booking=BookingResponse.model_validate(booking), message='Review added successfully')
