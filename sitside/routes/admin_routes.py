from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from sitside.auth.dependencies import require_admin
from sitside.database import get_db
from sitside.models.user import User
from sitside.schemas import BookingResponse, PaginationResponse, UserResponse, paginate
from sitside.services import admin as admin_service
from sitside.services import bookings as booking_service

router = APIRouter(tags=['admin'])


class ResolveDisputeRequest(BaseModel):
    resolution: str
    admin_notes: str | None = None


class RecentUserResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    role: str
    created_at: datetime

    class Config:
        from_attributes = True


class DashboardStats(BaseModel):
    total_users: int
    total_students: int
    total_parents: int
    total_admins: int
    total_bookings: int
    pending_bookings: int
    completed_bookings: int
    users_by_role: dict[str, int]
    bookings_by_status: dict[str, int]


class DashboardResponse(BaseModel):
    stats: DashboardStats
    recent_users: list[RecentUserResponse]
    recent_bookings: list[BookingResponse]


class UserListResponse(BaseModel):
    users: list[UserResponse]
    pagination: PaginationResponse


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]
    pagination: PaginationResponse


class UserSummary(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    is_active: bool


class UserActionResponse(BaseModel):
    message: str
    user: UserSummary


class BookingActionResponse(BaseModel):
    message: str
    booking: BookingResponse


@router.get('/dashboard', response_model=DashboardResponse)
def dashboard(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    stats = admin_service.dashboard_stats(db)
    return DashboardResponse(
        stats=DashboardStats(**stats['stats']),
        recent_users=[RecentUserResponse.model_validate(user) for user in stats['recent_users']],
        recent_bookings=[BookingResponse.model_validate(booking) for booking in stats['recent_bookings']],
    )


@router.get('/users', response_model=UserListResponse)
def list_users(
    role: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    users, total = admin_service.list_users(db, role=role, page=page, limit=limit)
    return UserListResponse(
        users=[UserResponse.model_validate(user) for user in users],
        pagination=paginate(page, limit, total),
    )


@router.put('/users/{user_id}/toggle', response_model=UserActionResponse)
def toggle_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = admin_service.toggle_user(db, current_user, user_id)
    return UserActionResponse(
        message=f"User {'activated' if user.is_active else 'deactivated'} successfully",
        user=UserSummary.model_validate(user, from_attributes=True),
    )


@router.put('/users/{user_id}/verify', response_model=UserActionResponse)
def verify_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = admin_service.verify_student(db, current_user, user_id)
    return UserActionResponse(
        message='Student verified successfully',
        user=UserSummary.model_validate(user, from_attributes=True),
    )


@router.delete('/users/{user_id}', response_model=UserActionResponse)
def delete_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    summary, deleted = admin_service.delete_user(db, current_user, user_id)
    message = 'User deleted successfully' if deleted else 'User has bookings and was deactivated instead'
    return UserActionResponse(message=message, user=UserSummary(**summary))


@router.get('/bookings', response_model=BookingListResponse)
def list_bookings(
    status: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    bookings, total = admin_service.list_bookings(db, status=status, page=page, limit=limit)
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(booking) for booking in bookings],
        pagination=paginate(page, limit, total),
    )


@router.put('/bookings/{booking_id}/dispute', response_model=BookingActionResponse)
def resolve_dispute(
    booking_id: int,
    data: ResolveDisputeRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    booking = booking_service.resolve_dispute(db, booking_id, current_user, data.resolution, data.admin_notes)
    return BookingActionResponse(message='Dispute resolved', booking=BookingResponse.model_validate(booking))
