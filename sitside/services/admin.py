"""Admin back-office: dashboard counts and account moderation."""

import logging

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from sitside.core import config, errors
from sitside.database import run_with_write_retry
from sitside.models.booking import BOOKING_STATUSES, Booking
from sitside.models.user import ROLE_STUDENT, ROLES, User

logger = logging.getLogger(__name__)


def dashboard_stats(db: Session, recent_limit: int | None = None) -> dict:
    recent_limit = recent_limit or config.RECENT_ITEMS_LIMIT

    users_by_role = {role: 0 for role in ROLES}
    for role, count in db.query(User.role, func.count(User.id)).group_by(User.role):
        users_by_role[role] = count

    bookings_by_status = {status: 0 for status in BOOKING_STATUSES}
    for status, count in db.query(Booking.status, func.count(Booking.id)).group_by(Booking.status):
        bookings_by_status[status] = count

    recent_users = (
        db.query(User).order_by(User.created_at.desc(), User.id.desc()).limit(recent_limit).all()
    )
    recent_bookings = (
        db.query(Booking).order_by(Booking.created_at.desc(), Booking.id.desc()).limit(recent_limit).all()
    )

    return {
        'stats': {
            'total_users': sum(users_by_role.values()),
            'total_students': users_by_role['student'],
            'total_parents': users_by_role['parent'],
            'total_admins': users_by_role['admin'],
            'total_bookings': sum(bookings_by_status.values()),
            'pending_bookings': bookings_by_status['pending'],
            'completed_bookings': bookings_by_status['completed'],
            'users_by_role': users_by_role,
            'bookings_by_status': bookings_by_status,
        },
        'recent_users': recent_users,
        'recent_bookings': recent_bookings,
    }


def list_users(
    db: Session,
    *,
    role: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[User], int]:
    query = db.query(User)
    if role:
        if role not in ROLES:
            raise errors.ValidationError('Invalid user type')
        query = query.filter(User.role == role)

    total = query.count()
    users = query.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return users, total


def list_bookings(
    db: Session,
    *,
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Booking], int]:
    query = db.query(Booking)
    if status:
        if status not in BOOKING_STATUSES:
            raise errors.ValidationError(f'Invalid booking status: {status}')
        query = query.filter(Booking.status == status)

    total = query.count()
    bookings = (
        query.order_by(Booking.created_at.desc(), Booking.id.desc()).offset((page - 1) * limit).limit(limit).all()
    )
    return bookings, total


def toggle_user(db: Session, admin: User, user_id: int) -> User:
    if user_id == admin.id:
        raise errors.AuthorizationError('Cannot deactivate your own account')

    def apply(session: Session) -> User:
        user = session.get(User, user_id)
        if user is None:
            raise errors.NotFoundError('User not found')
        user.is_active = not user.is_active
        return user

    user = run_with_write_retry(db, apply)
    db.refresh(user)
    logger.info('Admin %s %s user %s', admin.id, 'activated' if user.is_active else 'deactivated', user.id)
    return user


def verify_student(db: Session, admin: User, user_id: int) -> User:
    def apply(session: Session) -> User:
        user = session.get(User, user_id)
        if user is None:
            raise errors.NotFoundError('User not found')
        if user.role != ROLE_STUDENT:
            raise errors.ValidationError('Only students can be verified')
        user.is_verified = True
        user.background_check_status = 'approved'
        return user

    user = run_with_write_retry(db, apply)
    db.refresh(user)
    logger.info('Admin %s verified student %s', admin.id, user.id)
    return user


def _summary(user: User) -> dict:
    return {
        'id': user.id,
        'first_name': user.first_name,
        'last_name': user.last_name,
        'email': user.email,
        'is_active': user.is_active,
    }


def delete_user(db: Session, admin: User, user_id: int) -> tuple[dict, bool]:
    """Remove a user, or deactivate them when bookings still reference them.

    Returns a summary of the user and whether the row was actually deleted.
    """
    user = db.get(User, user_id)
    if user is None:
        raise errors.NotFoundError('User not found')
    if user.is_admin:
        raise errors.AuthorizationError('Cannot delete admin user')

    has_bookings = db.query(Booking.id).filter(
        or_(Booking.student_id == user_id, Booking.parent_id == user_id)
    ).first() is not None

    if has_bookings:
        if user.is_active:
            user = toggle_user(db, admin, user_id)
        logger.info('Admin %s deactivated user %s instead of deleting (has bookings)', admin.id, user_id)
        return _summary(user), False

    summary = _summary(user)
    db.delete(user)
    db.commit()
    logger.info('Admin %s deleted user %s', admin.id, user_id)
    return summary, True
