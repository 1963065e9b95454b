"""Booking lifecycle: creation, status transitions and disputes.

Every status change goes through :func:`transition_status`, which checks the
actor against :data:`TRANSITIONS`. Illegal moves raise ``ConflictError``,
moves by the wrong party raise ``AuthorizationError``.
"""

import logging
from datetime import date, time

from sqlalchemy.orm import Session

from sitside.core import errors
from sitside.database import run_with_write_retry
from sitside.models.booking import (
    BOOKING_STATUSES,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_DISPUTED,
    STATUS_PENDING,
    STATUS_REJECTED,
    Booking,
    compute_total_amount,
)
from sitside.models.user import ROLE_PARENT, ROLE_STUDENT, User, utcnow

logger = logging.getLogger(__name__)

MIN_CHILDREN = 1
MAX_CHILDREN = 10
MAX_CHILD_AGE = 18
MAX_SPECIAL_INSTRUCTIONS_LENGTH = 1000

PARTY_STUDENT = 'student'
PARTY_PARENT = 'parent'
BOTH_PARTIES = frozenset({PARTY_STUDENT, PARTY_PARENT})

# (current status, target status) -> parties allowed to make the move.
TRANSITIONS = {
    (STATUS_PENDING, STATUS_CONFIRMED): frozenset({PARTY_STUDENT}),
    (STATUS_PENDING, STATUS_REJECTED): frozenset({PARTY_STUDENT}),
    (STATUS_PENDING, STATUS_CANCELLED): frozenset({PARTY_PARENT}),
    (STATUS_CONFIRMED, STATUS_CANCELLED): frozenset({PARTY_PARENT}),
    (STATUS_CONFIRMED, STATUS_COMPLETED): frozenset({PARTY_PARENT}),
    (STATUS_CONFIRMED, STATUS_DISPUTED): BOTH_PARTIES,
    (STATUS_COMPLETED, STATUS_DISPUTED): BOTH_PARTIES,
}

# Lifecycle moves out of these are closed; a completed sitting can still be disputed.
TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_CANCELLED})


def party_of(booking: Booking, actor: User) -> str | None:
    if actor.role == ROLE_STUDENT and booking.student_id == actor.id:
        return PARTY_STUDENT
    if actor.role == ROLE_PARENT and booking.parent_id == actor.id:
        return PARTY_PARENT
    return None


def check_transition(booking: Booking, party: str, target: str) -> None:
    """Raise unless ``party`` may move ``booking`` to ``target``."""
    if target not in BOOKING_STATUSES:
        raise errors.ValidationError(f'Invalid booking status: {target}')

    current = booking.status
    if current in TERMINAL_STATUSES and target != STATUS_DISPUTED:
        raise errors.ConflictError(f'Cannot update {current} bookings')

    allowed = TRANSITIONS.get((current, target))
    if allowed is None:
        raise errors.ConflictError(f'Cannot move a {current} booking to {target}')

    if party not in allowed:
        allowed_party = ' or '.join(sorted(allowed))
        raise errors.AuthorizationError(f'Only the {allowed_party} can mark this booking {target}')


def _validate_children(number_of_children: int, children_ages: list[int] | None) -> list[int]:
    if number_of_children < MIN_CHILDREN or number_of_children > MAX_CHILDREN:
        raise errors.ValidationError(
            f'Number of children must be between {MIN_CHILDREN} and {MAX_CHILDREN}.'
        )
    ages = list(children_ages or [])
    for age in ages:
        if age < 0 or age > MAX_CHILD_AGE:
            raise errors.ValidationError(f'Children ages must be between 0 and {MAX_CHILD_AGE}.')
    return ages


def create_booking(
    db: Session,
    parent: User,
    *,
    student_id: int,
    booking_date: date,
    start_time: time,
    end_time: time,
    number_of_children: int,
    emergency_contact: str,
    children_ages: list[int] | None = None,
    special_instructions: str | None = None,
) -> Booking:
    if parent.role != ROLE_PARENT:
        raise errors.AuthorizationError('Only parents can create bookings')

    emergency_contact = (emergency_contact or '').strip()
    if not emergency_contact:
        raise errors.ValidationError('Emergency contact is required.')

    special_instructions = (special_instructions or '').strip()
    if len(special_instructions) > MAX_SPECIAL_INSTRUCTIONS_LENGTH:
        raise errors.ValidationError(
            f'Special instructions must be {MAX_SPECIAL_INSTRUCTIONS_LENGTH} characters or fewer.'
        )

    ages = _validate_children(number_of_children, children_ages)

    student = db.query(User).filter(
        User.id == student_id,
        User.role == ROLE_STUDENT,
        User.is_active.is_(True),
    ).first()
    if student is None:
        raise errors.NotFoundError('Student not found')
    if not student.is_verified:
        raise errors.ValidationError('Student is not verified')
    if student.hourly_rate is None:
        raise errors.ValidationError('Student has no hourly rate')

    # Fail before touching the session if the times are unusable.
    compute_total_amount(start_time, end_time, student.hourly_rate)

    booking = Booking(
        student_id=student.id,
        parent_id=parent.id,
        date=booking_date,
        start_time=start_time,
        end_time=end_time,
        hourly_rate=student.hourly_rate,
        number_of_children=number_of_children,
        children_ages=ages,
        special_instructions=special_instructions,
        emergency_contact=emergency_contact,
        status=STATUS_PENDING,
        payment_status='pending',
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)

    logger.info('Booking %s created by parent %s for student %s', booking.id, parent.id, student.id)
    return booking


def get_booking(db: Session, booking_id: int) -> Booking:
    booking = db.get(Booking, booking_id)
    if booking is None:
        raise errors.NotFoundError('Booking not found')
    return booking


def get_booking_for(db: Session, booking_id: int, actor: User) -> Booking:
    booking = get_booking(db, booking_id)
    if not actor.is_admin and party_of(booking, actor) is None:
        raise errors.AuthorizationError('Access denied')
    return booking


def list_bookings_for(
    db: Session,
    actor: User,
    *,
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Booking], int]:
    query = db.query(Booking)
    if actor.role == ROLE_STUDENT:
        query = query.filter(Booking.student_id == actor.id)
    elif actor.role == ROLE_PARENT:
        query = query.filter(Booking.parent_id == actor.id)
    else:
        raise errors.AuthorizationError('Only students and parents have bookings')

    if status:
        if status not in BOOKING_STATUSES:
            raise errors.ValidationError(f'Invalid booking status: {status}')
        query = query.filter(Booking.status == status)

    total = query.count()
    bookings = (
        query.order_by(Booking.created_at.desc(), Booking.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return bookings, total


def transition_status(
    db: Session,
    booking_id: int,
    actor: User,
    target: str,
    reason: str | None = None,
) -> Booking:
    target = (target or '').strip().lower()
    if not target:
        raise errors.ValidationError('Status is required')
    reason = (reason or '').strip() or None
    if reason and target != STATUS_DISPUTED:
        raise errors.ValidationError('A reason can only be given when opening a dispute')

    def apply(session: Session) -> Booking:
        booking = get_booking(session, booking_id)
        party = party_of(booking, actor)
        if party is None:
            raise errors.AuthorizationError('Access denied')

        check_transition(booking, party, target)

        if target == STATUS_DISPUTED:
            if not reason:
                raise errors.ValidationError('A reason is required to open a dispute')
            booking.dispute_reason = reason
            booking.dispute_resolution = 'pending'

        previous = booking.status
        booking.status = target
        logger.info('Booking %s moved %s -> %s by %s %s', booking.id, previous, target, party, actor.id)
        return booking

    booking = run_with_write_retry(db, apply)
    db.refresh(booking)
    return booking


def complete_booking(db: Session, booking_id: int, actor: User) -> Booking:
    return transition_status(db, booking_id, actor, STATUS_COMPLETED)


def open_dispute(db: Session, booking_id: int, actor: User, reason: str) -> Booking:
    return transition_status(db, booking_id, actor, STATUS_DISPUTED, reason=reason)


def resolve_dispute(
    db: Session,
    booking_id: int,
    admin: User,
    resolution: str,
    admin_notes: str | None = None,
) -> Booking:
    if not admin.is_admin:
        raise errors.AuthorizationError('Only admins can resolve disputes')
    if resolution not in ('refund', 'partial_refund', 'no_action'):
        raise errors.ValidationError('Resolution must be one of: refund, partial_refund, no_action')

    def apply(session: Session) -> Booking:
        booking = get_booking(session, booking_id)
        if booking.status != STATUS_DISPUTED:
            raise errors.ConflictError('Only disputed bookings can be resolved')
        if booking.resolved_at is not None:
            raise errors.ConflictError('Dispute has already been resolved')

        booking.dispute_resolution = resolution
        booking.admin_notes = (admin_notes or '').strip() or None
        booking.resolved_by = admin.id
        booking.resolved_at = utcnow()
        if resolution == 'refund':
            booking.payment_status = 'refunded'
        return booking

    booking = run_with_write_retry(db, apply)
    db.refresh(booking)
    logger.info('Dispute on booking %s resolved by admin %s: %s', booking.id, admin.id, resolution)
    return booking
