"""Booking reviews and the student rating aggregate."""

import logging
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.orm import Session

from sitside.core import errors
from sitside.database import run_with_write_retry
from sitside.models.booking import STATUS_COMPLETED, Booking
from sitside.models.user import User, utcnow
from sitside.services.bookings import PARTY_PARENT, PARTY_STUDENT, get_booking, party_of

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5
MAX_COMMENT_LENGTH = 500


def validate_rating(rating) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise errors.ValidationError('Rating must be a whole number')
    if rating < MIN_RATING or rating > MAX_RATING:
        raise errors.ValidationError(f'Rating must be between {MIN_RATING} and {MAX_RATING}')
    return rating


def validate_comment(comment: str | None) -> str:
    comment = (comment or '').strip()
    if len(comment) > MAX_COMMENT_LENGTH:
        raise errors.ValidationError(f'Comment must be {MAX_COMMENT_LENGTH} characters or fewer.')
    return comment


def aggregate_rating(parent_ratings: list[int]) -> tuple[float, int]:
    """Mean of parent-given ratings rounded half-up to one decimal, and their count."""
    if not parent_ratings:
        return 0.0, 0
    mean = Decimal(sum(parent_ratings)) / Decimal(len(parent_ratings))
    return float(mean.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)), len(parent_ratings)


def apply_student_rating(session: Session, student_id: int) -> User:
    """Set a student's rating from the bookings in ``session``; the caller commits."""
    student = session.get(User, student_id)
    if student is None:
        raise errors.NotFoundError('Student not found')

    ratings = [
        rating
        for (rating,) in session.query(Booking.parent_review_rating).filter(
            Booking.student_id == student_id,
            Booking.student_review_rating.is_not(None),
            Booking.parent_review_rating.is_not(None),
        )
    ]
    rating, review_count = aggregate_rating(ratings)
    if student.rating != rating or student.review_count != review_count:
        student.rating = rating
        student.review_count = review_count
    return student


def recompute_student_rating(db: Session, student_id: int) -> User:
    """Rebuild a student's rating from every booking reviewed by both parties.

    The result only depends on the stored reviews, so running it again over
    the same bookings changes nothing.
    """
    student = run_with_write_retry(db, lambda session: apply_student_rating(session, student_id))
    logger.info('Student %s rating recomputed: %s over %s reviews', student.id, student.rating, student.review_count)
    return student


def submit_review(
    db: Session,
    booking_id: int,
    actor: User,
    rating: int,
    comment: str | None = None,
) -> Booking:
    """Store one party's review and, once both are in, the student's new rating.

    The review and the rating update commit together, so a conflict leaves
    neither behind and the review can be submitted again.
    """
    rating = validate_rating(rating)
    comment = validate_comment(comment)

    def apply(session: Session) -> Booking:
        booking = get_booking(session, booking_id)
        party = party_of(booking, actor)
        if party is None:
            raise errors.AuthorizationError('Access denied')
        if booking.status != STATUS_COMPLETED:
            raise errors.ConflictError('Can only review completed bookings')

        now = utcnow()
        if party == PARTY_STUDENT:
            if booking.student_review_rating is not None:
                raise errors.ConflictError('Student has already reviewed this booking')
            booking.student_review_rating = rating
            booking.student_review_comment = comment
            booking.student_review_created_at = now
        elif party == PARTY_PARENT:
            if booking.parent_review_rating is not None:
                raise errors.ConflictError('Parent has already reviewed this booking')
            booking.parent_review_rating = rating
            booking.parent_review_comment = comment
            booking.parent_review_created_at = now

        if booking.has_both_reviews():
            session.flush()
            student = apply_student_rating(session, booking.student_id)
            logger.info(
                'Student %s rating recomputed: %s over %s reviews',
                student.id,
                student.rating,
                student.review_count,
            )
        return booking

    booking = run_with_write_retry(db, apply)
    db.refresh(booking)
    logger.info('Review %s/5 submitted on booking %s by %s %s', rating, booking.id, actor.role, actor.id)
    return booking
