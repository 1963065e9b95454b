"""Accounts, profiles and student search."""

import logging
import math

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sitside.auth import passwords
from sitside.core import config, errors
from sitside.database import run_with_write_retry
from sitside.models.user import (
    DAY_PARTS,
    ROLE_ADMIN,
    ROLE_PARENT,
    ROLE_STUDENT,
    WEEKDAYS,
    User,
    default_availability,
)

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
MIN_GRADE = 9
MAX_GRADE = 12
MIN_HOURLY_RATE = 5
MAX_HOURLY_RATE = 50
DEFAULT_HOURLY_RATE = 15
MAX_BIO_LENGTH = 500
SEARCH_RESULT_LIMIT = 20
LIKE_ESCAPE = '\\'

PROFILE_FIELDS = (
    'first_name',
    'last_name',
    'phone',
    'bio',
    'hourly_rate',
    'experience',
    'certifications',
    'location',
    'availability',
    'emergency_contact',
    'profile_image',
)
STUDENT_ONLY_FIELDS = ('bio', 'hourly_rate', 'experience', 'certifications', 'location', 'availability')


def normalize_email(email: str) -> str:
    return (email or '').strip().lower()


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def validate_hourly_rate(rate: float | None) -> float:
    if rate is None or not math.isfinite(rate) or rate < MIN_HOURLY_RATE or rate > MAX_HOURLY_RATE:
        raise errors.ValidationError(
            f'Hourly rate must be between {MIN_HOURLY_RATE} and {MAX_HOURLY_RATE}.'
        )
    return float(rate)


def validate_availability(availability: dict) -> dict:
    if not isinstance(availability, dict):
        raise errors.ValidationError('Availability data required')

    unknown_days = set(availability) - set(WEEKDAYS)
    if unknown_days:
        raise errors.ValidationError(f'Unknown day in availability: {sorted(unknown_days)[0]}')

    grid = {}
    for day in WEEKDAYS:
        parts = availability.get(day) or {}
        grid[day] = {part: bool(parts.get(part, False)) for part in DAY_PARTS}
    return grid


def _normalize_certifications(certifications) -> list[str]:
    cleaned: list[str] = []
    for certification in certifications or []:
        name = (certification or '').strip()
        if name and name not in cleaned:
            cleaned.append(name)
    return cleaned


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def register_user(
    db: Session,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    phone: str,
    role: str,
    grade: int | None = None,
    school: str | None = None,
    bio: str | None = None,
    hourly_rate: float | None = None,
    experience: str | None = None,
    certifications: list[str] | None = None,
    location: str | None = None,
    availability: dict | None = None,
    emergency_contact: str | None = None,
) -> User:
    email = normalize_email(email)
    if not email or not password or not _clean(first_name) or not _clean(last_name) or not _clean(phone):
        raise errors.ValidationError(
            'Missing required fields: email, password, first_name, last_name, phone, role'
        )
    if role not in (ROLE_STUDENT, ROLE_PARENT):
        raise errors.ValidationError('Invalid user type')
    if len(password) < MIN_PASSWORD_LENGTH:
        raise errors.ValidationError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters.')

    if get_user_by_email(db, email) is not None:
        raise errors.ConflictError('User with this email already exists')

    user = User(
        email=email,
        hashed_password=passwords.hash_password(password),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        phone=phone.strip(),
        role=role,
    )

    if role == ROLE_STUDENT:
        if grade is None or not _clean(school):
            raise errors.ValidationError('Students must provide grade and school')
        if grade < MIN_GRADE or grade > MAX_GRADE:
            raise errors.ValidationError(f'Grade must be between {MIN_GRADE} and {MAX_GRADE}')
        user.grade = grade
        user.school = school.strip()
        user.bio = _clean(bio)
        user.hourly_rate = validate_hourly_rate(hourly_rate if hourly_rate is not None else DEFAULT_HOURLY_RATE)
        user.experience = _clean(experience)
        user.certifications = _normalize_certifications(certifications)
        user.location = _clean(location)
        user.availability = validate_availability(availability) if availability else default_availability()
    else:
        user.emergency_contact = _clean(emergency_contact)

    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise errors.ConflictError('Email already exists') from exc
    db.refresh(user)

    logger.info('Registered %s account %s', role, user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    if not normalize_email(email) or not password:
        raise errors.ValidationError('Email and password are required')

    user = get_user_by_email(db, email)
    if user is None or not passwords.verify_password(password, user.hashed_password):
        raise errors.AuthenticationError('Invalid email or password')
    if not user.is_active:
        raise errors.AuthenticationError('Account has been suspended. Please contact support.')
    return user


def seed_admin(db: Session) -> User | None:
    """Create the configured admin account once, if credentials are configured."""
    if not config.ADMIN_EMAIL or not config.ADMIN_PASSWORD:
        return None

    existing = get_user_by_email(db, config.ADMIN_EMAIL)
    if existing is not None:
        return existing

    admin = User(
        email=normalize_email(config.ADMIN_EMAIL),
        hashed_password=passwords.hash_password(config.ADMIN_PASSWORD),
        first_name='Admin',
        last_name='User',
        phone='',
        role=ROLE_ADMIN,
        is_verified=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info('Seeded admin account %s', admin.email)
    return admin


def update_profile(db: Session, user_id: int, updates: dict) -> User:
    unknown = set(updates) - set(PROFILE_FIELDS)
    if unknown:
        raise errors.ValidationError(f'Field cannot be updated: {sorted(unknown)[0]}')

    def apply(session: Session) -> User:
        user = session.get(User, user_id)
        if user is None:
            raise errors.NotFoundError('User not found')

        if not user.is_student:
            student_fields = sorted(set(updates) & set(STUDENT_ONLY_FIELDS))
            if student_fields:
                raise errors.AuthorizationError(f'Only students can update {student_fields[0]}')

        for field, value in updates.items():
            if field in ('first_name', 'last_name', 'phone'):
                if not _clean(value):
                    raise errors.ValidationError(f'{field} cannot be empty')
                value = value.strip()
            elif field == 'hourly_rate':
                value = validate_hourly_rate(value)
            elif field == 'availability':
                value = validate_availability(value)
            elif field == 'certifications':
                value = _normalize_certifications(value)
            elif field == 'bio':
                value = _clean(value)
                if value and len(value) > MAX_BIO_LENGTH:
                    raise errors.ValidationError(f'Bio must be {MAX_BIO_LENGTH} characters or fewer.')
            else:
                value = _clean(value)
            setattr(user, field, value)
        return user

    user = run_with_write_retry(db, apply)
    db.refresh(user)
    return user


def update_availability(db: Session, student: User, availability: dict) -> dict:
    if not student.is_student:
        raise errors.AuthorizationError('Only students can update availability')
    if not availability:
        raise errors.ValidationError('Availability data required')
    return update_profile(db, student.id, {'availability': availability}).availability


def add_certification(db: Session, student: User, certification: str) -> list[str]:
    if not student.is_student:
        raise errors.AuthorizationError('Only students can add certifications')
    name = (certification or '').strip()
    if not name:
        raise errors.ValidationError('Certification name required')

    def apply(session: Session) -> list[str]:
        user = session.get(User, student.id)
        current = list(user.certifications or [])
        if name not in current:
            user.certifications = current + [name]
        return list(user.certifications)

    return run_with_write_retry(db, apply)


def remove_certification(db: Session, student: User, certification: str) -> list[str]:
    if not student.is_student:
        raise errors.AuthorizationError('Only students can remove certifications')

    def apply(session: Session) -> list[str]:
        user = session.get(User, student.id)
        current = list(user.certifications or [])
        if certification in current:
            user.certifications = [item for item in current if item != certification]
        return list(user.certifications or [])

    return run_with_write_retry(db, apply)


def _contains(value: str) -> str:
    escaped = value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f'%{escaped}%'


def _student_query(db: Session, *, location: str | None = None, max_rate: float | None = None, q: str | None = None):
    query = db.query(User).filter(
        User.role == ROLE_STUDENT,
        User.is_active.is_(True),
        User.is_verified.is_(True),
    )

    location = _clean(location)
    if location:
        query = query.filter(User.location.ilike(_contains(location), escape=LIKE_ESCAPE))

    if max_rate is not None:
        query = query.filter(User.hourly_rate <= max_rate)

    q = _clean(q)
    if q:
        pattern = _contains(q)
        query = query.filter(
            or_(
                User.first_name.ilike(pattern, escape=LIKE_ESCAPE),
                User.last_name.ilike(pattern, escape=LIKE_ESCAPE),
                User.school.ilike(pattern, escape=LIKE_ESCAPE),
                User.location.ilike(pattern, escape=LIKE_ESCAPE),
                User.bio.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )

    return query.order_by(User.rating.desc(), User.review_count.desc(), User.id.asc())


def list_students(
    db: Session,
    *,
    location: str | None = None,
    max_rate: float | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[User], int]:
    query = _student_query(db, location=location, max_rate=max_rate)
    total = query.count()
    students = query.offset((page - 1) * limit).limit(limit).all()
    return students, total


def search_students(
    db: Session,
    *,
    q: str | None = None,
    location: str | None = None,
    max_rate: float | None = None,
) -> list[User]:
    if not _clean(q) and not _clean(location) and max_rate is None:
        raise errors.ValidationError('Search query required')
    return _student_query(db, location=location, max_rate=max_rate, q=q).limit(SEARCH_RESULT_LIMIT).all()


def get_student(db: Session, student_id: int) -> User:
    student = db.query(User).filter(
        User.id == student_id,
        User.role == ROLE_STUDENT,
        User.is_active.is_(True),
    ).first()
    if student is None:
        raise errors.NotFoundError('Student not found')
    return student
