"""User model definitions."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Index, Integer, String

from sitside.database import Base

ROLE_STUDENT = "student"
ROLE_PARENT = "parent"
ROLE_ADMIN = "admin"
ROLES = (ROLE_STUDENT, ROLE_PARENT, ROLE_ADMIN)

BACKGROUND_CHECK_STATUSES = ("pending", "approved", "rejected", "not_required")

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
DAY_PARTS = ("morning", "afternoon", "evening")


def default_availability() -> dict:
    grid = {day: {"morning": False, "afternoon": True, "evening": True} for day in WEEKDAYS[:5]}
    grid["saturday"] = {"morning": True, "afternoon": True, "evening": True}
    grid["sunday"] = {"morning": True, "afternoon": True, "evening": False}
    return grid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Represents a parent, a student sitter or an admin."""
    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_role_active", "role", "is_active"),
    )

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    role = Column(String, nullable=False)  # student/parent/admin

    # Student profile
    grade = Column(Integer)
    school = Column(String)
    bio = Column(String)
    hourly_rate = Column(Float)
    experience = Column(String)
    certifications = Column(JSON, default=list)
    location = Column(String)
    availability = Column(JSON)

    # Parent profile
    emergency_contact = Column(String)

    profile_image = Column(String)
    rating = Column(Float, nullable=False, default=0.0)
    review_count = Column(Integer, nullable=False, default=0)
    is_verified = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    background_check_status = Column(String, nullable=False, default="not_required")

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_student(self) -> bool:
        return self.role == ROLE_STUDENT

    @property
    def is_parent(self) -> bool:
        return self.role == ROLE_PARENT

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
