"""Booking model definitions."""

from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
)
from sqlalchemy.orm import relationship, validates

from sitside.core import errors
from sitside.database import Base
from sitside.models.user import utcnow

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_REJECTED = "rejected"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
STATUS_DISPUTED = "disputed"
BOOKING_STATUSES = (
    STATUS_PENDING,
    STATUS_CONFIRMED,
    STATUS_REJECTED,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
    STATUS_DISPUTED,
)

PAYMENT_STATUSES = ("pending", "paid", "refunded")
DISPUTE_RESOLUTIONS = ("refund", "partial_refund", "no_action", "pending")


def compute_total_amount(start_time: time, end_time: time, hourly_rate: float) -> float:
    """Price a sitting: hours between start and end times the hourly rate.

    Rounded half-up to cents. An end time at or before the start time is
    rejected.
    """
    start = datetime.combine(date.min, start_time)
    end = datetime.combine(date.min, end_time)
    if end <= start:
        raise errors.ValidationError("End time must be after start time.")

    hours = Decimal(int((end - start).total_seconds())) / Decimal(3600)
    amount = (hours * Decimal(str(hourly_rate))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return float(amount)


class Booking(Base):
    """A single childcare engagement between a parent and a student sitter."""
    __tablename__ = "bookings"
    __table_args__ = (
        Index("idx_bookings_student_status", "student_id", "status"),
        Index("idx_bookings_parent_created", "parent_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    parent_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    number_of_children = Column(Integer, nullable=False)
    children_ages = Column(JSON, default=list)
    special_instructions = Column(String, default="")
    emergency_contact = Column(String, nullable=False)
    hourly_rate = Column(Float, nullable=False)
    _total_amount = Column("total_amount", Float, nullable=False)

    status = Column(String, nullable=False, default=STATUS_PENDING)
    payment_status = Column(String, nullable=False, default="pending")

    student_review_rating = Column(Integer)
    student_review_comment = Column(String)
    student_review_created_at = Column(DateTime(timezone=True))
    parent_review_rating = Column(Integer)
    parent_review_comment = Column(String)
    parent_review_created_at = Column(DateTime(timezone=True))

    dispute_reason = Column(String)
    dispute_resolution = Column(String)
    admin_notes = Column(String)
    resolved_by = Column(Integer, ForeignKey("users.id"))
    resolved_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version = Column(Integer, nullable=False)

    student = relationship("User", foreign_keys=[student_id], lazy="joined")
    parent = relationship("User", foreign_keys=[parent_id], lazy="joined")

    __mapper_args__ = {"version_id_col": version}

    @validates("start_time", "end_time", "hourly_rate")
    def _reprice(self, key, value):
        pricing = {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "hourly_rate": self.hourly_rate,
        }
        pricing[key] = value
        if all(item is not None for item in pricing.values()):
            self._total_amount = compute_total_amount(**pricing)
        return value

    @property
    def total_amount(self) -> float | None:
        """Derived from the times and hourly rate; there is no setter."""
        return self._total_amount

    @property
    def student_review(self) -> dict | None:
        if self.student_review_rating is None:
            return None
        return {
            "rating": self.student_review_rating,
            "comment": self.student_review_comment or "",
            "created_at": self.student_review_created_at,
        }

    @property
    def parent_review(self) -> dict | None:
        if self.parent_review_rating is None:
            return None
        return {
            "rating": self.parent_review_rating,
            "comment": self.parent_review_comment or "",
            "created_at": self.parent_review_created_at,
        }

    def has_both_reviews(self) -> bool:
        return self.student_review_rating is not None and self.parent_review_rating is not None
