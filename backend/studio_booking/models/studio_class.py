"""
Class catalog: classes and the schedules that define their sessions.

Key design decisions:
- `capacity` is nullable because the catalog screens allow saving a class
  without one; admission treats a missing capacity as "session not found"
  instead of guessing a default.
- A schedule row is either a one-off session (`is_recurring = false`) or a
  weekly series starting on `starts_on`.
"""

from datetime import date, time

from sqlalchemy import Boolean, CheckConstraint, Column, Date, ForeignKey, Index, Integer, String, Time
from sqlalchemy.orm import relationship

from studio_booking.db.base import Base, TimestampMixin


class StudioClass(Base, TimestampMixin):
    __tablename__ = "studio_classes"

    id = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=False)
    capacity = Column(Integer, nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=60)

    schedules = relationship("ClassSchedule", back_populates="studio_class", lazy="selectin")

    __table_args__ = (
        CheckConstraint("capacity IS NULL OR capacity > 0", name="check_class_capacity_positive"),
    )

    def __repr__(self) -> str:
        return f"<StudioClass(id={self.id}, title={self.title}, capacity={self.capacity})>"


class ClassSchedule(Base, TimestampMixin):
    __tablename__ = "class_schedules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    class_id = Column(String(64), ForeignKey("studio_classes.id"), nullable=False)
    starts_on = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    is_recurring = Column(Boolean, nullable=False, default=True)

    studio_class = relationship("StudioClass", back_populates="schedules")

    __table_args__ = (
        Index("ix_class_schedules_class_time", "class_id", "start_time"),
    )

    def occurs_on(self, session_date: date, session_time: time) -> bool:
        """True when this schedule produces a session at the given date and time."""
        if session_time != self.start_time:
            return False
        if session_date == self.starts_on:
            return True
        return (
            self.is_recurring
            and session_date > self.starts_on
            and session_date.weekday() == self.starts_on.weekday()
        )

    def __repr__(self) -> str:
        return f"<ClassSchedule(class={self.class_id}, starts_on={self.starts_on}, at={self.start_time})>"
