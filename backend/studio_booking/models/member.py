"""
Member directory entry. Owned by the profile screens; read-only here.
"""

from sqlalchemy import Boolean, Column, String

from studio_booking.db.base import Base, TimestampMixin


class Member(Base, TimestampMixin):
    __tablename__ = "members"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Member(id={self.id}, email={self.email})>"
