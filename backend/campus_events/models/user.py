"""
User model with secure password storage.

`token_jti` holds the id of the user's current session token; signing out
clears it, which invalidates any token issued before.
"""

import enum

from sqlalchemy import Column, Integer, String, Boolean, CheckConstraint

from campus_events.db.base import Base, TimestampMixin


class UserRole(str, enum.Enum):
    STUDENT = "student"
    FACULTY = "faculty"
    ADMIN = "admin"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    reg_no = Column(String(50), unique=True, nullable=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.STUDENT.value)
    is_active = Column(Boolean, default=True, nullable=False)
    token_jti = Column(String(64), nullable=True)

    __table_args__ = (
        CheckConstraint("role IN ('student', 'faculty', 'admin')", name="check_user_role"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
