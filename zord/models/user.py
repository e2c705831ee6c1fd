import enum

from sqlalchemy import Column, String, Boolean, DateTime, Enum
from sqlalchemy.orm import relationship

from .base import BaseModel


class UserRole(str, enum.Enum):
    """Roles that drive post visibility."""
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class User(BaseModel):
    __tablename__ = "users"

    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    college_id = Column(String(100), nullable=False, index=True)
    college_name = Column(String(200), nullable=False)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=lambda x: [e.value for e in x]),
        default=UserRole.STUDENT,
        nullable=False,
        index=True
    )
    avatar = Column(String(500), nullable=False, default="")
    bio = Column(String(200), nullable=False, default="")
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)

    # Relationships - User OWNS these
    posts = relationship("Post", back_populates="owner", cascade="all, delete-orphan")
