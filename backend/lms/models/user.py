"""Profile model."""

from sqlalchemy import Column, String, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship

from ..database import Base
from .base import utcnow
from .enums import UserRole


class Profile(Base):
    """Application profile of an identity issued by the managed auth service.

    The primary key is the auth identity id, so profiles are created or
    upserted by id rather than generated locally.
    """
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    role = Column(SQLEnum(UserRole, name="user_role"), nullable=False, default=UserRole.mahasiswa)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    jobsheets = relationship("Jobsheet", back_populates="admin", foreign_keys="Jobsheet.admin_id")

    def __repr__(self):
        return f"<Profile(id={self.id}, email='{self.email}', role={self.role})>"
