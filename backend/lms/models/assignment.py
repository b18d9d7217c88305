"""Jobsheet assignment and jobsheet submission models."""

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Float
from sqlalchemy.orm import relationship

from ..database import Base
from .base import new_id, utcnow


class JobsheetAssignment(Base):
    """A file a student uploads against a jobsheet; graded by the jobsheet admin."""
    __tablename__ = "jobsheet_assignments"

    id = Column(String(36), primary_key=True, default=new_id)
    jobsheet_id = Column(String(36), ForeignKey("classes.id"), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    nim = Column(String(50), nullable=False)
    file_url = Column(String(500), nullable=False)
    file_name = Column(String(255))
    grade = Column(Float)
    feedback = Column(Text)
    graded_by = Column(String(36), ForeignKey("profiles.id"))
    graded_at = Column(DateTime(timezone=True))
    uploaded_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    jobsheet = relationship("Jobsheet", back_populates="assignments")
    student = relationship("Profile", foreign_keys=[student_id])
    grader = relationship("Profile", foreign_keys=[graded_by])

    def __repr__(self):
        return f"<JobsheetAssignment(id={self.id}, nim='{self.nim}', grade={self.grade})>"


class JobsheetSubmission(Base):
    """A student's completed jobsheet for one module."""
    __tablename__ = "jobsheet_submissions"

    id = Column(String(36), primary_key=True, default=new_id)
    module_id = Column(String(36), ForeignKey("modules.id"), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    file_url = Column(String(500), nullable=False)
    grade = Column(Float)
    feedback = Column(Text)
    graded_by = Column(String(36), ForeignKey("profiles.id"))
    graded_at = Column(DateTime(timezone=True))
    submitted_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    module = relationship("Module", back_populates="submissions")
    student = relationship("Profile", foreign_keys=[student_id])

    def __repr__(self):
        return f"<JobsheetSubmission(id={self.id}, module_id={self.module_id})>"
