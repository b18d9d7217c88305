"""Jobsheet (class) and Module models."""

from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base
from .base import new_id, utcnow


class Jobsheet(Base):
    """A class/course unit owned by one admin."""
    __tablename__ = "classes"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    code = Column(String(100), nullable=False)
    description = Column(Text)
    admin_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    file_url = Column(String(500))
    extracted_text = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    admin = relationship("Profile", back_populates="jobsheets", foreign_keys=[admin_id])
    modules = relationship("Module", back_populates="jobsheet", cascade="all, delete-orphan")
    quizzes = relationship("Quiz", back_populates="jobsheet", cascade="all, delete-orphan")
    assignments = relationship("JobsheetAssignment", back_populates="jobsheet", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Jobsheet(id={self.id}, code='{self.code}')>"


class Module(Base):
    """Learning material uploaded into a jobsheet."""
    __tablename__ = "modules"

    id = Column(String(36), primary_key=True, default=new_id)
    class_id = Column(String(36), ForeignKey("classes.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    file_url = Column(String(500))
    extracted_text = Column(Text)
    uploaded_by = Column(String(36), ForeignKey("profiles.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    jobsheet = relationship("Jobsheet", back_populates="modules")
    uploader = relationship("Profile", foreign_keys=[uploaded_by])
    submissions = relationship("JobsheetSubmission", back_populates="module", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Module(id={self.id}, title='{self.title}')>"

    @property
    def owner_ids(self):
        """Admins allowed to manage this module: its uploader and the class admin."""
        return (self.uploaded_by, self.jobsheet.admin_id if self.jobsheet else None)
