"""AI tutor chat session and message models."""

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship

from ..database import Base
from .base import new_id, utcnow
from .enums import MessageRole


class AIChatSession(Base):
    """Tutor conversation about one incorrectly answered question."""
    __tablename__ = "ai_chat_sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    submission_id = Column(String(36), ForeignKey("quiz_submissions.id"), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    question_id = Column(String(36), ForeignKey("quiz_questions.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    last_message_at = Column(DateTime(timezone=True))

    # Relationships
    submission = relationship("QuizSubmission", back_populates="chat_sessions")
    question = relationship("QuizQuestion")
    messages = relationship(
        "AIChatMessage", back_populates="session", cascade="all, delete-orphan",
        order_by="AIChatMessage.created_at",
    )

    def __repr__(self):
        return f"<AIChatSession(id={self.id}, question_id={self.question_id})>"


class AIChatMessage(Base):
    __tablename__ = "ai_chat_messages"

    id = Column(String(36), primary_key=True, default=new_id)
    session_id = Column(String(36), ForeignKey("ai_chat_sessions.id"), nullable=False, index=True)
    role = Column(SQLEnum(MessageRole, name="message_role"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    session = relationship("AIChatSession", back_populates="messages")
