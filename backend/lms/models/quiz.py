"""Quiz, question, submission and answer models."""

from sqlalchemy import (
    Column, String, Text, DateTime, ForeignKey, Integer, Float, Boolean, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..database import Base
from .base import new_id, utcnow


class Quiz(Base):
    """Multiple choice quiz attached to a jobsheet."""
    __tablename__ = "quizzes"

    id = Column(String(36), primary_key=True, default=new_id)
    class_id = Column(String(36), ForeignKey("classes.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    time_limit = Column(Integer)
    created_by = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    # Visibility switch only; toggling it never touches submissions or answers.
    is_published = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    jobsheet = relationship("Jobsheet", back_populates="quizzes")
    questions = relationship(
        "QuizQuestion", back_populates="quiz", cascade="all, delete-orphan",
        order_by="QuizQuestion.order_index",
    )
    submissions = relationship("QuizSubmission", back_populates="quiz", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Quiz(id={self.id}, title='{self.title}', published={self.is_published})>"

    @property
    def total_points(self) -> float:
        return sum(q.points for q in self.questions)


class QuizQuestion(Base):
    __tablename__ = "quiz_questions"

    id = Column(String(36), primary_key=True, default=new_id)
    quiz_id = Column(String(36), ForeignKey("quizzes.id"), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    option_a = Column(Text, nullable=False)
    option_b = Column(Text, nullable=False)
    option_c = Column(Text, nullable=False)
    option_d = Column(Text, nullable=False)
    option_e = Column(Text)
    correct_answer = Column(String(1), nullable=False)
    points = Column(Float, nullable=False, default=1)
    order_index = Column(Integer, nullable=False, default=0)

    quiz = relationship("Quiz", back_populates="questions")

    def __repr__(self):
        return f"<QuizQuestion(id={self.id}, order={self.order_index})>"


class QuizSubmission(Base):
    """A student's single attempt at a quiz."""
    __tablename__ = "quiz_submissions"
    __table_args__ = (UniqueConstraint("quiz_id", "student_id", name="uq_quiz_submission_student"),)

    id = Column(String(36), primary_key=True, default=new_id)
    quiz_id = Column(String(36), ForeignKey("quizzes.id"), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    score = Column(Float, nullable=False, default=0)
    total_points = Column(Float, nullable=False, default=0)
    submitted_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    quiz = relationship("Quiz", back_populates="submissions")
    student = relationship("Profile")
    answers = relationship("QuizAnswer", back_populates="submission", cascade="all, delete-orphan")
    chat_sessions = relationship("AIChatSession", back_populates="submission", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<QuizSubmission(id={self.id}, score={self.score}/{self.total_points})>"

    @property
    def percentage(self) -> float:
        if not self.total_points:
            return 0.0
        return self.score / self.total_points * 100


class QuizAnswer(Base):
    __tablename__ = "quiz_answers"

    id = Column(String(36), primary_key=True, default=new_id)
    submission_id = Column(String(36), ForeignKey("quiz_submissions.id"), nullable=False, index=True)
    question_id = Column(String(36), ForeignKey("quiz_questions.id"), nullable=False)
    student_answer = Column(String(1))
    is_correct = Column(Boolean, nullable=False, default=False)
    points_earned = Column(Float, nullable=False, default=0)

    submission = relationship("QuizSubmission", back_populates="answers")
    question = relationship("QuizQuestion")
