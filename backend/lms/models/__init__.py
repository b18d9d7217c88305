"""SQLAlchemy models for the LMS."""

from .enums import UserRole, STUDENT_ROLES, AnswerOption, MessageRole
from .user import Profile
from .jobsheet import Jobsheet, Module
from .quiz import Quiz, QuizQuestion, QuizSubmission, QuizAnswer
from .assignment import JobsheetAssignment, JobsheetSubmission
from .chat import AIChatSession, AIChatMessage

__all__ = [
    "UserRole",
    "STUDENT_ROLES",
    "AnswerOption",
    "MessageRole",
    "Profile",
    "Jobsheet",
    "Module",
    "Quiz",
    "QuizQuestion",
    "QuizSubmission",
    "QuizAnswer",
    "JobsheetAssignment",
    "JobsheetSubmission",
    "AIChatSession",
    "AIChatMessage",
]
