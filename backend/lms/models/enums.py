"""Shared enums for models and auth."""
import enum


class UserRole(str, enum.Enum):
    admin = "admin"
    student = "student"
    mahasiswa = "mahasiswa"


# "mahasiswa" is the Indonesian word for a university student.
STUDENT_ROLES = (UserRole.student, UserRole.mahasiswa)


class AnswerOption(str, enum.Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"


class MessageRole(str, enum.Enum):
    user = "user"
    assistant = "assistant"
