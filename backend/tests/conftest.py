"""Test configuration and fixtures."""

import os
import tempfile
from datetime import datetime, timedelta, UTC

# Configure the app before lms is imported: SQLite engine, throwaway upload root.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="lms-test-uploads-"))

import fitz
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lms.database import Base, get_db
from lms.models import (
    Jobsheet, JobsheetAssignment, Module, Profile, Quiz, QuizAnswer, QuizQuestion, QuizSubmission, UserRole,
)
from lms.tutor import TutorError, get_tutor
from lms.uploads import FileStorage, get_storage

TEST_JWT_SECRET = "test-jwt-secret"
TEST_DATABASE_URL = "sqlite:///:memory:"

ADMIN_ID = "11111111-1111-4111-8111-111111111111"
OTHER_ADMIN_ID = "22222222-2222-4222-8222-222222222222"
STUDENT_ID = "33333333-3333-4333-8333-333333333333"
OTHER_STUDENT_ID = "44444444-4444-4444-8444-444444444444"


def make_token(user_id: str, email: str = "", secret: str = TEST_JWT_SECRET, expires_in: int = 3600) -> str:
    """Mint an access token shaped like the ones the auth service issues."""
    now = datetime.now(UTC)
    claims = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "role": "authenticated",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
    }
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_headers(profile: Profile) -> dict:
    return {"Authorization": f"Bearer {make_token(profile.id, profile.email)}"}


def make_pdf(text: str = "Jobsheet 1: Instalasi jaringan") -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


class FakeTutor:
    """Stands in for the AI tutor; records every request."""

    def __init__(self):
        self.calls = []
        self.fail = False
        self.response = "Coba ingat kembali materi pada modul ini."

    async def reply(self, context, history):
        self.calls.append({"context": context, "history": list(history)})
        if self.fail:
            raise TutorError("model unavailable")
        return self.response


@pytest.fixture
def engine():
    """Create test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    """Create test database session."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path):
    return FileStorage(str(tmp_path / "uploads"), "/files")


@pytest.fixture
def tutor():
    return FakeTutor()


@pytest.fixture
def client(session_factory, storage, tutor, monkeypatch):
    from lms.main import app

    monkeypatch.setenv("SUPABASE_JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.delenv("MAINTENANCE_MODE", raising=False)

    # Override get_db dependency
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_tutor] = lambda: tutor

    with TestClient(app) as test_client:
        yield test_client

    # Clean up
    app.dependency_overrides.clear()


def _profile(db_session, user_id, email, full_name, role):
    profile = Profile(id=user_id, email=email, full_name=full_name, role=role)
    db_session.add(profile)
    db_session.commit()
    db_session.refresh(profile)
    return profile


@pytest.fixture
def admin(db_session):
    return _profile(db_session, ADMIN_ID, "dosen@example.ac.id", "Dosen Satu", UserRole.admin)


@pytest.fixture
def other_admin(db_session):
    return _profile(db_session, OTHER_ADMIN_ID, "dosen2@example.ac.id", "Dosen Dua", UserRole.admin)


@pytest.fixture
def student(db_session):
    return _profile(db_session, STUDENT_ID, "siswa@example.ac.id", "Budi Santoso", UserRole.mahasiswa)


@pytest.fixture
def other_student(db_session):
    return _profile(db_session, OTHER_STUDENT_ID, "siswa2@example.ac.id", "Sari Dewi", UserRole.student)


@pytest.fixture
def make_jobsheet(db_session):
    """Factory for jobsheets owned by a given admin."""
    def factory(owner, name="Jaringan Komputer", code="JK-01", extracted_text=None, file_url=None):
        jobsheet = Jobsheet(
            name=name, code=code, admin_id=owner.id, extracted_text=extracted_text, file_url=file_url,
        )
        db_session.add(jobsheet)
        db_session.commit()
        db_session.refresh(jobsheet)
        return jobsheet
    return factory


@pytest.fixture
def jobsheet(admin, make_jobsheet):
    return make_jobsheet(admin, extracted_text="Subnetting membagi jaringan menjadi beberapa bagian.")


@pytest.fixture
def module(db_session, admin, jobsheet):
    module = Module(class_id=jobsheet.id, title="Modul 1", description="Pengantar", uploaded_by=admin.id)
    db_session.add(module)
    db_session.commit()
    db_session.refresh(module)
    return module


@pytest.fixture
def make_quiz(db_session):
    """Factory for quizzes with three one-point questions (answers A, B, C)."""
    def factory(jobsheet, creator, title="Kuis Subnetting", published=True, answers=("A", "B", "C")):
        quiz = Quiz(class_id=jobsheet.id, title=title, created_by=creator.id, is_published=published)
        for index, correct in enumerate(answers):
            quiz.questions.append(QuizQuestion(
                question_text=f"Pertanyaan {index + 1}",
                option_a="Pilihan A",
                option_b="Pilihan B",
                option_c="Pilihan C",
                option_d="Pilihan D",
                option_e="Pilihan E",
                correct_answer=correct,
                points=1,
                order_index=index,
            ))
        db_session.add(quiz)
        db_session.commit()
        db_session.refresh(quiz)
        return quiz
    return factory


@pytest.fixture
def quiz(jobsheet, admin, make_quiz):
    return make_quiz(jobsheet, admin)


@pytest.fixture
def make_submission(db_session):
    """Factory for a scored quiz submission from a mapping of question index to letter."""
    def factory(quiz, student, chosen, submitted_at=None):
        submission = QuizSubmission(quiz_id=quiz.id, student_id=student.id)
        if submitted_at is not None:
            submission.submitted_at = submitted_at
        score = 0.0
        for index, question in enumerate(quiz.questions):
            answer = chosen.get(index)
            correct = answer == question.correct_answer
            score += question.points if correct else 0
            submission.answers.append(QuizAnswer(
                question_id=question.id,
                student_answer=answer,
                is_correct=correct,
                points_earned=question.points if correct else 0,
            ))
        submission.score = score
        submission.total_points = quiz.total_points
        db_session.add(submission)
        db_session.commit()
        db_session.refresh(submission)
        return submission
    return factory


@pytest.fixture
def make_assignment(db_session):
    def factory(jobsheet, student, nim="2201001", uploaded_at=None, file_url="/files/jobsheet-assignments/a.pdf"):
        assignment = JobsheetAssignment(
            jobsheet_id=jobsheet.id,
            student_id=student.id,
            nim=nim,
            file_url=file_url,
            file_name="tugas.pdf",
            uploaded_at=uploaded_at or datetime.now(UTC),
        )
        db_session.add(assignment)
        db_session.commit()
        db_session.refresh(assignment)
        return assignment
    return factory
