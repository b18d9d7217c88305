"""Quiz routes: authoring, visibility, taking and scoring."""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from lms.auth import Principal, admin_required, authorize_owner, get_current_principal, student_required
from lms.database import get_db
from lms.errors import NotFound, ValidationFailed
from lms.models import Jobsheet, Quiz, QuizAnswer, QuizQuestion, QuizSubmission
from lms.processing import try_extract_pdf_text
from lms.schemas import (
    QuizCreate, QuizOut, QuizQuestionIn, QuizSubmit, QuizUpdate, QuizWithQuestionsOut,
    StudentAnswerOut, StudentQuestionOut, SubmissionOut,
)
from lms.shaping import dump, dump_many, envelope
from lms.uploads import FileStorage, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quizzes", tags=["Quizzes"])


def _build_questions(questions: List[QuizQuestionIn]) -> List[QuizQuestion]:
    return [
        QuizQuestion(
            question_text=q.question_text,
            option_a=q.option_a,
            option_b=q.option_b,
            option_c=q.option_c,
            option_d=q.option_d,
            option_e=q.option_e,
            correct_answer=q.correct_answer.value,
            points=q.points,
            order_index=q.order_index,
        )
        for q in questions
    ]


def ensure_extracted_text(jobsheet: Jobsheet, storage: FileStorage) -> Optional[str]:
    """Extract and store the class PDF text if it has not been extracted yet."""
    if jobsheet.extracted_text or not jobsheet.file_url:
        return jobsheet.extracted_text

    logger.info(f"Extracting text from class PDF {jobsheet.file_url}")
    text = try_extract_pdf_text(storage.read_url(jobsheet.file_url))
    if text:
        jobsheet.extracted_text = text
        logger.info(f"Extracted {len(text)} characters for class {jobsheet.id}")
    return text


def incorrect_questions(answers: List[QuizAnswer]) -> List[Dict[str, Any]]:
    """Incorrectly answered questions in quiz order, without their correct answer."""
    ordered = sorted(answers, key=lambda a: a.question.order_index if a.question else 0)
    return [
        {
            "question_id": a.question_id,
            "question_text": a.question.question_text,
            "student_answer": a.student_answer or "No answer",
        }
        for a in ordered
        if not a.is_correct and a.question is not None
    ]


@router.get("")
async def list_quizzes(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    """Admins see quizzes of their classes; students only see published quizzes."""
    query = db.query(Quiz).options(joinedload(Quiz.jobsheet))
    if principal.is_admin:
        query = query.join(Quiz.jobsheet).filter(Jobsheet.admin_id == principal.id)
    else:
        query = query.filter(Quiz.is_published.is_(True))
    return envelope(dump_many(QuizOut, query.order_by(Quiz.created_at.desc()).all()))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_quiz(
    body: QuizCreate,
    principal: Principal = Depends(admin_required),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    """Create an unpublished quiz with its questions."""
    jobsheet = authorize_owner(
        lambda: db.query(Jobsheet).filter(Jobsheet.id == body.class_id).with_for_update().first(),
        lambda j: j.admin_id,
        principal,
        forbidden="You can only create quizzes for your own classes",
        not_found="Class not found",
    )
    ensure_extracted_text(jobsheet, storage)

    quiz = Quiz(
        class_id=jobsheet.id,
        title=body.title,
        description=body.description or None,
        time_limit=body.time_limit,
        created_by=principal.id,
        is_published=False,
        questions=_build_questions(body.questions),
    )
    db.add(quiz)
    db.commit()
    db.refresh(quiz)
    logger.info(f"Quiz {quiz.id} created with {len(quiz.questions)} questions")
    return envelope({"message": "Quiz created successfully", "quiz": dump(QuizWithQuestionsOut, quiz)})


@router.get("/{quiz_id}")
async def get_quiz(
    quiz_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Admins get the full quiz; students get it without answers plus their own result."""
    quiz = db.query(Quiz).options(joinedload(Quiz.jobsheet)).filter(Quiz.id == quiz_id).first()
    if quiz is None:
        raise NotFound("Quiz not found")

    if principal.is_admin:
        return envelope(dump(QuizWithQuestionsOut, quiz))

    if not quiz.is_published:
        raise NotFound("Quiz not found")

    payload = dump(QuizOut, quiz)
    payload["questions"] = dump_many(StudentQuestionOut, quiz.questions)

    submission = (
        db.query(QuizSubmission)
        .filter(QuizSubmission.quiz_id == quiz.id, QuizSubmission.student_id == principal.id)
        .first()
    )
    payload["already_submitted"] = submission is not None
    if submission is not None:
        answers = sorted(submission.answers, key=lambda a: a.question.order_index if a.question else 0)
        result = dump(SubmissionOut, submission)
        result["incorrect_questions"] = incorrect_questions(answers)
        result["answers"] = dump_many(StudentAnswerOut, answers)
        payload["submission"] = result
    return envelope(payload)


@router.put("/{quiz_id}")
async def update_quiz(
    quiz_id: str,
    body: QuizUpdate,
    principal: Principal = Depends(admin_required),
    db: Session = Depends(get_db),
):
    """Replace a quiz's details and questions. Refused once students have submitted."""
    quiz = authorize_owner(
        lambda: db.query(Quiz).filter(Quiz.id == quiz_id).with_for_update().first(),
        lambda q: q.created_by,
        principal,
        forbidden="You can only edit your own quizzes",
        not_found="Quiz not found",
    )
    if db.query(QuizSubmission).filter(QuizSubmission.quiz_id == quiz.id).count():
        raise ValidationFailed("Quiz already has submissions and can no longer be edited")

    quiz.title = body.title
    quiz.description = body.description or None
    quiz.time_limit = body.time_limit
    quiz.questions = _build_questions(body.questions)
    db.commit()
    db.refresh(quiz)
    logger.info(f"Quiz {quiz.id} updated")
    return envelope({"message": "Quiz updated successfully", "quiz": dump(QuizWithQuestionsOut, quiz)})


@router.delete("/{quiz_id}")
async def delete_quiz(
    quiz_id: str,
    principal: Principal = Depends(admin_required),
    db: Session = Depends(get_db),
):
    quiz = authorize_owner(
        lambda: db.query(Quiz).filter(Quiz.id == quiz_id).with_for_update().first(),
        lambda q: q.created_by,
        principal,
        forbidden="You can only delete your own quizzes",
        not_found="Quiz not found",
    )
    db.delete(quiz)
    db.commit()
    logger.info(f"Quiz {quiz_id} deleted")
    return envelope({"message": "Quiz deleted successfully"})


@router.patch("/{quiz_id}/publish")
async def set_quiz_visibility(
    quiz_id: str,
    payload: Any = Body(None),
    principal: Principal = Depends(admin_required),
    db: Session = Depends(get_db),
):
    """Show or hide a quiz for students.

    Only ``is_published`` changes; submissions and answers are left untouched.
    """
    is_published = payload.get("is_published") if isinstance(payload, dict) else None
    if not isinstance(is_published, bool):
        raise ValidationFailed("is_published must be a boolean")

    quiz = authorize_owner(
        lambda: db.query(Quiz).filter(Quiz.id == quiz_id).with_for_update().first(),
        lambda q: q.created_by,
        principal,
        forbidden="You can only update your own quizzes",
        not_found="Quiz not found",
    )
    quiz.is_published = is_published
    db.commit()

    message = "Quiz published (visible to mahasiswa)" if is_published else "Quiz archived (hidden from mahasiswa)"
    return envelope({"message": message, "is_published": is_published})


@router.post("/{quiz_id}/submit", status_code=status.HTTP_201_CREATED)
async def submit_quiz(
    quiz_id: str,
    body: QuizSubmit,
    principal: Principal = Depends(student_required),
    db: Session = Depends(get_db),
):
    """Score a student's answers and record the submission."""
    quiz = db.get(Quiz, quiz_id)
    if quiz is None or not quiz.is_published:
        raise NotFound("Quiz not found")

    existing = (
        db.query(QuizSubmission)
        .filter(QuizSubmission.quiz_id == quiz.id, QuizSubmission.student_id == principal.id)
        .first()
    )
    if existing is not None:
        raise ValidationFailed("You have already submitted this quiz")
    if not quiz.questions:
        raise ValidationFailed("Quiz has no questions")

    chosen = {a.question_id: a.answer.value for a in body.answers}
    submission = QuizSubmission(quiz_id=quiz.id, student_id=principal.id)
    score = 0.0
    total_points = 0.0
    for question in quiz.questions:
        total_points += question.points
        answer = chosen.get(question.id)
        is_correct = answer == question.correct_answer
        earned = question.points if is_correct else 0.0
        score += earned
        submission.answers.append(QuizAnswer(
            question=question,
            student_answer=answer,
            is_correct=is_correct,
            points_earned=earned,
        ))
    submission.score = score
    submission.total_points = total_points

    try:
        db.add(submission)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationFailed("You have already submitted this quiz")
    db.refresh(submission)
    logger.info(f"Quiz {quiz.id} submitted by {principal.id}: {score}/{total_points}")

    result = dump(SubmissionOut, submission)
    result["incorrect_questions"] = incorrect_questions(submission.answers)
    result["extracted_text"] = quiz.jobsheet.extracted_text if quiz.jobsheet else None
    return envelope({"message": "Quiz submitted successfully", "submission": result})
