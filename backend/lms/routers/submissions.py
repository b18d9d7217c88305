"""Quiz submission listings and analytics."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, joinedload

from lms.auth import Principal, admin_required, authorize_owner, student_required
from lms.database import get_db
from lms.models import Quiz, QuizAnswer, QuizSubmission
from lms.schemas import AdminSubmissionOut, StudentSubmissionOut, SubmissionWithAnswersOut
from lms.shaping import dump_many, envelope

router = APIRouter(prefix="/submissions", tags=["Quiz Submissions"])


def _own_quiz(db: Session, quiz_id: str, principal: Principal, forbidden: str) -> Quiz:
    # A missing quiz is reported as forbidden so other admins cannot probe ids.
    return authorize_owner(lambda: db.get(Quiz, quiz_id), lambda q: q.created_by, principal, forbidden=forbidden)


@router.get("/all")
async def list_all_submissions(principal: Principal = Depends(admin_required), db: Session = Depends(get_db)):
    """Submissions for every quiz the admin created, newest first."""
    submissions = (
        db.query(QuizSubmission)
        .join(QuizSubmission.quiz)
        .options(joinedload(QuizSubmission.student), joinedload(QuizSubmission.quiz).joinedload(Quiz.jobsheet))
        .filter(Quiz.created_by == principal.id)
        .order_by(QuizSubmission.submitted_at.desc())
        .all()
    )
    return envelope(dump_many(AdminSubmissionOut, submissions))


@router.get("/quiz/{quiz_id}")
async def list_quiz_submissions(
    quiz_id: str,
    principal: Principal = Depends(admin_required),
    db: Session = Depends(get_db),
):
    """Submissions of one quiz, each with its answers and the answered question."""
    _own_quiz(db, quiz_id, principal, "You can only view submissions for your own quizzes")
    submissions = (
        db.query(QuizSubmission)
        .options(
            joinedload(QuizSubmission.student),
            joinedload(QuizSubmission.answers).joinedload(QuizAnswer.question),
        )
        .filter(QuizSubmission.quiz_id == quiz_id)
        .order_by(QuizSubmission.submitted_at.desc())
        .all()
    )
    return envelope(dump_many(SubmissionWithAnswersOut, submissions))


@router.get("/student")
async def list_student_submissions(principal: Principal = Depends(student_required), db: Session = Depends(get_db)):
    """The caller's own quiz submissions with quiz and class summaries."""
    submissions = (
        db.query(QuizSubmission)
        .options(joinedload(QuizSubmission.quiz).joinedload(Quiz.jobsheet))
        .filter(QuizSubmission.student_id == principal.id)
        .order_by(QuizSubmission.submitted_at.desc())
        .all()
    )
    return envelope(dump_many(StudentSubmissionOut, submissions))


@router.get("/analytics/{quiz_id}")
async def quiz_analytics(
    quiz_id: str,
    principal: Principal = Depends(admin_required),
    db: Session = Depends(get_db),
):
    _own_quiz(db, quiz_id, principal, "You can only view analytics for your own quizzes")
    submissions = db.query(QuizSubmission).filter(QuizSubmission.quiz_id == quiz_id).all()
    if not submissions:
        return envelope({
            "total_submissions": 0,
            "average_score": 0,
            "average_percentage": 0,
            "correctness_ratio": 0,
        })

    total_score = sum(s.score for s in submissions)
    total_points = sum(s.total_points for s in submissions)
    answers = [a for s in submissions for a in s.answers]
    correct = sum(1 for a in answers if a.is_correct)

    return envelope({
        "total_submissions": len(submissions),
        "average_score": round(total_score / len(submissions), 2),
        "average_percentage": round(total_score / total_points * 100, 2) if total_points else 0,
        "correctness_ratio": round(correct / len(answers) * 100, 2) if answers else 0,
    })
