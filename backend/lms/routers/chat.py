"""AI tutor chat about incorrectly answered quiz questions."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from lms.auth import Principal, student_required
from lms.database import get_db
from lms.errors import NotFound, Unexpected, ValidationFailed
from lms.models import AIChatMessage, AIChatSession, MessageRole, QuizAnswer, QuizQuestion, QuizSubmission
from lms.models.base import utcnow
from lms.schemas import ChatMessageIn, ChatMessageOut, ChatSessionOut, ChatStart
from lms.shaping import dump, dump_many, envelope
from lms.tutor import (
    CORRECT_ANSWER_NOTE, TutorClient, TutorError, build_context, detect_correct_answer, get_tutor, question_number,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai/chat", tags=["AI Chat"])


def _find_answer(db: Session, submission_id: str, question_id: str) -> Optional[QuizAnswer]:
    return (
        db.query(QuizAnswer)
        .filter(QuizAnswer.submission_id == submission_id, QuizAnswer.question_id == question_id)
        .first()
    )


def _context_for(submission: QuizSubmission, question: QuizQuestion, answer: Optional[QuizAnswer]) -> str:
    quiz = submission.quiz
    module_text = quiz.jobsheet.extracted_text if quiz.jobsheet else None
    return build_context(
        question,
        answer.student_answer if answer else None,
        question_number(quiz.questions, question),
        module_text,
    )


def _own_session(db: Session, session_id: str, principal: Principal) -> AIChatSession:
    session = (
        db.query(AIChatSession)
        .filter(AIChatSession.id == session_id, AIChatSession.student_id == principal.id)
        .first()
    )
    if session is None:
        raise NotFound("Chat session not found")
    return session


def _session_payload(session: AIChatSession) -> dict:
    return {"session": dump(ChatSessionOut, session), "messages": dump_many(ChatMessageOut, session.messages)}


@router.post("/start", status_code=status.HTTP_201_CREATED)
async def start_chat(
    body: ChatStart,
    response: Response,
    principal: Principal = Depends(student_required),
    db: Session = Depends(get_db),
    tutor: TutorClient = Depends(get_tutor),
):
    """Open (or resume) the tutor conversation for one incorrect answer."""
    submission = (
        db.query(QuizSubmission)
        .filter(QuizSubmission.id == body.submission_id, QuizSubmission.student_id == principal.id)
        .first()
    )
    if submission is None:
        raise NotFound("Submission not found")

    question = (
        db.query(QuizQuestion)
        .filter(QuizQuestion.id == body.question_id, QuizQuestion.quiz_id == submission.quiz_id)
        .first()
    )
    if question is None:
        raise NotFound("Question not found")

    answer = _find_answer(db, submission.id, question.id)
    if answer is None or answer.is_correct:
        raise ValidationFailed("Chat is only available for incorrect answers")

    existing = (
        db.query(AIChatSession)
        .filter(AIChatSession.submission_id == submission.id, AIChatSession.question_id == question.id)
        .first()
    )
    if existing is not None:
        response.status_code = status.HTTP_200_OK
        return envelope(_session_payload(existing))

    session = AIChatSession(submission_id=submission.id, student_id=principal.id, question_id=question.id)
    db.add(session)
    db.flush()

    try:
        opening = await tutor.reply(_context_for(submission, question, answer), [])
    except TutorError as e:
        db.rollback()
        logger.error(f"Tutor failed to open session for question {question.id}: {e}")
        raise Unexpected(f"Failed to generate AI response: {e}")

    now = utcnow()
    session.messages.append(AIChatMessage(role=MessageRole.assistant, content=opening, created_at=now))
    session.last_message_at = now
    db.commit()
    db.refresh(session)
    logger.info(f"Chat session {session.id} started")
    return envelope({"message": "Chat session started", **_session_payload(session)})


@router.get("/{session_id}")
async def get_chat(
    session_id: str,
    principal: Principal = Depends(student_required),
    db: Session = Depends(get_db),
):
    """A session with its messages in chronological order."""
    return envelope(_session_payload(_own_session(db, session_id, principal)))


@router.post("/{session_id}/message")
async def send_message(
    session_id: str,
    body: ChatMessageIn,
    principal: Principal = Depends(student_required),
    db: Session = Depends(get_db),
    tutor: TutorClient = Depends(get_tutor),
):
    """Send a student message and store it together with the tutor's reply."""
    session = _own_session(db, session_id, principal)
    question = session.question
    submission = session.submission
    answer = _find_answer(db, submission.id, question.id)

    context = _context_for(submission, question, answer)
    if detect_correct_answer(body.content, question.correct_answer):
        logger.info(f"Correct answer detected in chat session {session.id}")
        context += "\n" + CORRECT_ANSWER_NOTE

    history = [{"role": m.role.value, "content": m.content} for m in session.messages]
    history.append({"role": MessageRole.user.value, "content": body.content})

    sent_at = utcnow()
    try:
        reply = await tutor.reply(context, history)
    except TutorError as e:
        logger.error(f"Tutor failed in chat session {session.id}: {e}")
        raise Unexpected(f"Failed to generate AI response: {e}")

    user_message = AIChatMessage(session_id=session.id, role=MessageRole.user, content=body.content, created_at=sent_at)
    ai_message = AIChatMessage(session_id=session.id, role=MessageRole.assistant, content=reply, created_at=utcnow())
    db.add_all([user_message, ai_message])
    session.last_message_at = ai_message.created_at
    db.commit()
    db.refresh(user_message)
    db.refresh(ai_message)

    return envelope({
        "message": "Message sent successfully",
        "user_message": dump(ChatMessageOut, user_message),
        "ai_message": dump(ChatMessageOut, ai_message),
    })
