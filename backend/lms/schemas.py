"""Pydantic request and response schemas."""
import uuid
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from lms.models.enums import AnswerOption, MessageRole, UserRole


def _validate_uuid(value: str) -> str:
    try:
        return str(uuid.UUID(value))
    except (ValueError, AttributeError, TypeError):
        raise ValueError("must be a valid UUID")


UUIDStr = Annotated[str, AfterValidator(_validate_uuid)]


class CamelModel(BaseModel):
    """Request body accepting camelCase keys as sent by the web client, or snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# --- Requests ---

class QuizQuestionIn(CamelModel):
    question_text: str = Field(..., min_length=1)
    option_a: str = Field(..., min_length=1)
    option_b: str = Field(..., min_length=1)
    option_c: str = Field(..., min_length=1)
    option_d: str = Field(..., min_length=1)
    option_e: str = Field(..., min_length=1)
    correct_answer: AnswerOption
    points: float = Field(1, gt=0)
    order_index: int = Field(..., ge=0)


class QuizUpdate(CamelModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    time_limit: Optional[int] = Field(None, gt=0)
    questions: List[QuizQuestionIn] = Field(..., min_length=1)


class QuizCreate(QuizUpdate):
    class_id: UUIDStr


class QuizAnswerIn(CamelModel):
    question_id: UUIDStr
    answer: AnswerOption


class QuizSubmit(CamelModel):
    answers: List[QuizAnswerIn]


class GradeRequest(CamelModel):
    grade: float = Field(..., ge=0, le=100, strict=True)
    feedback: Optional[str] = None


class JobsheetFields(CamelModel):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)
    description: Optional[str] = None
    admin_id: Optional[UUIDStr] = None


class ModuleFields(CamelModel):
    class_id: UUIDStr
    title: str = Field(..., min_length=1)
    description: Optional[str] = None


class AssignmentFields(CamelModel):
    jobsheet_id: UUIDStr
    nim: str = Field(..., min_length=1)


class JobsheetSubmissionFields(CamelModel):
    module_id: UUIDStr


class ChatStart(CamelModel):
    submission_id: UUIDStr
    question_id: UUIDStr


class ChatMessageIn(CamelModel):
    content: str = Field(..., min_length=1, max_length=1000)


# --- Responses ---

class ProfileSummary(ORMModel):
    id: str
    full_name: Optional[str]
    email: str


class ProfileOut(ProfileSummary):
    role: UserRole
    created_at: Optional[datetime] = None


class JobsheetSummary(ORMModel):
    id: str
    name: str
    code: str


class JobsheetOut(JobsheetSummary):
    description: Optional[str]
    admin_id: str
    file_url: Optional[str]
    created_at: Optional[datetime]


class ModuleSummary(ORMModel):
    id: str
    title: str
    description: Optional[str]
    jobsheet: Optional[JobsheetSummary] = None


class ModuleOut(ModuleSummary):
    class_id: str
    file_url: Optional[str]
    uploaded_by: Optional[str]
    created_at: Optional[datetime]


class StudentQuestionOut(ORMModel):
    """Question as shown to students: no correct answer."""
    id: str
    question_text: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    option_e: Optional[str]
    points: float
    order_index: int


class QuestionOut(StudentQuestionOut):
    quiz_id: str
    correct_answer: str


class QuizOut(ORMModel):
    id: str
    class_id: str
    title: str
    description: Optional[str]
    time_limit: Optional[int]
    created_by: str
    is_published: bool
    created_at: Optional[datetime]
    jobsheet: Optional[JobsheetSummary] = None


class QuizWithQuestionsOut(QuizOut):
    questions: List[QuestionOut] = []


class QuizSummary(ORMModel):
    id: str
    title: str
    description: Optional[str]
    jobsheet: Optional[JobsheetSummary] = None


class AnswerQuestionSummary(ORMModel):
    id: str
    question_text: str
    correct_answer: str
    points: float
    order_index: int


class StudentAnswerOut(ORMModel):
    id: str
    question_id: str
    student_answer: Optional[str]
    is_correct: bool
    points_earned: float


class AnswerOut(StudentAnswerOut):
    question: Optional[AnswerQuestionSummary] = None


class SubmissionOut(ORMModel):
    id: str
    quiz_id: str
    student_id: str
    score: float
    total_points: float
    percentage: float
    submitted_at: Optional[datetime]


class StudentSubmissionOut(SubmissionOut):
    quiz: Optional[QuizSummary] = None


class AdminSubmissionOut(StudentSubmissionOut):
    student: Optional[ProfileSummary] = None


class SubmissionWithAnswersOut(SubmissionOut):
    student: Optional[ProfileSummary] = None
    answers: List[AnswerOut] = []


class AssignmentOut(ORMModel):
    id: str
    jobsheet_id: str
    student_id: str
    nim: str
    file_url: str
    file_name: Optional[str]
    grade: Optional[float]
    feedback: Optional[str]
    graded_by: Optional[str]
    graded_at: Optional[datetime]
    uploaded_at: Optional[datetime]


class AssignmentDetailOut(AssignmentOut):
    jobsheet: Optional[JobsheetSummary] = None
    student: Optional[ProfileSummary] = None


class JobsheetSubmissionOut(ORMModel):
    id: str
    module_id: str
    student_id: str
    file_url: str
    grade: Optional[float]
    feedback: Optional[str]
    graded_by: Optional[str]
    graded_at: Optional[datetime]
    submitted_at: Optional[datetime]


class JobsheetSubmissionWithStudentOut(JobsheetSubmissionOut):
    student: Optional[ProfileSummary] = None


class JobsheetSubmissionWithModuleOut(JobsheetSubmissionOut):
    module: Optional[ModuleSummary] = None


class ChatSessionOut(ORMModel):
    id: str
    submission_id: str
    student_id: str
    question_id: str
    created_at: Optional[datetime]
    last_message_at: Optional[datetime]


class ChatMessageOut(ORMModel):
    id: str
    session_id: str
    role: MessageRole
    content: str
    created_at: Optional[datetime]
