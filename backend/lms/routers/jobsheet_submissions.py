"""Jobsheet submission routes: one completed jobsheet per student and module."""
import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from lms.auth import Principal, admin_required, authorize_owner, student_required
from lms.config import Settings, get_settings
from lms.database import get_db
from lms.errors import NotFound, ValidationFailed
from lms.models import JobsheetSubmission, Module
from lms.models.base import utcnow
from lms.schemas import (
    GradeRequest, JobsheetSubmissionFields, JobsheetSubmissionOut, JobsheetSubmissionWithModuleOut,
    JobsheetSubmissionWithStudentOut,
)
from lms.shaping import dump, dump_many, envelope
from lms.uploads import FileStorage, get_storage, parse_upload, read_pdf_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobsheet-submissions", tags=["Jobsheet Submissions"])

BUCKET = "jobsheet-submissions"


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_jobsheet(
    request: Request,
    principal: Principal = Depends(student_required),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    upload, fields = await parse_upload(request)
    data = await read_pdf_upload(upload, settings.max_file_size)
    body = JobsheetSubmissionFields.model_validate(fields)

    if db.get(Module, body.module_id) is None:
        raise NotFound("Module not found")

    existing = (
        db.query(JobsheetSubmission)
        .filter(JobsheetSubmission.module_id == body.module_id, JobsheetSubmission.student_id == principal.id)
        .first()
    )
    if existing is not None:
        raise ValidationFailed("You have already submitted this jobsheet")

    stored = storage.save(BUCKET, upload.filename or "submission.pdf", data, prefix="submission-")
    submission = JobsheetSubmission(module_id=body.module_id, student_id=principal.id, file_url=stored.url)
    try:
        db.add(submission)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        storage.remove(stored.bucket, stored.name)
        raise
    db.refresh(submission)
    logger.info(f"Jobsheet submission {submission.id} for module {submission.module_id}")
    return envelope({"message": "Jobsheet submitted successfully", "submission": dump(JobsheetSubmissionOut, submission)})


@router.patch("/{submission_id}/grade")
async def grade_submission(
    submission_id: str,
    body: GradeRequest,
    principal: Principal = Depends(admin_required),
    db: Session = Depends(get_db),
):
    """Grade a submission for a module the caller uploaded or whose class they own."""
    submission = authorize_owner(
        lambda: db.query(JobsheetSubmission).filter(JobsheetSubmission.id == submission_id).with_for_update().first(),
        lambda s: s.module.owner_ids,
        principal,
        forbidden="You can only grade submissions for your own modules",
        not_found="Submission not found",
    )
    submission.grade = body.grade
    submission.feedback = body.feedback or None
    submission.graded_by = principal.id
    submission.graded_at = utcnow()
    db.commit()
    db.refresh(submission)
    return envelope({"message": "Submission graded successfully", "submission": dump(JobsheetSubmissionOut, submission)})


@router.get("/module/{module_id}")
async def list_module_submissions(
    module_id: str,
    principal: Principal = Depends(admin_required),
    db: Session = Depends(get_db),
):
    authorize_owner(
        lambda: db.get(Module, module_id),
        lambda m: m.owner_ids,
        principal,
        forbidden="You can only view submissions for your own modules",
    )
    submissions = (
        db.query(JobsheetSubmission)
        .options(joinedload(JobsheetSubmission.student))
        .filter(JobsheetSubmission.module_id == module_id)
        .order_by(JobsheetSubmission.submitted_at.desc())
        .all()
    )
    return envelope(dump_many(JobsheetSubmissionWithStudentOut, submissions))


@router.get("/student")
async def list_student_submissions(principal: Principal = Depends(student_required), db: Session = Depends(get_db)):
    submissions = (
        db.query(JobsheetSubmission)
        .options(joinedload(JobsheetSubmission.module).joinedload(Module.jobsheet))
        .filter(JobsheetSubmission.student_id == principal.id)
        .order_by(JobsheetSubmission.submitted_at.desc())
        .all()
    )
    return envelope(dump_many(JobsheetSubmissionWithModuleOut, submissions))
