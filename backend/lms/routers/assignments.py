"""Jobsheet assignment routes: student uploads and admin grading."""
import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from lms.auth import Principal, admin_required, authorize_owner, get_current_principal, student_required
from lms.config import Settings, get_settings
from lms.database import get_db
from lms.errors import Forbidden, NotFound, ValidationFailed
from lms.models import Jobsheet, JobsheetAssignment
from lms.models.base import utcnow
from lms.schemas import AssignmentDetailOut, AssignmentFields, AssignmentOut, GradeRequest
from lms.shaping import dump, dump_many, envelope, group_by_student, student_groups
from lms.uploads import FileStorage, get_storage, parse_upload, read_pdf_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobsheet-assignments", tags=["Jobsheet Assignments"])

MAX_UPLOADS_PER_JOBSHEET = 4


def bucket_for_upload(number: int) -> str:
    """Each of a student's uploads for a jobsheet goes to its own bucket."""
    return "jobsheet-assignments" if number == 1 else f"jobsheet-assignments-{number}"


def _detailed(query):
    return query.options(joinedload(JobsheetAssignment.student), joinedload(JobsheetAssignment.jobsheet))


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_assignment(
    request: Request,
    principal: Principal = Depends(student_required),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """Upload one of at most four assignment files for a jobsheet."""
    upload, fields = await parse_upload(request)
    data = await read_pdf_upload(upload, settings.max_file_size)
    body = AssignmentFields.model_validate(fields)

    if db.get(Jobsheet, body.jobsheet_id) is None:
        raise NotFound("Jobsheet not found")

    existing = (
        db.query(JobsheetAssignment)
        .filter(JobsheetAssignment.jobsheet_id == body.jobsheet_id, JobsheetAssignment.student_id == principal.id)
        .count()
    )
    if existing >= MAX_UPLOADS_PER_JOBSHEET:
        raise ValidationFailed(f"You can only upload maximum {MAX_UPLOADS_PER_JOBSHEET} files per jobsheet")

    file_name = upload.filename or "assignment.pdf"
    stored = storage.save(bucket_for_upload(existing + 1), file_name, data, prefix="assignment-")
    assignment = JobsheetAssignment(
        jobsheet_id=body.jobsheet_id,
        student_id=principal.id,
        nim=body.nim,
        file_url=stored.url,
        file_name=file_name,
    )
    try:
        db.add(assignment)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        storage.remove(stored.bucket, stored.name)
        raise
    db.refresh(assignment)
    logger.info(f"Assignment {assignment.id} uploaded for jobsheet {assignment.jobsheet_id}")
    return envelope({"message": "Assignment uploaded successfully", "assignment": dump(AssignmentOut, assignment)})


@router.get("/all")
async def list_all_assignments(principal: Principal = Depends(admin_required), db: Session = Depends(get_db)):
    """Assignments across the admin's jobsheets, grouped per student and NIM."""
    assignments = (
        _detailed(db.query(JobsheetAssignment))
        .join(Jobsheet, JobsheetAssignment.jobsheet_id == Jobsheet.id)
        .filter(Jobsheet.admin_id == principal.id)
        .order_by(JobsheetAssignment.uploaded_at.desc())
        .all()
    )
    return envelope({
        "assignments": dump_many(AssignmentDetailOut, assignments),
        "grouped_by_student": student_groups(assignments, lambda a: dump(AssignmentDetailOut, a)),
    })


@router.get("/jobsheet/{jobsheet_id}")
async def list_jobsheet_assignments(
    jobsheet_id: str,
    principal: Principal = Depends(admin_required),
    db: Session = Depends(get_db),
):
    """Assignments of one owned jobsheet, newest first, grouped per student and NIM."""
    authorize_owner(
        lambda: db.get(Jobsheet, jobsheet_id),
        lambda j: j.admin_id,
        principal,
        forbidden="You can only view assignments for your own jobsheets",
        not_found="Jobsheet not found",
    )
    assignments = (
        _detailed(db.query(JobsheetAssignment))
        .filter(JobsheetAssignment.jobsheet_id == jobsheet_id)
        .order_by(JobsheetAssignment.uploaded_at.desc())
        .all()
    )
    return envelope({
        "assignments": dump_many(AssignmentDetailOut, assignments),
        "grouped_by_student": [dump_many(AssignmentDetailOut, bucket) for bucket in group_by_student(assignments)],
    })


@router.get("/student")
async def list_student_assignments(principal: Principal = Depends(student_required), db: Session = Depends(get_db)):
    assignments = (
        db.query(JobsheetAssignment)
        .options(joinedload(JobsheetAssignment.jobsheet))
        .filter(JobsheetAssignment.student_id == principal.id)
        .order_by(JobsheetAssignment.uploaded_at.desc())
        .all()
    )
    return envelope(dump_many(AssignmentDetailOut, assignments))


@router.put("/{assignment_id}/grade")
async def grade_assignment(
    assignment_id: str,
    body: GradeRequest,
    principal: Principal = Depends(admin_required),
    db: Session = Depends(get_db),
):
    """Grade an assignment of a jobsheet the caller owns."""
    assignment = authorize_owner(
        lambda: db.query(JobsheetAssignment).filter(JobsheetAssignment.id == assignment_id).with_for_update().first(),
        lambda a: a.jobsheet.admin_id,
        principal,
        forbidden="You can only grade assignments for your own jobsheets",
        not_found="Assignment not found",
    )
    assignment.grade = body.grade
    assignment.feedback = body.feedback or None
    assignment.graded_by = principal.id
    assignment.graded_at = utcnow()
    db.commit()
    db.refresh(assignment)
    logger.info(f"Assignment {assignment.id} graded {body.grade} by {principal.id}")
    return envelope({"message": "Assignment graded successfully", "assignment": dump(AssignmentOut, assignment)})


@router.delete("/{assignment_id}")
async def delete_assignment(
    assignment_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    """Students delete their own uploads; admins delete uploads on their jobsheets."""
    assignment = (
        db.query(JobsheetAssignment).filter(JobsheetAssignment.id == assignment_id).with_for_update().first()
    )
    if assignment is None:
        raise NotFound("Assignment not found")
    if principal.is_admin:
        if assignment.jobsheet.admin_id != principal.id:
            raise Forbidden("You can only delete assignments from your own jobsheets")
    elif assignment.student_id != principal.id:
        raise Forbidden("You can only delete your own assignments")

    file_url = assignment.file_url
    db.delete(assignment)
    db.commit()

    try:
        storage_deleted = storage.remove_url(file_url)
    except OSError as e:
        logger.error(f"Could not remove stored file for assignment {assignment_id}: {e}")
        storage_deleted = False
    logger.info(f"Assignment {assignment_id} deleted by {principal.id}")
    return envelope({
        "message": "Assignment deleted successfully",
        "deleted": {"assignment_id": assignment_id, "storage_deleted": storage_deleted, "database_deleted": True},
    })
