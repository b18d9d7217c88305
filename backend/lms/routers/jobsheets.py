"""Jobsheet (class) routes."""
import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lms.auth import Principal, admin_required, authorize_owner, get_current_principal
from lms.config import Settings, get_settings
from lms.database import get_db
from lms.errors import Forbidden, NotFound
from lms.models import Jobsheet
from lms.processing import try_extract_pdf_text
from lms.schemas import JobsheetFields, JobsheetOut
from lms.shaping import dump, dump_many, envelope
from lms.uploads import FileStorage, get_storage, parse_upload, read_pdf_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobsheet", tags=["Jobsheets"])

BUCKET = "jobsheets"


@router.get("")
async def list_jobsheets(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    """Admins see their own jobsheets, students see all of them."""
    query = db.query(Jobsheet)
    if principal.is_admin:
        query = query.filter(Jobsheet.admin_id == principal.id)
    return envelope(dump_many(JobsheetOut, query.order_by(Jobsheet.created_at.desc()).all()))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_jobsheet(
    request: Request,
    principal: Principal = Depends(admin_required),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """Create a jobsheet from an uploaded PDF."""
    upload, fields = await parse_upload(request)
    data = await read_pdf_upload(upload, settings.max_file_size)
    body = JobsheetFields.model_validate(fields)

    stored = storage.save(BUCKET, upload.filename or "jobsheet.pdf", data, prefix="jobsheet-")
    jobsheet = Jobsheet(
        name=body.name,
        code=body.code,
        description=body.description or None,
        admin_id=body.admin_id or principal.id,
        file_url=stored.url,
        extracted_text=try_extract_pdf_text(data),
    )
    try:
        db.add(jobsheet)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        storage.remove(stored.bucket, stored.name)
        raise
    db.refresh(jobsheet)
    logger.info(f"Jobsheet {jobsheet.id} created by {principal.id}")
    return envelope({"message": "Jobsheet created successfully", "jobsheet": dump(JobsheetOut, jobsheet)})


@router.get("/{jobsheet_id}")
async def get_jobsheet(
    jobsheet_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    jobsheet = db.get(Jobsheet, jobsheet_id)
    if jobsheet is None:
        raise NotFound("Jobsheet not found")
    if principal.is_admin and jobsheet.admin_id != principal.id:
        raise Forbidden("You can only access your own jobsheets")
    return envelope(dump(JobsheetOut, jobsheet))


@router.delete("/{jobsheet_id}")
async def delete_jobsheet(
    jobsheet_id: str,
    principal: Principal = Depends(admin_required),
    db: Session = Depends(get_db),
):
    """Delete a jobsheet together with its modules, quizzes and assignments."""
    jobsheet = authorize_owner(
        lambda: db.query(Jobsheet).filter(Jobsheet.id == jobsheet_id).with_for_update().first(),
        lambda j: j.admin_id,
        principal,
        forbidden="You can only delete your own jobsheets",
        not_found="Jobsheet not found",
    )
    db.delete(jobsheet)
    db.commit()
    logger.info(f"Jobsheet {jobsheet_id} deleted by {principal.id}")
    return envelope({"message": "Jobsheet deleted successfully"})
