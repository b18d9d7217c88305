"""Module routes."""
import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from lms.auth import Principal, admin_required, authorize_owner, get_current_principal
from lms.config import Settings, get_settings
from lms.database import get_db
from lms.errors import NotFound
from lms.models import Jobsheet, Module
from lms.processing import try_extract_pdf_text
from lms.schemas import ModuleFields, ModuleOut
from lms.shaping import dump, dump_many, envelope
from lms.uploads import FileStorage, get_storage, parse_upload, read_pdf_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/modules", tags=["Modules"])

BUCKET = "modules"


@router.get("")
async def list_modules(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    """Admins see modules of their own classes, students see all modules."""
    query = db.query(Module).options(joinedload(Module.jobsheet))
    if principal.is_admin:
        query = query.join(Module.jobsheet).filter(Jobsheet.admin_id == principal.id)
    return envelope(dump_many(ModuleOut, query.order_by(Module.created_at.desc()).all()))


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_module(
    request: Request,
    principal: Principal = Depends(admin_required),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """Upload a module PDF into one of the caller's classes."""
    upload, fields = await parse_upload(request)
    data = await read_pdf_upload(upload, settings.max_file_size)
    body = ModuleFields.model_validate(fields)

    authorize_owner(
        lambda: db.get(Jobsheet, body.class_id),
        lambda j: j.admin_id,
        principal,
        forbidden="You can only upload modules to your own classes",
        not_found="Class not found",
    )

    stored = storage.save(BUCKET, upload.filename or "module.pdf", data)
    module = Module(
        class_id=body.class_id,
        title=body.title,
        description=body.description or None,
        file_url=stored.url,
        extracted_text=try_extract_pdf_text(data),
        uploaded_by=principal.id,
    )
    try:
        db.add(module)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        storage.remove(stored.bucket, stored.name)
        raise
    db.refresh(module)
    logger.info(f"Module {module.id} uploaded to class {module.class_id}")
    return envelope({"message": "Module uploaded successfully", "module": dump(ModuleOut, module)})


@router.get("/{module_id}")
async def get_module(
    module_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """A module with its parent class."""
    module = db.query(Module).options(joinedload(Module.jobsheet)).filter(Module.id == module_id).first()
    if module is None:
        raise NotFound("Module not found")
    return envelope(dump(ModuleOut, module))
