"""Admin-only user management routes."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lms.auth import Principal, admin_required
from lms.database import get_db
from lms.models import Profile
from lms.schemas import ProfileOut
from lms.shaping import dump_many, envelope

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/users")
async def list_users(principal: Principal = Depends(admin_required), db: Session = Depends(get_db)):
    """All profiles, newest first."""
    profiles = db.query(Profile).order_by(Profile.created_at.desc()).all()
    return envelope(dump_many(ProfileOut, profiles))
