"""Authentication router: signup, admin promotion and the caller's profile."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from lms.database import get_db
from lms.models import Profile
from lms.schemas import ProfileOut
from lms.shaping import dump, envelope
from .models import CreateAdminRequest, Principal, SignupRequest
from .service import AccountService, AuthServiceClient, admin_required, get_auth_client, get_current_principal

router = APIRouter(prefix="/auth", tags=["Authentication"])


def get_account_service(
    db: Session = Depends(get_db),
    client: AuthServiceClient = Depends(get_auth_client),
) -> AccountService:
    """Dependency to get an instance of AccountService."""
    return AccountService(db, client)


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(body: SignupRequest, service: AccountService = Depends(get_account_service)):
    """Sign up a new mahasiswa. No email verification is required."""
    identity, profile = service.signup(body.email, body.password, body.full_name)
    return envelope({
        "message": "Account created successfully",
        "user": {"id": identity.id, "email": identity.email},
        "profile": dump(ProfileOut, profile),
    })


@router.post("/create-admin")
def create_admin(
    body: CreateAdminRequest,
    principal: Principal = Depends(admin_required),
    service: AccountService = Depends(get_account_service),
):
    """Promote an existing auth identity to admin (dosen)."""
    profile = service.create_admin(body.user_id, body.email, body.full_name)
    return envelope({"message": "Admin account created successfully", "profile": dump(ProfileOut, profile)})


@router.get("/me")
def read_me(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    """Get the current user's profile."""
    profile = db.get(Profile, principal.id)
    return envelope(dump(ProfileOut, profile))
