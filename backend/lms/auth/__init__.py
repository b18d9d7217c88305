"""Authentication and authorization."""

from .router import router as auth_router
from .models import Identity, Principal
from .service import (
    admin_required,
    student_required,
    authenticate,
    authorize_owner,
    get_current_principal,
    require_role,
    requires_role,
)

__all__ = [
    "auth_router",
    "Identity",
    "Principal",
    "authenticate",
    "authorize_owner",
    "get_current_principal",
    "require_role",
    "requires_role",
    "admin_required",
    "student_required",
]
