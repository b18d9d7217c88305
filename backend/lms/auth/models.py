"""Authentication models: the authenticated principal and auth request schemas."""
from dataclasses import dataclass

from pydantic import EmailStr, Field, field_validator

from lms.models.enums import UserRole, STUDENT_ROLES
from lms.schemas import CamelModel, UUIDStr


@dataclass(frozen=True)
class Identity:
    """Identity as reported by the managed auth service."""
    id: str
    email: str = ""


@dataclass(frozen=True)
class Principal:
    """The authenticated caller of a request."""
    id: str
    email: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin

    @property
    def is_student(self) -> bool:
        return self.role in STUDENT_ROLES


def _strip_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Full name must not be blank")
    return v


class SignupRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1)

    @field_validator("full_name")
    @classmethod
    def full_name_not_blank(cls, v: str) -> str:
        return _strip_name(v)


class CreateAdminRequest(CamelModel):
    user_id: UUIDStr
    email: EmailStr
    full_name: str = Field(..., min_length=1)

    @field_validator("full_name")
    @classmethod
    def full_name_not_blank(cls, v: str) -> str:
        return _strip_name(v)

