"""Identity verification, role gating and ownership checks shared by all routes."""
import logging
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, TypeVar, Union

import requests
from fastapi import Depends, Header
from jose import JWTError, jwt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lms.config import Settings, get_settings
from lms.database import get_db
from lms.errors import Forbidden, NotFound, Unauthenticated, Unexpected, ValidationFailed
from lms.models import Profile, STUDENT_ROLES, UserRole
from .models import Identity, Principal

logger = logging.getLogger(__name__)

T = TypeVar("T")

BEARER_PREFIX = "Bearer "
ALGORITHM = "HS256"


class AuthServiceError(Exception):
    """Raised when the managed auth service rejects a call."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class AuthServiceClient:
    """Minimal client for the managed auth service (GoTrue REST API)."""

    def __init__(self, base_url: str, service_key: str, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout

    def _headers(self, bearer: Optional[str] = None) -> Dict[str, str]:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {bearer or self.service_key}",
        }

    @staticmethod
    def _error_message(resp) -> str:
        try:
            body = resp.json()
        except ValueError:
            return resp.text or f"Auth service returned {resp.status_code}"
        return body.get("msg") or body.get("message") or body.get("error_description") or str(body)

    def get_user(self, token: str) -> Optional[Identity]:
        """Exchange a bearer token for the identity it was issued to."""
        resp = requests.get(f"{self.base_url}/auth/v1/user", headers=self._headers(token), timeout=self.timeout)
        if resp.status_code != 200:
            return None
        data = resp.json()
        if not data.get("id"):
            return None
        return Identity(id=data["id"], email=data.get("email") or "")

    def get_user_by_id(self, user_id: str) -> Optional[Identity]:
        resp = requests.get(
            f"{self.base_url}/auth/v1/admin/users/{user_id}", headers=self._headers(), timeout=self.timeout
        )
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise AuthServiceError(self._error_message(resp), resp.status_code)
        data = resp.json()
        return Identity(id=data["id"], email=data.get("email") or "")

    def create_user(self, email: str, password: str, full_name: str) -> Identity:
        """Create a confirmed identity; no verification email is sent."""
        resp = requests.post(
            f"{self.base_url}/auth/v1/admin/users",
            headers=self._headers(),
            json={
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": {"full_name": full_name},
            },
            timeout=self.timeout,
        )
        if resp.status_code not in (200, 201):
            raise AuthServiceError(self._error_message(resp), resp.status_code)
        data = resp.json()
        return Identity(id=data["id"], email=data.get("email") or email)

    def delete_user(self, user_id: str) -> None:
        resp = requests.delete(
            f"{self.base_url}/auth/v1/admin/users/{user_id}", headers=self._headers(), timeout=self.timeout
        )
        if resp.status_code not in (200, 204, 404):
            raise AuthServiceError(self._error_message(resp), resp.status_code)


class IdentityVerifier:
    """Turns a bearer token into an :class:`Identity` or raises ``Unauthenticated``."""

    def verify(self, token: str) -> Identity:
        raise NotImplementedError


class JWTIdentityVerifier(IdentityVerifier):
    """Verifies tokens locally with the auth service's JWT secret."""

    def __init__(self, secret: str, audience: Optional[str] = "authenticated"):
        self.secret = secret
        self.audience = audience

    def verify(self, token: str) -> Identity:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[ALGORITHM], audience=self.audience)
        except JWTError:
            raise Unauthenticated("Invalid or expired token")
        user_id = payload.get("sub")
        if not user_id:
            raise Unauthenticated("Invalid or expired token")
        return Identity(id=user_id, email=payload.get("email") or "")


class RemoteIdentityVerifier(IdentityVerifier):
    """Verifies tokens by asking the auth service who they belong to."""

    def __init__(self, client: AuthServiceClient):
        self.client = client

    def verify(self, token: str) -> Identity:
        try:
            identity = self.client.get_user(token)
        except requests.RequestException as e:
            logger.error(f"Auth service unreachable: {e}")
            raise Unexpected("Authentication service unavailable")
        if identity is None:
            raise Unauthenticated("Invalid or expired token")
        return identity


class UnconfiguredIdentityVerifier(IdentityVerifier):
    """Used when neither a JWT secret nor the auth service is configured."""

    def __init__(self, missing):
        self.missing = list(missing)

    def verify(self, token: str) -> Identity:
        raise Unexpected(f"Auth service not configured: missing {', '.join(self.missing)}")


def get_auth_client(settings: Settings = Depends(get_settings)) -> AuthServiceClient:
    """Dependency to get the auth service client."""
    missing = settings.missing_auth_settings()
    if missing:
        raise Unexpected(f"Auth service not configured: missing {', '.join(missing)}")
    return AuthServiceClient(settings.auth_url, settings.auth_service_key)


def get_identity_verifier(settings: Settings = Depends(get_settings)) -> IdentityVerifier:
    """Dependency choosing local JWT verification when a secret is configured."""
    if settings.jwt_secret:
        return JWTIdentityVerifier(settings.jwt_secret, settings.jwt_audience)
    missing = settings.missing_auth_settings()
    if missing:
        return UnconfiguredIdentityVerifier(missing)
    return RemoteIdentityVerifier(get_auth_client(settings))


def authenticate(authorization: Optional[str], verifier: IdentityVerifier, db: Session) -> Principal:
    """Resolve the ``Authorization`` header to a :class:`Principal`.

    Every call re-verifies the token; nothing is cached between requests.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise Unauthenticated("Missing or invalid authorization header")
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise Unauthenticated("Missing or invalid authorization header")

    identity = verifier.verify(token)

    profile = db.query(Profile).filter(Profile.id == identity.id).first()
    if profile is None:
        raise Unauthenticated("User profile not found")

    return Principal(id=profile.id, email=identity.email or profile.email, role=UserRole(profile.role))


def get_current_principal(
    authorization: Optional[str] = Header(None),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
    db: Session = Depends(get_db),
) -> Principal:
    """Dependency to get the authenticated caller."""
    return authenticate(authorization, verifier, db)


def require_role(principal: Principal, *roles: UserRole) -> None:
    """Reject the principal unless its role is exactly one of ``roles``."""
    if principal.role not in roles:
        names = ", ".join(r.value for r in roles)
        raise Forbidden(f"This action requires one of these roles: {names}")


def requires_role(*roles: UserRole) -> Callable[..., Principal]:
    """Build a dependency that authenticates and then applies the role gate."""

    def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        require_role(principal, *roles)
        return principal

    return dependency


def authorize_owner(
    fetch: Callable[[], Optional[T]],
    owner_ids: Callable[[T], Union[str, Iterable[Optional[str]], None]],
    principal: Principal,
    *,
    forbidden: str,
    not_found: Optional[str] = None,
) -> T:
    """Fetch a resource and make sure the principal owns it.

    ``owner_ids`` returns the id, or several ids, allowed to act on the
    resource. Without a ``not_found`` message a missing resource is reported
    as forbidden so that its existence is not revealed.
    """
    resource = fetch()
    if resource is None:
        if not_found is None:
            raise Forbidden(forbidden)
        raise NotFound(not_found)

    owners: Any = owner_ids(resource)
    if owners is None or isinstance(owners, str):
        owners = (owners,)
    if principal.id not in owners:
        raise Forbidden(forbidden)
    return resource


class AccountService:
    """Profile lifecycle on top of the managed auth service."""

    def __init__(self, db: Session, client: AuthServiceClient):
        self.db = db
        self.client = client

    def signup(self, email: str, password: str, full_name: str) -> Tuple[Identity, Profile]:
        """Create a confirmed identity and its ``mahasiswa`` profile."""
        if self.db.query(Profile).filter(Profile.email == email).first() is not None:
            raise ValidationFailed("Email already registered")

        try:
            identity = self.client.create_user(email, password, full_name)
        except AuthServiceError as e:
            lowered = e.message.lower()
            if "already registered" in lowered or "already exists" in lowered or e.status_code == 422:
                raise ValidationFailed("Email already registered")
            raise Unexpected(e.message)

        profile = Profile(id=identity.id, email=email, full_name=full_name, role=UserRole.mahasiswa)
        try:
            self.db.add(profile)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(f"Profile insert failed for {identity.id}; removing auth identity")
            self.client.delete_user(identity.id)
            raise
        self.db.refresh(profile)
        logger.info(f"Created mahasiswa profile {profile.id}")
        return identity, profile

    def create_admin(self, user_id: str, email: str, full_name: str) -> Profile:
        """Upsert the profile of an existing auth identity with the admin role."""
        try:
            identity = self.client.get_user_by_id(user_id)
        except AuthServiceError as e:
            raise Unexpected(e.message)
        if identity is None:
            raise NotFound("User must be created in the auth service first")

        profile = self.db.query(Profile).filter(Profile.id == user_id).with_for_update().first()
        if profile is None:
            profile = Profile(id=user_id)
            self.db.add(profile)
        profile.email = email
        profile.full_name = full_name
        profile.role = UserRole.admin
        self.db.commit()
        self.db.refresh(profile)
        logger.info(f"Profile {profile.id} promoted to admin")
        return profile


admin_required = requires_role(UserRole.admin)
student_required = requires_role(*STUDENT_ROLES)
