"""FastAPI dependencies for authentication, authorization, and database access."""

import logging
from typing import Generator
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.security import decode_session_token
from app.db.enums import Role
from app.db.models import Membership, User
from app.db.session import SessionLocal
from app.schemas.auth import TokenPayload, UserSession

logger = logging.getLogger(__name__)

# Cookie and header names
COOKIE_NAME = "nemt_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session, closed after the response."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _read_token(request: Request) -> TokenPayload:
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        return TokenPayload.model_validate(decode_session_token(token))
    except (jwt.InvalidTokenError, ValidationError):
        raise HTTPException(status_code=401, detail="Invalid session")


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Resolve the user behind the session cookie.

    Raises:
        HTTPException 401: missing/invalid token, unknown or disabled user,
            or a token issued before the user's sessions were revoked
    """
    claims = _read_token(request)

    user = db.get(User, claims.user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    # Revocation: the CLI bumps token_version
    if user.token_version != claims.token_version:
        raise HTTPException(status_code=401, detail="Session revoked")

    return user


def get_current_session(request: Request, db: Session = Depends(get_db)) -> UserSession:
    """
    Session context (user, organization, role) for dispatch endpoints.

    Raises:
        HTTPException 401: Not authenticated
        HTTPException 403: No active membership or unknown role
    """
    user = get_current_user(request, db)

    membership = db.query(Membership).filter(
        Membership.user_id == user.id,
        Membership.is_active.is_(True),
    ).first()
    if not membership:
        raise HTTPException(status_code=403, detail="No organization membership")

    # Unknown role strings are a data problem, not a server error
    if not Role.has_value(membership.role):
        logger.warning(
            "Membership has unknown role",
            extra={"user_id": str(user.id), "org_id": str(membership.organization_id)},
        )
        raise HTTPException(
            status_code=403,
            detail=f"Unknown role '{membership.role}'. Contact administrator."
        )

    return UserSession(
        user_id=user.id,
        org_id=membership.organization_id,
        role=Role(membership.role),
        email=user.email,
        display_name=user.display_name,
    )


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations (POST, PATCH, PUT, DELETE).

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'"
        )


def get_permission_service(request: Request):
    """Permission service owned by the application (see main.py)."""
    return request.app.state.permission_service


def require_permission(permission):
    """
    Dependency factory for permission-based authorization.

    Usage:
        session: UserSession = Depends(require_permission(P.TRIPS_VIEW))
    """
    key = getattr(permission, "value", permission)

    def dependency(
        request: Request,
        db: Session = Depends(get_db),
        service=Depends(get_permission_service),
    ) -> UserSession:
        session = get_current_session(request, db)
        if not service.has_permission(db, session.org_id, session.role.value, key):
            raise HTTPException(
                status_code=403,
                detail=f"Missing permission '{key}'",
            )
        return session

    return dependency


def ensure_org_access(session: UserSession, organization_id: UUID) -> None:
    """
    Reject access to another organization's data.

    Raises:
        HTTPException 403: organization_id is not the session's org and the
            caller is not a super admin
    """
    if not session.can_access_org(organization_id):
        raise HTTPException(status_code=403, detail="Access denied for this organization")
