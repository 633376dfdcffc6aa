"""API Dependencies for dependency injection."""

import logging
import uuid
from collections.abc import Generator
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studio.core.config import settings
from studio.db.base import SessionLocal
from studio.models.user import User
from studio.services.auth import AuthService, CurrentUser
from studio.session import SessionRegistry, StudioSession

logger = logging.getLogger(__name__)

# auto_error=False so AUTH_DISABLED requests can arrive without a header
security = HTTPBearer(auto_error=False)

DEV_USER_EMAIL = "dev@studio.local"
DEV_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_or_create_dev_user(db: Session) -> User:
    """Get or create a development user for local testing."""
    dev_user = db.query(User).filter(User.email == DEV_USER_EMAIL).first()
    if dev_user:
        return dev_user

    dev_user = User(
        id=DEV_USER_ID,
        email=DEV_USER_EMAIL,
        display_name="Development User",
        hashed_password="not-used-in-dev-mode",
        is_active=True,
    )
    try:
        db.add(dev_user)
        db.commit()
        db.refresh(dev_user)
        logger.info("Created development user: %s", DEV_USER_EMAIL)
    except SQLAlchemyError as e:
        db.rollback()
        # Try to fetch again in case of race condition
        dev_user = db.query(User).filter(User.email == DEV_USER_EMAIL).first()
        if not dev_user:
            raise RuntimeError(f"Failed to create dev user: {e}")

    return dev_user


def unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user.

    With AUTH_DISABLED=true every request runs as the development user.
    """
    if settings.AUTH_DISABLED:
        return get_or_create_dev_user(db)

    if not credentials:
        raise unauthorized("Not authenticated")
    # Frontends sometimes send the literal string of an unset variable
    if credentials.credentials in ("", "undefined", "null"):
        raise unauthorized("Invalid token format")

    token_data = AuthService.verify_token(credentials.credentials)
    try:
        user_id = uuid.UUID(token_data.user_id) if token_data else None
    except ValueError:
        user_id = None
    if user_id is None:
        raise unauthorized("Could not validate credentials")

    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    return user


def get_sessions(request: Request) -> SessionRegistry:
    """Studio sessions of the running application."""
    return request.app.state.sessions


async def get_studio(
    current_user: User = Depends(get_current_user),
    sessions: SessionRegistry = Depends(get_sessions),
) -> StudioSession:
    """The signed-in user's studio session."""
    return await sessions.get(CurrentUser.from_model(current_user))
