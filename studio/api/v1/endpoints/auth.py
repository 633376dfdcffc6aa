"""Authentication endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from studio.api import deps
from studio.core.config import settings
from studio.core.errors import AuthError
from studio.models.user import User
from studio.schemas.auth import Token, UserLogin, UserRegister, UserResponse
from studio.services.auth import AuthService
from studio.session import SessionRegistry

router = APIRouter()


def user_to_response(user: User) -> UserResponse:
    # Convert UUIDs to strings for response
    return UserResponse(
        id=str(user.id),
        email=user.email,
        display_name=user.display_name,
        is_active=user.is_active,
        created_at=user.created_at,
    )


@router.post("/register/", response_model=UserResponse)
async def register(user_data: UserRegister, db: Session = Depends(deps.get_db)):
    """Register a new user."""
    try:
        user = AuthService.register(
            db,
            email=user_data.email,
            password=user_data.password,
            display_name=user_data.display_name,
        )
    except AuthError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return user_to_response(user)


@router.post("/login/", response_model=Token)
async def login(credentials: UserLogin, db: Session = Depends(deps.get_db)):
    """Login user and return access token."""
    try:
        user = AuthService.login(db, credentials.email, credentials.password)
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    return {
        "access_token": AuthService.token_for(user),
        "token_type": "bearer",
        "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,  # Convert to seconds
    }


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(deps.get_current_user)):
    """Get the signed-in user."""
    return user_to_response(current_user)


@router.post("/logout/")
async def logout(
    current_user: User = Depends(deps.get_current_user),
    sessions: SessionRegistry = Depends(deps.get_sessions),
):
    """Close the user's studio session. Tokens stay valid until they expire."""
    await sessions.close(str(current_user.id))
    return {"detail": "Logged out"}
