"""
Authentication provider.

``AuthService`` handles credentials and tokens against the users table.
``AuthState`` is the per-session view of who is signed in; it announces
changes on the event bus as ``auth:logged-in`` and ``auth:logged-out``.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from studio.core.config import settings
from studio.core.errors import AuthError, NotAuthenticatedError
from studio.core.events import EventBus
from studio.models import User
from studio.schemas.auth import TokenData

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

LOGGED_IN = "auth:logged-in"
LOGGED_OUT = "auth:logged-out"

ERROR_MESSAGES = {
    "email-already-in-use": "This email is already in use",
    "invalid-email": "Invalid email format",
    "weak-password": f"Password is too weak (at least {settings.MIN_PASSWORD_LENGTH} characters)",
    "user-disabled": "This account is disabled",
    "user-not-found": "User not found",
    "invalid-credential": "Invalid email or password",
    "not-authenticated": "Please sign in first",
}


def error_message(code: str) -> str:
    """Friendly text for an auth error code."""
    return ERROR_MESSAGES.get(code, f"Unknown error: {code}")


class AuthService:
    """Service for handling authentication operations"""

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash"""
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def get_password_hash(password: str) -> str:
        """Hash a password"""
        return pwd_context.hash(password)

    @staticmethod
    def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
        """Create a JWT access token"""
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        )
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def verify_token(token: str) -> TokenData | None:
        """Verify and decode a JWT token"""
        if not token or not isinstance(token, str):
            return None
        try:
            payload = jwt.decode(
                token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
            )
        except JWTError:
            return None
        user_id = payload.get("sub")
        if user_id is None:
            return None
        return TokenData(user_id=user_id, email=payload.get("email"))

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> User | None:
        return db.query(User).filter(User.email == email.strip().lower()).first()

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> User | None:
        """Authenticate a user by email and password"""
        user = AuthService.get_user_by_email(db, email)
        if not user:
            return None
        if not AuthService.verify_password(password, user.hashed_password):
            return None
        return user

    @staticmethod
    def register(
        db: Session,
        email: str,
        password: str,
        display_name: str | None = None,
    ) -> User:
        """Create a new user, rejecting taken emails and short passwords."""
        email = email.strip().lower()
        if "@" not in email:
            raise AuthError(error_message("invalid-email"), "invalid-email")
        if len(password or "") < settings.MIN_PASSWORD_LENGTH:
            raise AuthError(error_message("weak-password"), "weak-password")
        if AuthService.get_user_by_email(db, email):
            raise AuthError(error_message("email-already-in-use"), "email-already-in-use")

        user = User(
            email=email,
            display_name=display_name or email.split("@")[0],
            hashed_password=AuthService.get_password_hash(password),
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("Registered user %s", user.email)
        return user

    @staticmethod
    def login(db: Session, email: str, password: str) -> User:
        """Check credentials and stamp ``last_login``."""
        user = AuthService.authenticate_user(db, email, password)
        if not user:
            raise AuthError(error_message("invalid-credential"), "invalid-credential")
        if not user.is_active:
            raise AuthError(error_message("user-disabled"), "user-disabled")

        user.last_login = datetime.now(timezone.utc)
        db.commit()
        logger.info("User logged in: %s", user.email)
        return user

    @staticmethod
    def token_for(user: User) -> str:
        return AuthService.create_access_token(
            data={"sub": str(user.id), "email": user.email},
            expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )


@dataclass(frozen=True)
class CurrentUser:
    """Detached snapshot of the signed-in user."""
    id: str
    email: str
    display_name: str | None = None

    @classmethod
    def from_model(cls, user: User) -> "CurrentUser":
        return cls(id=str(user.id), email=user.email, display_name=user.display_name)


class AuthState:
    """Who is signed in for one studio session."""

    def __init__(self, bus: EventBus):
        self.bus = bus
        self._user: Optional[CurrentUser] = None

    @property
    def current_user(self) -> Optional[CurrentUser]:
        return self._user

    def is_authenticated(self) -> bool:
        return self._user is not None

    def require_user_id(self) -> str:
        """User id for store scoping; raises when nobody is signed in."""
        if self._user is None:
            raise NotAuthenticatedError(error_message("not-authenticated"))
        return self._user.id

    def sign_in_as(self, user: User | CurrentUser) -> CurrentUser:
        if isinstance(user, User):
            user = CurrentUser.from_model(user)
        if self._user == user:
            return user
        self._user = user
        self.bus.publish(LOGGED_IN, user)
        return user

    def login(self, db: Session, email: str, password: str) -> CurrentUser:
        return self.sign_in_as(AuthService.login(db, email, password))

    def register(
        self, db: Session, email: str, password: str, display_name: str | None = None
    ) -> CurrentUser:
        return self.sign_in_as(AuthService.register(db, email, password, display_name))

    def logout(self) -> None:
        if self._user is None:
            return
        logger.info("User logged out: %s", self._user.email)
        self._user = None
        self.bus.publish(LOGGED_OUT, None)

    def on_change(self, handler: Callable[[Optional[CurrentUser]], None]) -> Callable[[], None]:
        """Call ``handler`` with the user on sign-in and ``None`` on sign-out."""
        unsubscribe_in = self.bus.subscribe(LOGGED_IN, handler)
        unsubscribe_out = self.bus.subscribe(LOGGED_OUT, handler)

        def unsubscribe() -> None:
            unsubscribe_in()
            unsubscribe_out()

        return unsubscribe
