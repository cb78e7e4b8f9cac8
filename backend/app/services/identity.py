# backend/app/services/identity.py
import secrets
from datetime import timedelta
from typing import Optional

import bcrypt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.errors import AuthenticationError, ConflictError, StoreError, ValidationError
from backend.app.logging_config import get_logger
from backend.app.models.transaction_model import utcnow
from backend.app.models.user_model import AuthSession, User

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))


def _normalize_email(email: Optional[str]) -> str:
    email = (email or "").strip().lower()
    if "@" not in email:
        raise ValidationError("Please provide a valid email", field="email")
    return email


class IdentityService:
    """Registers users and turns bearer tokens into owner ids."""

    def __init__(self, db: Session, session_ttl_hours: int = 24 * 7):
        self.db = db
        self.session_ttl = timedelta(hours=session_ttl_hours)

    def _issue_token(self, user: User) -> str:
        now = utcnow()
        session = AuthSession(
            token=secrets.token_urlsafe(32),
            user_id=user.id,
            created_at=now,
            expires_at=now + self.session_ttl,
        )
        try:
            self.db.add(session)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError("Could not create session") from e
        return session.token

    def register(self, name: str, email: str, password: str) -> tuple[User, str]:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required", field="name")
        email = _normalize_email(email)
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
            )

        if self.db.query(User).filter(User.email == email).first():
            raise ConflictError("User already exists with this email", field="email")

        user = User(name=name, email=email, password_hash=hash_password(password))
        try:
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("User already exists with this email", field="email") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError("Could not register user") from e

        logger.info("User registered", user_id=user.id)
        return user, self._issue_token(user)

    def login(self, email: str, password: str) -> tuple[User, str]:
        user = self.db.query(User).filter(User.email == (email or "").strip().lower()).first()
        # same message for unknown email and wrong password
        if user is None or not verify_password(password or "", user.password_hash):
            raise AuthenticationError("Invalid credentials")
        logger.info("User logged in", user_id=user.id)
        return user, self._issue_token(user)

    def resolve(self, token: Optional[str]) -> User:
        if not token:
            raise AuthenticationError("No token, authorization denied")
        session = self.db.query(AuthSession).filter(AuthSession.token == token).first()
        if session is None:
            raise AuthenticationError("Token is invalid")
        if session.expires_at <= utcnow():
            raise AuthenticationError("Token has expired")
        user = self.db.get(User, session.user_id)
        if user is None:
            raise AuthenticationError("Token is invalid")
        return user

    def logout(self, token: str) -> None:
        try:
            self.db.query(AuthSession).filter(AuthSession.token == token).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError("Could not end session") from e
