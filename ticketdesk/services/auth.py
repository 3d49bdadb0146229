"""Password hashing, bearer tokens and the dependencies that resolve the caller."""

import logging
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import func
from sqlalchemy.orm import Session

from ticketdesk.config import get_settings
from ticketdesk.database import get_db
from ticketdesk.models.user import User
from ticketdesk.schemas.user import UserCreate

settings = get_settings()
logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class AuthService:
    @staticmethod
    def hash_password(password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    @staticmethod
    def check_password(password: str, hashed_password: str) -> bool:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))

    @staticmethod
    def token_for_user(user: User, expires_in: Optional[timedelta] = None) -> str:
        expires_in = expires_in or timedelta(minutes=settings.access_token_expire_minutes)
        claims = {
            "sub": str(user.id),
            "admin": bool(user.is_admin),
            "exp": datetime.utcnow() + expires_in
        }
        return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)

    @staticmethod
    def user_id_from_token(token: str) -> Optional[int]:
        """The user id a valid access token was issued for, else None."""
        try:
            claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        except JWTError:
            return None
        try:
            return int(claims["sub"])
        except (KeyError, TypeError, ValueError):
            return None

    @staticmethod
    def create_user(db: Session, user_data: UserCreate, is_admin: bool = False) -> User:
        user = User(
            email=user_data.email.lower(),
            name=user_data.name,
            hashed_password=AuthService.hash_password(user_data.password),
            is_admin=is_admin
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
        user = AuthService.get_user_by_email(db, email)
        if user and AuthService.check_password(password, user.hashed_password):
            return user
        logger.info(f"Failed login for {email}")
        return None

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(func.lower(User.email) == email.lower()).first()

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.get(User, user_id)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """The caller, or None for anonymous requests and unusable tokens."""
    if credentials is None:
        return None
    user_id = AuthService.user_id_from_token(credentials.credentials)
    return AuthService.get_user_by_id(db, user_id) if user_id is not None else None


def get_current_user_required(user: Optional[User] = Depends(get_current_user)) -> User:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )
    return user


def get_current_admin(user: User = Depends(get_current_user_required)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
